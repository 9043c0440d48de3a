# src/Rollkeeper/commands/get_data.py
from typing import Literal

import httpx
import structlog
from pydantic import Field

from Rollkeeper.commanding import Invocation, Option, slash_command
from Rollkeeper.config import load_settings
from Rollkeeper.errors import RollkeeperError
from Rollkeeper.harvest import HarvestMode, run_harvest
from Rollkeeper.history import DiscordHistory
from Rollkeeper.metrics import inc_counter
from Rollkeeper.store import RecordStore

log = structlog.get_logger()


class GetDataOpts(Option):
    mode: Literal["grab", "replay"] | None = Field(
        default=None,
        description="grab reads the channel; replay re-parses a saved batch",
    )
    replay_file: str | None = Field(
        default=None,
        description="File name of a saved batch in the output directory (defaults to the newest)",
    )
    channel: str | None = Field(
        default=None, description="Channel id to harvest (defaults to this channel)"
    )


async def _report_failure(inv: Invocation, mode: HarvestMode, channel_id: str | None, reason: str):
    inc_counter("harvest.failed")
    log.warning("harvest.failed", mode=mode.value, channel_id=channel_id, error=reason)
    await inv.responder.send(f"❌ {reason}", ephemeral=True)


@slash_command(
    name="get_data",
    description="Harvest the dice bot's rolls from a channel and save them as JSON.",
    option_model=GetDataOpts,
)
async def get_data(inv: Invocation, opts: GetDataOpts):
    settings = inv.settings or load_settings()
    mode = HarvestMode(opts.mode or settings.harvest_mode)
    store = RecordStore(settings.harvest_output_dir)
    channel_id = opts.channel or settings.harvest_channel_id or inv.channel_id

    history = None
    try:
        if mode is HarvestMode.GRAB_AND_PARSE:
            if not channel_id:
                await inv.responder.send("❌ No channel to read from.", ephemeral=True)
                return
            history = DiscordHistory(settings)
        await run_harvest(
            mode,
            store=store,
            progress=inv.responder,
            channel_id=channel_id,
            bot_user_id=settings.roll_bot_user_id,
            source=history,
            replay_path=opts.replay_file,
        )
    except RollkeeperError as err:
        await _report_failure(inv, mode, channel_id, str(err))
    except httpx.HTTPError as err:
        # Sources other than DiscordHistory may let transport errors through
        await _report_failure(inv, mode, channel_id, f"Discord request failed: {type(err).__name__}")
    finally:
        if history is not None:
            await history.close()
