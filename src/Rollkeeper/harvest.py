"""Harvest orchestration: fetch or replay, parse, save.

The mode is passed in explicitly on every run. ``GRAB_AND_PARSE`` reads
the channel from Discord and saves the raw batch before parsing.
``REPLAY`` re-parses a raw batch saved by an earlier grab.
"""

from __future__ import annotations

import enum
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import structlog

from Rollkeeper.discord_schemas import Message
from Rollkeeper.errors import HarvestConfigError, MissingInteractionMetadata
from Rollkeeper.history import to_record
from Rollkeeper.metrics import inc_counter, observe_histogram
from Rollkeeper.records import MessageRecord
from Rollkeeper.rolls.combinators import Fail
from Rollkeeper.rolls.parser import parse_message
from Rollkeeper.store import RecordStore

log = structlog.get_logger()


class HarvestMode(enum.Enum):
    GRAB_AND_PARSE = "grab"
    REPLAY = "replay"


class Progress(Protocol):
    async def send(self, content: str, *, ephemeral: bool = False) -> None: ...


class MessageSource(Protocol):
    async def harvest(self, channel_id: str, bot_user_id: int) -> tuple[list[Message], int]: ...


@dataclass
class HarvestReport:
    mode: HarvestMode
    records: list[MessageRecord] = field(default_factory=list)
    total_read: int = 0
    skipped: int = 0
    unfiltered_path: Path | None = None
    cleaned_path: Path | None = None

    @property
    def parsed(self) -> int:
        return sum(1 for r in self.records if r.parsed is not None)

    @property
    def unparsed(self) -> int:
        return len(self.records) - self.parsed


def parse_records(records: Iterable[MessageRecord]) -> list[MessageRecord]:
    """Attach parsed rolls to each record; unparsable messages keep ``parsed=None``."""
    out: list[MessageRecord] = []
    for record in records:
        result = parse_message(record.raw_content)
        if isinstance(result, Fail):
            inc_counter("harvest.unparsed")
            log.debug(
                "parse.failed",
                message_id=record.message_id,
                kind=result.kind.value,
                reason=result.reason,
                pos=result.pos,
            )
            out.append(record.with_parsed(None))
            continue
        inc_counter("harvest.parsed")
        out.append(record.with_parsed(result.value))
    return out


def _records_from_messages(messages: Iterable[Message]) -> tuple[list[MessageRecord], int]:
    records: list[MessageRecord] = []
    skipped = 0
    for message in messages:
        try:
            records.append(to_record(message))
        except MissingInteractionMetadata as err:
            skipped += 1
            inc_counter("harvest.skipped_no_interaction")
            log.warning("harvest.message.skipped", message_id=err.message_id, reason=str(err))
    return records, skipped


async def run_harvest(
    mode: HarvestMode,
    *,
    store: RecordStore,
    progress: Progress,
    channel_id: str | None = None,
    bot_user_id: int | None = None,
    source: MessageSource | None = None,
    replay_path: str | Path | None = None,
) -> HarvestReport:
    """Run one harvest and report progress through ``progress``.

    Grab mode needs ``source``, ``channel_id`` and ``bot_user_id``. Replay
    mode reads ``replay_path``, or the newest unfiltered batch in the store
    when no path is given.
    """
    start = time.perf_counter()
    report = HarvestReport(mode=mode)
    await progress.send("Getting data, and then cleaning it")

    if mode is HarvestMode.GRAB_AND_PARSE:
        if source is None or channel_id is None or bot_user_id is None:
            raise HarvestConfigError("grab mode needs a message source, channel and bot user id")
        messages, report.total_read = await source.harvest(channel_id, bot_user_id)
        await progress.send(
            f"Read {report.total_read} messages, and {len(messages)} were from the bot"
        )
        raw, report.skipped = _records_from_messages(messages)
        report.unfiltered_path = store.write_unfiltered(raw)
    else:
        path = replay_path or store.latest_unfiltered()
        if path is None:
            raise HarvestConfigError(f"no saved batch to replay in {store.directory}")
        raw = store.load(path)
        report.total_read = len(raw)

    report.records = parse_records(raw)
    report.cleaned_path = store.write_cleaned(report.records)

    duration_ms = int((time.perf_counter() - start) * 1000)
    observe_histogram("harvest.duration_ms", duration_ms)
    log.info(
        "harvest.completed",
        mode=mode.value,
        total_read=report.total_read,
        records=len(report.records),
        parsed=report.parsed,
        unparsed=report.unparsed,
        skipped=report.skipped,
        cleaned_path=str(report.cleaned_path),
        duration_ms=duration_ms,
    )
    await progress.send(
        f"Parsed {report.parsed} of {len(report.records)} messages "
        f"({report.unparsed} without roll data, {report.skipped} skipped); "
        f"saved to {report.cleaned_path.name}"
    )
    return report
