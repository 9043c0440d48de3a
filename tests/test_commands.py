from pathlib import Path

import httpx
import pytest
from discord_payloads import message
from roll_tables import FRAME_1D10, FRAME_2D10_PLUS_20, fenced

import Rollkeeper.commands.get_data as get_data_mod
from Rollkeeper.command_loader import load_all_commands
from Rollkeeper.commanding import Invocation, all_commands, find_command, slash_command
from Rollkeeper.commands.get_data import GetDataOpts, get_data
from Rollkeeper.commands.parse_roll import ParseRollOpts, parse_roll
from Rollkeeper.discord_schemas import Message
from Rollkeeper.history import DiscordHistory, to_record
from Rollkeeper.metrics import get_counter
from Rollkeeper.store import RecordStore


def _inv(responder, settings, name: str, channel_id: str | None = "555") -> Invocation:
    return Invocation(
        name=name,
        options={},
        user_id="42",
        channel_id=channel_id,
        guild_id="1",
        responder=responder,
        settings=settings,
    )


class FakeHistory:
    instances: list["FakeHistory"] = []

    def __init__(self, settings):
        self.settings = settings
        self.closed = False
        self.harvested_from: str | None = None
        FakeHistory.instances.append(self)

    async def harvest(self, channel_id: str, bot_user_id: int):
        self.harvested_from = channel_id
        return [Message.model_validate(message(999, content=fenced(FRAME_1D10)))], 3

    async def close(self):
        self.closed = True


def test_commands_are_registered():
    load_all_commands()
    names = {c.name for c in all_commands().values()}
    assert {"get_data", "parse_roll"} <= names
    assert find_command("parse_roll").option_model is ParseRollOpts


@pytest.mark.asyncio
async def test_parse_roll_describes_tables(responder, settings):
    content = fenced(FRAME_1D10, FRAME_2D10_PLUS_20)
    await parse_roll(_inv(responder, settings, "parse_roll"), ParseRollOpts(content=content))
    ((text, ephemeral),) = responder.messages
    assert ephemeral
    assert text.splitlines() == [
        "🎲 2 roll table(s):",
        "• `1d10` → rolls [6, 3, 2] = **11**",
        "• `2d10+20` → rolls [5, 10] = **35**",
    ]
    assert get_counter("parse_roll.parsed") == 1


@pytest.mark.asyncio
async def test_parse_roll_without_tables(responder, settings):
    await parse_roll(_inv(responder, settings, "parse_roll"), ParseRollOpts(content="hello"))
    assert responder.messages == [("No roll data found.", True)]
    assert get_counter("parse_roll.no_data") == 1


@pytest.mark.asyncio
async def test_get_data_grab(monkeypatch, responder, settings):
    FakeHistory.instances.clear()
    monkeypatch.setattr(get_data_mod, "DiscordHistory", FakeHistory)

    await get_data(_inv(responder, settings, "get_data"), GetDataOpts())

    (history,) = FakeHistory.instances
    assert history.harvested_from == "555"
    assert history.closed
    assert responder.texts[1] == "Read 3 messages, and 1 were from the bot"
    assert responder.texts[-1].startswith("Parsed 1 of 1 messages")
    assert RecordStore(settings.harvest_output_dir).latest_unfiltered() is not None


@pytest.mark.asyncio
async def test_get_data_channel_option_wins(monkeypatch, responder, settings):
    FakeHistory.instances.clear()
    monkeypatch.setattr(get_data_mod, "DiscordHistory", FakeHistory)
    settings.harvest_channel_id = "777"

    await get_data(_inv(responder, settings, "get_data"), GetDataOpts(channel="888"))

    assert FakeHistory.instances[0].harvested_from == "888"


@pytest.mark.asyncio
async def test_get_data_grab_without_channel(responder, settings):
    await get_data(_inv(responder, settings, "get_data", channel_id=None), GetDataOpts())
    assert responder.messages == [("❌ No channel to read from.", True)]


@pytest.mark.asyncio
async def test_get_data_replay(responder, settings):
    store = RecordStore(settings.harvest_output_dir)
    record = to_record(Message.model_validate(message(999, content=fenced(FRAME_2D10_PLUS_20))))
    store.write_unfiltered([record])

    await get_data(_inv(responder, settings, "get_data"), GetDataOpts(mode="replay"))

    assert responder.texts[0] == "Getting data, and then cleaning it"
    assert responder.texts[-1].startswith("Parsed 1 of 1 messages")


@pytest.mark.asyncio
async def test_get_data_replay_without_batch(responder, settings):
    settings.harvest_mode = "replay"

    await get_data(_inv(responder, settings, "get_data"), GetDataOpts())

    text, ephemeral = responder.messages[-1]
    assert ephemeral
    assert text.startswith("❌ no saved batch to replay")
    assert get_counter("harvest.failed") == 1


@pytest.mark.asyncio
async def test_get_data_missing_replay_file(responder, settings):
    await get_data(
        _inv(responder, settings, "get_data"),
        GetDataOpts(mode="replay", replay_file="unfiltered_missing.json"),
    )
    assert responder.texts[-1].startswith("❌ replay file not found")


@pytest.mark.asyncio
async def test_get_data_grab_without_token(responder, settings):
    settings.discord_bot_token = None

    await get_data(_inv(responder, settings, "get_data"), GetDataOpts())

    assert responder.texts[-1].startswith("❌ discord_bot_token is required")
    assert get_counter("harvest.failed") == 1


def _forbidden_history(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/messages"):
            return httpx.Response(403, json={"message": "Missing Access", "code": 50001})
        return httpx.Response(200, json={"id": "555", "last_message_id": "1000"})

    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url=settings.discord_api_base
    )
    return DiscordHistory(settings, client=client)


@pytest.mark.asyncio
async def test_get_data_reports_a_forbidden_channel(monkeypatch, responder, settings):
    monkeypatch.setattr(get_data_mod, "DiscordHistory", _forbidden_history)

    await get_data(_inv(responder, settings, "get_data"), GetDataOpts())

    text, ephemeral = responder.messages[-1]
    assert ephemeral
    assert text.startswith("❌ Discord request")
    assert "HTTP 403" in text
    assert get_counter("harvest.failed") == 1


class BrokenTransportHistory(FakeHistory):
    async def harvest(self, channel_id: str, bot_user_id: int):
        request = httpx.Request("GET", "https://discord.test/api/v10/channels/555/messages")
        raise httpx.HTTPStatusError("boom", request=request, response=httpx.Response(502))


@pytest.mark.asyncio
async def test_get_data_reports_transport_errors(monkeypatch, responder, settings):
    FakeHistory.instances.clear()
    monkeypatch.setattr(get_data_mod, "DiscordHistory", BrokenTransportHistory)

    await get_data(_inv(responder, settings, "get_data"), GetDataOpts())

    assert responder.messages[-1] == ("❌ Discord request failed: HTTPStatusError", True)
    assert FakeHistory.instances[0].closed


@pytest.mark.asyncio
async def test_get_data_malformed_replay_file(responder, settings):
    out = Path(settings.harvest_output_dir)
    out.mkdir(parents=True, exist_ok=True)
    (out / "unfiltered_broken.json").write_bytes(b"not json")

    await get_data(_inv(responder, settings, "get_data"), GetDataOpts(mode="replay"))

    assert responder.texts[-1].startswith("❌ cannot read batch")
    assert get_counter("harvest.failed") == 1


@pytest.mark.asyncio
async def test_get_data_replay_file_outside_output_dir(responder, settings):
    await get_data(
        _inv(responder, settings, "get_data"),
        GetDataOpts(mode="replay", replay_file="../../etc/passwd"),
    )
    assert responder.texts[-1].startswith("❌ replay file must be inside the output directory")


def test_loader_reports_command_modules():
    assert "Rollkeeper.commands.get_data" in load_all_commands()


def test_duplicate_command_name_is_rejected():
    load_all_commands()
    with pytest.raises(ValueError):

        @slash_command(name="parse_roll", description="again")
        async def again(inv, opts):  # noqa: ANN001
            pass
