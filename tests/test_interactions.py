# test_interactions.py

import orjson
import pytest
from fastapi.testclient import TestClient
from nacl.signing import SigningKey
from roll_tables import FRAME_1D10, fenced

import Rollkeeper.app as app_mod
from Rollkeeper.app import app
from Rollkeeper.command_loader import load_all_commands
from Rollkeeper.config import Settings
from Rollkeeper.discord_schemas import Interaction
from Rollkeeper.metrics import get_counter, inc_counter

client = TestClient(app)


def _signed(key: SigningKey, body: bytes, ts: str = "1700000000") -> dict[str, str]:
    sig = key.sign(ts.encode() + body).signature.hex()
    return {"X-Signature-Ed25519": sig, "X-Signature-Timestamp": ts}


@pytest.fixture
def signing_key(monkeypatch) -> SigningKey:
    key = SigningKey.generate()
    s = Settings(discord_public_key=key.verify_key.encode().hex(), metrics_endpoint_enabled=True)
    monkeypatch.setattr(app_mod, "settings", s)
    return key


def test_missing_headers_401():
    r = client.post("/interactions", content=b"{}")
    assert r.status_code == 401


def test_bad_signature_401(signing_key):
    body = orjson.dumps({"type": 1})
    headers = _signed(SigningKey.generate(), body)
    r = client.post("/interactions", content=body, headers=headers)
    assert r.status_code == 401


def test_ping_pong(signing_key):
    body = orjson.dumps({"id": "1", "type": 1, "token": "t", "application_id": "app"})
    r = client.post("/interactions", content=body, headers=_signed(signing_key, body))
    assert r.status_code == 200
    assert r.json() == {"type": 1}


def test_invalid_payload_400(signing_key):
    body = b"not json"
    r = client.post("/interactions", content=body, headers=_signed(signing_key, body))
    assert r.status_code == 400


def test_healthz():
    assert client.get("/healthz").json() == {"status": "ok"}


def test_metrics_disabled_by_default(monkeypatch):
    monkeypatch.setattr(app_mod, "settings", Settings(metrics_endpoint_enabled=False))
    assert client.get("/metrics").status_code == 404


def test_metrics_enabled(signing_key):
    inc_counter("harvest.parsed", 3)
    r = client.get("/metrics")
    assert r.status_code == 200
    assert r.json()["harvest.parsed"] == 3


class _CapturingResponder:
    sent: list[tuple[str, bool]] = []

    def __init__(self, application_id, token, settings):  # noqa: ANN001
        self.application_id = application_id

    async def send(self, content: str, *, ephemeral: bool = False) -> None:
        _CapturingResponder.sent.append((content, ephemeral))


def _command(name: str, options: list[dict]) -> Interaction:
    return Interaction.model_validate(
        {
            "id": "1",
            "type": 2,
            "token": "tok",
            "application_id": "app",
            "guild_id": "10",
            "channel_id": "555",
            "member": {"user": {"id": "42"}},
            "data": {"name": name, "options": options},
        }
    )


@pytest.mark.asyncio
async def test_dispatch_runs_the_handler(monkeypatch):
    load_all_commands()
    _CapturingResponder.sent = []
    monkeypatch.setattr(app_mod, "WebhookResponder", _CapturingResponder)

    inter = _command("parse_roll", [{"name": "content", "type": 3, "value": fenced(FRAME_1D10)}])
    await app_mod._dispatch_command(inter)

    ((text, ephemeral),) = _CapturingResponder.sent
    assert ephemeral
    assert "`1d10`" in text
    assert get_counter("command.success") == 1


@pytest.mark.asyncio
async def test_dispatch_rejects_invalid_options(monkeypatch):
    load_all_commands()
    _CapturingResponder.sent = []
    monkeypatch.setattr(app_mod, "WebhookResponder", _CapturingResponder)

    await app_mod._dispatch_command(_command("parse_roll", []))

    assert _CapturingResponder.sent == [("❌ Invalid options for `parse_roll`.", True)]
    assert get_counter("command.options_error") == 1


@pytest.mark.asyncio
async def test_dispatch_unknown_command():
    await app_mod._dispatch_command(_command("nope", []))
    assert get_counter("command.unknown") == 1


def test_infer_ids_prefers_member_user():
    assert app_mod._infer_ids_from_interaction(_command("x", [])) == (10, 555, 42)


def test_lifespan_loads_commands():
    with TestClient(app) as c:
        assert c.get("/healthz").status_code == 200
    assert "get_data" in app_mod.all_commands()
