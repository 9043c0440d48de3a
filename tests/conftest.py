# tests/conftest.py

import pytest
from pydantic import SecretStr

from Rollkeeper.config import Settings
from Rollkeeper.metrics import reset_counters


class SpyResponder:
    def __init__(self):
        self.messages: list[tuple[str, bool]] = []

    async def send(self, content: str, *, ephemeral: bool = False):  # noqa: ANN001
        self.messages.append((content, ephemeral))

    @property
    def texts(self) -> list[str]:
        return [m for m, _ in self.messages]


@pytest.fixture(autouse=True)
def _reset_metrics():
    reset_counters()
    yield


@pytest.fixture
def responder() -> SpyResponder:
    return SpyResponder()


@pytest.fixture
def settings(tmp_path) -> Settings:
    # Explicit init values outrank any .env or config.toml in the working tree
    return Settings(
        discord_bot_token=SecretStr("test-token"),
        discord_api_base="https://discord.test/api/v10",
        harvest_output_dir=str(tmp_path / "data"),
        harvest_page_delay_seconds=0,
        harvest_mode="grab",
        harvest_channel_id=None,
    )
