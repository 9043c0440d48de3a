# errors.py

from __future__ import annotations


class RollkeeperError(Exception):
    """Base class for errors raised outside the roll parser."""


class MissingInteractionMetadata(RollkeeperError):
    """A dice-bot message does not say which user invoked the roll."""

    def __init__(self, message_id: str | int):
        super().__init__(f"message {message_id} has no interaction metadata")
        self.message_id = str(message_id)


class ReplayFileMissing(RollkeeperError):
    def __init__(self, path: str):
        super().__init__(f"replay file not found: {path}")
        self.path = path


class ReplayFileOutsideStore(RollkeeperError):
    def __init__(self, path: str):
        super().__init__(f"replay file must be inside the output directory: {path}")
        self.path = path


class CorruptBatch(RollkeeperError):
    """A saved batch is not a JSON array of message records."""

    def __init__(self, path: str, detail: str):
        super().__init__(f"cannot read batch {path}: {detail}")
        self.path = path


class DiscordUnavailable(RollkeeperError):
    """Discord refused or failed a history request."""

    def __init__(self, path: str, detail: str, status_code: int | None = None):
        super().__init__(f"Discord request {path} failed: {detail}")
        self.path = path
        self.status_code = status_code


class HarvestConfigError(RollkeeperError):
    """Settings or options are not enough to start a harvest."""
