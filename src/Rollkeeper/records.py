# records.py

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from Rollkeeper.rolls.types import DiceRollRequest


@dataclass(frozen=True)
class MessageRecord:
    """One harvested dice-bot message.

    ``author_user_id`` is the user who invoked the bot, not the bot itself.
    ``parsed`` stays ``None`` until the roll parser has run, and also when
    the message held no roll tables.
    """

    message_id: int
    author_user_id: int
    raw_content: str
    timestamp: datetime
    parsed: DiceRollRequest | None = None

    def with_parsed(self, parsed: DiceRollRequest | None) -> MessageRecord:
        return replace(self, parsed=parsed)
