"""Message-level roll parsing.

A dice-bot message wraps its tables in one code fence. Several tables are
only recognised when each closing fence touches the next opening fence,
so the separator is exactly six backticks::

    ```<table>``````<table>``````<table>```

Fences separated by anything else (even a newline) leave stray fence
characters inside a table segment and the whole message is rejected. A
message either yields every table or nothing.
"""

from __future__ import annotations

from dataclasses import dataclass

from Rollkeeper.rolls import grammar
from Rollkeeper.rolls.combinators import Fail, FailureKind, Ok, Outcome
from Rollkeeper.rolls.types import DiceRollRequest

FENCE = "```"
TABLE_SEPARATOR = FENCE + FENCE


@dataclass(frozen=True)
class Segment:
    offset: int
    text: str


def split_segments(content: str) -> Outcome[list[Segment]]:
    """Cut the fenced body of ``content`` into one segment per table."""
    start = content.find(FENCE)
    if start < 0:
        return Fail(0, FailureKind.FENCE, "no opening fence")
    body_start = start + len(FENCE)
    if not content.endswith(FENCE) or len(content) - len(FENCE) < body_start:
        return Fail(len(content), FailureKind.FENCE, "no closing fence")
    body_end = len(content) - len(FENCE)

    segments: list[Segment] = []
    if body_end == body_start:
        return Ok(segments, len(content))

    offset = body_start
    for piece in content[body_start:body_end].split(TABLE_SEPARATOR):
        segments.append(Segment(offset, piece))
        offset += len(piece) + len(TABLE_SEPARATOR)
    return Ok(segments, len(content))


def parse_message(content: str) -> Outcome[DiceRollRequest]:
    """Parse every table in ``content``, stopping at the first failure.

    Failure positions are offsets into ``content``.
    """
    split = split_segments(content)
    if isinstance(split, Fail):
        return split

    rolls = []
    for segment in split.value:
        out = grammar.table(segment.text)
        if isinstance(out, Fail):
            return out.shifted(segment.offset)
        rolls.append(out.value)
    return Ok(DiceRollRequest(rolls=tuple(rolls)), split.pos)


def parse(content: str) -> DiceRollRequest | None:
    """Return the rolls in a dice-bot message, or ``None`` if it has none."""
    out = parse_message(content)
    if isinstance(out, Fail):
        return None
    return out.value
