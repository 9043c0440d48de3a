"""Cursor combinators for the roll-table grammar.

Every parser here takes the full text plus a start index and returns an
outcome: ``Ok(value, pos)`` where ``pos`` is the index just past the
consumed input, or ``Fail(pos, kind, reason)``. Ordinary grammar
mismatches never raise; callers thread the outcome and stop at the first
``Fail``.
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")

# Integer limits of the bot's renderer: unsigned 64-bit for counts, faces,
# rolls and totals; signed 64-bit for the modifier magnitude.
U64_MAX = 2**64 - 1
I64_MAX = 2**63 - 1

WHITESPACE = " \t\r\n"
DIGITS = "0123456789"


class FailureKind(enum.Enum):
    FENCE = "fence"
    GRAMMAR = "grammar"
    OVERFLOW = "overflow"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    pos: int


@dataclass(frozen=True)
class Fail:
    pos: int
    kind: FailureKind
    reason: str

    def shifted(self, offset: int) -> Fail:
        """Same failure, reported relative to an enclosing text."""
        return Fail(self.pos + offset, self.kind, self.reason)


Outcome = Union[Ok[T], Fail]
Parser = Callable[[str, int], Outcome[T]]


def literal(token: str) -> Parser[str]:
    def parse(text: str, pos: int) -> Outcome[str]:
        if text.startswith(token, pos):
            return Ok(token, pos + len(token))
        return Fail(pos, FailureKind.GRAMMAR, f"expected {token!r}")

    return parse


def skip_until(glyph: str) -> Parser[None]:
    """Advance to the next ``glyph``, leaving it unconsumed."""

    def parse(text: str, pos: int) -> Outcome[None]:
        found = text.find(glyph, pos)
        if found < 0:
            return Fail(pos, FailureKind.GRAMMAR, f"no {glyph!r} ahead")
        return Ok(None, found)

    return parse


def skip_past(glyph: str) -> Parser[None]:
    """Advance to the next ``glyph`` and consume it."""
    until = skip_until(glyph)

    def parse(text: str, pos: int) -> Outcome[None]:
        out = until(text, pos)
        if isinstance(out, Fail):
            return out
        return Ok(None, out.pos + len(glyph))

    return parse


def whitespace0(text: str, pos: int) -> Outcome[str]:
    end = pos
    while end < len(text) and text[end] in WHITESPACE:
        end += 1
    return Ok(text[pos:end], end)


def whitespace1(text: str, pos: int) -> Outcome[str]:
    out = whitespace0(text, pos)
    if out.pos == pos:
        return Fail(pos, FailureKind.GRAMMAR, "expected whitespace")
    return out


def unsigned(limit: int = U64_MAX) -> Parser[int]:
    """A run of ASCII digits read as a decimal integer no larger than ``limit``."""

    def parse(text: str, pos: int) -> Outcome[int]:
        end = pos
        while end < len(text) and text[end] in DIGITS:
            end += 1
        if end == pos:
            return Fail(pos, FailureKind.GRAMMAR, "expected digits")
        value = int(text[pos:end])
        if value > limit:
            return Fail(pos, FailureKind.OVERFLOW, f"{text[pos:end]} exceeds {limit}")
        return Ok(value, end)

    return parse


def separated1(item: Parser[T], separator: Parser[object]) -> Parser[list[T]]:
    """One or more ``item`` joined by ``separator``.

    A separator that is not followed by an item is left unconsumed.
    """

    def parse(text: str, pos: int) -> Outcome[list[T]]:
        first = item(text, pos)
        if isinstance(first, Fail):
            return first
        values = [first.value]
        pos = first.pos
        while True:
            sep = separator(text, pos)
            if isinstance(sep, Fail):
                break
            nxt = item(text, sep.pos)
            if isinstance(nxt, Fail):
                break
            values.append(nxt.value)
            pos = nxt.pos
        return Ok(values, pos)

    return parse


def padded(parser: Parser[T]) -> Parser[T]:
    """``parser`` with optional whitespace consumed on both sides."""

    def parse(text: str, pos: int) -> Outcome[T]:
        out = parser(text, whitespace0(text, pos).pos)
        if isinstance(out, Fail):
            return out
        return Ok(out.value, whitespace0(text, out.pos).pos)

    return parse
