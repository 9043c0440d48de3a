"""Grammar for a single roll table.

A table as the dice bot draws it::

    ╔═════════════════╗
    ║     2d10+20     ║
    ╠══════════╤══════╣
    ║  rolls   │ sum  ║
    ╟──────────┼──────╢
    ║ 5 10 20  │ [35] ║
    ╚══════════╧══════╝

Only the expression line and the data row carry data; every other glyph
is skipped. When the expression has a modifier the bot appends it to the
data row as one extra value, which is dropped here.
"""

from __future__ import annotations

from Rollkeeper.rolls.combinators import (
    I64_MAX,
    U64_MAX,
    Fail,
    FailureKind,
    Ok,
    Outcome,
    literal,
    padded,
    separated1,
    skip_past,
    skip_until,
    unsigned,
    whitespace1,
)
from Rollkeeper.rolls.types import DiceExpression, DiceRollInstance

FRAME = "║"
CROSS = "┼"
DIVIDER = "│"
FENCE_CHAR = "`"

_number = unsigned(U64_MAX)
_modifier_magnitude = unsigned(I64_MAX)
_skip_top = skip_past(FRAME)
_skip_to_cross = skip_until(CROSS)
_skip_to_row = skip_past(FRAME)


def _sign(text: str, pos: int) -> Outcome[int]:
    if text.startswith("+", pos):
        return Ok(1, pos + 1)
    if text.startswith("-", pos):
        return Ok(-1, pos + 1)
    return Fail(pos, FailureKind.GRAMMAR, "expected '+' or '-'")


def _modifier(text: str, pos: int) -> Outcome[int]:
    sign = _sign(text, pos)
    if isinstance(sign, Fail):
        return sign
    value = _modifier_magnitude(text, sign.pos)
    if isinstance(value, Fail):
        return value
    return Ok(sign.value * value.value, value.pos)


def _bare_expression(text: str, pos: int) -> Outcome[DiceExpression]:
    count = _number(text, pos)
    if isinstance(count, Fail):
        return count
    sep = literal("d")(text, count.pos)
    if isinstance(sep, Fail):
        return sep
    faces = _number(text, sep.pos)
    if isinstance(faces, Fail):
        return faces
    if count.value < 1 or faces.value < 1:
        return Fail(pos, FailureKind.GRAMMAR, "dice count and faces must be positive")
    modifier = _modifier(text, faces.pos)
    if isinstance(modifier, Fail):
        # An oversized modifier is an error, not an absent one.
        if modifier.kind is FailureKind.OVERFLOW:
            return modifier
        modifier = Ok(0, faces.pos)
    return Ok(DiceExpression(count.value, faces.value, modifier.value), modifier.pos)


dice_expression = padded(_bare_expression)


def parse_expression(text: str) -> DiceExpression | None:
    """Parse a whole string such as ``"2d10+20"``; ``None`` if it is not one."""
    out = dice_expression(text, 0)
    if isinstance(out, Fail) or out.pos != len(text):
        return None
    return out.value


_roll_list = padded(separated1(_number, whitespace1))


def _bracketed_total(text: str, pos: int) -> Outcome[int]:
    opened = literal("[")(text, pos)
    if isinstance(opened, Fail):
        return opened
    total = _number(text, opened.pos)
    if isinstance(total, Fail):
        return total
    closed = literal("]")(text, total.pos)
    if isinstance(closed, Fail):
        return closed
    return Ok(total.value, closed.pos)


_total = padded(_bracketed_total)


def data_row(text: str, pos: int) -> Outcome[tuple[list[int], int]]:
    """``<rolls> │ [<total>]`` with free whitespace around each part."""
    rolls = _roll_list(text, pos)
    if isinstance(rolls, Fail):
        return rolls
    divider = literal(DIVIDER)(text, rolls.pos)
    if isinstance(divider, Fail):
        return divider
    total = _total(text, divider.pos)
    if isinstance(total, Fail):
        return total
    return Ok((rolls.value, total.value), total.pos)


def table_middle(text: str, pos: int) -> Outcome[None]:
    """Skip the header rows up to the frame glyph that opens the data row."""
    cross = _skip_to_cross(text, pos)
    if isinstance(cross, Fail):
        return cross
    return _skip_to_row(text, cross.pos)


def table_bottom(text: str, pos: int) -> Outcome[None]:
    """Skip the bottom border, which runs to the end of the segment."""
    stray = text.find(FENCE_CHAR, pos)
    if stray >= 0:
        return Fail(stray, FailureKind.FENCE, "fence character inside a table segment")
    return Ok(None, len(text))


def strip_pseudo_roll(rolls: list[int], modifier: int) -> tuple[int, ...]:
    if modifier != 0:
        return tuple(rolls[:-1])
    return tuple(rolls)


def table(text: str, pos: int = 0) -> Outcome[DiceRollInstance]:
    """Parse one table segment into a :class:`DiceRollInstance`."""
    top = _skip_top(text, pos)
    if isinstance(top, Fail):
        return top
    expr = dice_expression(text, top.pos)
    if isinstance(expr, Fail):
        return expr
    middle = table_middle(text, expr.pos)
    if isinstance(middle, Fail):
        return middle
    row = data_row(text, middle.pos)
    if isinstance(row, Fail):
        return row
    bottom = table_bottom(text, row.pos)
    if isinstance(bottom, Fail):
        return bottom

    expression = expr.value
    rolls, total = row.value
    return Ok(
        DiceRollInstance(
            number_of_dice=expression.count,
            size_of_dice=expression.faces,
            modifier=expression.modifier,
            dice_rolls=strip_pseudo_roll(rolls, expression.modifier),
            total=total,
        ),
        bottom.pos,
    )
