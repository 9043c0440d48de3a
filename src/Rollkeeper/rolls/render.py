# rolls/render.py

from __future__ import annotations

from collections.abc import Iterable

from Rollkeeper.rolls.parser import FENCE, TABLE_SEPARATOR
from Rollkeeper.rolls.types import DiceRollInstance

_ROLLS_HEADER = "rolls"
_SUM_HEADER = "sum"


def format_expression(count: int, faces: int, modifier: int = 0) -> str:
    expr = f"{count}d{faces}"
    if modifier:
        expr += f"{modifier:+d}"
    return expr


def render_frame(instance: DiceRollInstance) -> str:
    """Draw one table the way the dice bot does, without fences.

    A non-zero modifier is shown as an extra value at the end of the rolls
    column. Only its magnitude is drawn; the sign lives in the expression.
    """
    cells = [str(v) for v in instance.dice_rolls]
    if instance.modifier:
        cells.append(str(abs(instance.modifier)))
    rolls = " ".join(cells)
    total = f"[{instance.total}]"
    expr = format_expression(instance.number_of_dice, instance.size_of_dice, instance.modifier)

    left = max(len(rolls), len(_ROLLS_HEADER)) + 3
    right = max(len(total), len(_SUM_HEADER)) + 2
    # Widen the rolls column until the expression fits the title row.
    left = max(left, len(expr) + 4 - right - 1)
    inner = left + 1 + right

    lines = [
        "╔" + "═" * inner + "╗",
        "║" + expr.center(inner) + "║",
        "╠" + "═" * left + "╤" + "═" * right + "╣",
        "║" + f"  {_ROLLS_HEADER}".ljust(left) + "│" + f" {_SUM_HEADER}".ljust(right) + "║",
        "╟" + "─" * left + "┼" + "─" * right + "╢",
        "║" + f" {rolls}".ljust(left) + "│" + f" {total}".ljust(right) + "║",
        "╚" + "═" * left + "╧" + "═" * right + "╝",
    ]
    return "\n".join(lines)


def render_message(instances: Iterable[DiceRollInstance]) -> str:
    """Fence a run of tables so each closing fence abuts the next opening one."""
    return FENCE + TABLE_SEPARATOR.join(render_frame(i) for i in instances) + FENCE


def render_table(instance: DiceRollInstance) -> str:
    return render_message([instance])
