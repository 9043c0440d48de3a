# src/Rollkeeper/commands/parse_roll.py
from pydantic import Field

from Rollkeeper.commanding import Invocation, Option, slash_command
from Rollkeeper.metrics import inc_counter
from Rollkeeper.rolls import parse
from Rollkeeper.rolls.render import format_expression
from Rollkeeper.rolls.types import DiceRollInstance


class ParseRollOpts(Option):
    content: str = Field(description="A dice-bot message, fences included", max_length=4000)


def _describe(roll: DiceRollInstance) -> str:
    expr = format_expression(roll.number_of_dice, roll.size_of_dice, roll.modifier)
    return f"• `{expr}` → rolls {list(roll.dice_rolls)} = **{roll.total}**"


@slash_command(
    name="parse_roll",
    description="Show what the roll parser extracts from a dice-bot message.",
    option_model=ParseRollOpts,
)
async def parse_roll(inv: Invocation, opts: ParseRollOpts):
    request = parse(opts.content)
    if request is None:
        inc_counter("parse_roll.no_data")
        await inv.responder.send("No roll data found.", ephemeral=True)
        return
    inc_counter("parse_roll.parsed")
    lines = [f"🎲 {len(request.rolls)} roll table(s):"]
    lines.extend(_describe(r) for r in request.rolls)
    await inv.responder.send("\n".join(lines), ephemeral=True)
