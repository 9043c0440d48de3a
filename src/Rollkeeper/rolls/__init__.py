"""Parsing of dice-bot roll tables."""  # noqa: N999

from .parser import parse, parse_message, split_segments
from .render import render_message, render_table
from .types import DiceExpression, DiceRollInstance, DiceRollRequest

__all__ = [
    "DiceExpression",
    "DiceRollInstance",
    "DiceRollRequest",
    "parse",
    "parse_message",
    "render_message",
    "render_table",
    "split_segments",
]
