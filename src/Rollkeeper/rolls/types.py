# rolls/types.py

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DiceExpression:
    count: int
    faces: int
    modifier: int = 0


@dataclass(frozen=True)
class DiceRollInstance:
    """One parsed roll table.

    ``total`` is the sum exactly as the table showed it; it is never
    recomputed from ``dice_rolls`` and ``modifier``.
    """

    number_of_dice: int
    size_of_dice: int
    modifier: int
    dice_rolls: tuple[int, ...]
    total: int

    def to_dict(self) -> dict:
        return {
            "number_of_dice": self.number_of_dice,
            "size_of_dice": self.size_of_dice,
            "modifier": self.modifier,
            "dice_rolls": list(self.dice_rolls),
            "total": self.total,
        }

    @classmethod
    def from_dict(cls, data: dict) -> DiceRollInstance:
        return cls(
            number_of_dice=int(data["number_of_dice"]),
            size_of_dice=int(data["size_of_dice"]),
            modifier=int(data["modifier"]),
            dice_rolls=tuple(int(v) for v in data["dice_rolls"]),
            total=int(data["total"]),
        )


@dataclass(frozen=True)
class DiceRollRequest:
    """All roll tables of one message, in source order."""

    rolls: tuple[DiceRollInstance, ...]

    def to_dict(self) -> dict:
        return {"rolls": [r.to_dict() for r in self.rolls]}

    @classmethod
    def from_dict(cls, data: dict) -> DiceRollRequest:
        return cls(rolls=tuple(DiceRollInstance.from_dict(r) for r in data.get("rolls", [])))
