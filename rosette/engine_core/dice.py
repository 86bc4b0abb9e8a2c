"""
Dice - Binary coin dice.

The game uses tetrahedral dice with two marked tips, equivalent to fair
coins. A roll is the number of marked tips facing up.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
import random
from typing import Optional


class Dice(ABC):
    """Source of raw roll values."""

    @abstractmethod
    def roll(self, count: int) -> int:
        """Roll count binary dice and return the sum."""
        pass


class CoinDice(Dice):
    """Fair binary dice. Seedable for reproducible games."""

    def __init__(self, seed: Optional[int] = None):
        self.rng = random.Random(seed)

    def roll(self, count: int) -> int:
        return sum(self.rng.randint(0, 1) for _ in range(count))


class ScriptedDice(Dice):
    """
    Replays a fixed sequence of raw values.

    Used by tests and demos that need a known game. Raises IndexError when
    the script runs out.
    """

    def __init__(self, values):
        self.values = list(values)
        self.position = 0

    def roll(self, count: int) -> int:
        if self.position >= len(self.values):
            raise IndexError("dice script exhausted")
        value = self.values[self.position]
        self.position += 1
        if not 0 <= value <= count:
            raise ValueError(f"scripted roll {value} impossible with {count} dice")
        return value
