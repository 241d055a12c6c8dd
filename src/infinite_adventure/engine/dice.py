"""Dice rolling backed by the d20 library.

Combat only needs integer totals (initiative and flee checks), so the
roller returns the rolled total. Anything implementing ``Roller`` can be
injected in its place for deterministic play.
"""

from __future__ import annotations

import random
from typing import Protocol

import d20

from infinite_adventure.core.exceptions import DiceRollError
from infinite_adventure.core.logging import get_logger


logger = get_logger(__name__)


class Roller(Protocol):
    """Source of dice totals."""

    def roll(self, expression: str) -> int: ...


class DiceRoller:
    """Roll dice expressions such as '1d20' or '1d20-1'.

    Example:
        >>> roller = DiceRoller(seed=7)
        >>> 1 <= roller.roll("1d20") <= 20
        True
    """

    def __init__(self, *, seed: int | None = None) -> None:
        """Initialize the dice roller.

        Args:
            seed: Optional random seed for reproducible rolls.
        """
        self._seed = seed
        if seed is not None:
            random.seed(seed)
        logger.debug("DiceRoller initialized", seed=seed)

    def roll(self, expression: str) -> int:
        """Roll an expression and return its total.

        Raises:
            DiceRollError: If the expression is empty or cannot be parsed.
        """
        if not expression or not expression.strip():
            raise DiceRollError("Empty dice expression", expression=expression)

        try:
            result = d20.roll(expression)
        except d20.RollError as exc:
            raise DiceRollError(f"Invalid dice expression: {exc}", expression=expression) from exc

        logger.debug("Dice rolled", expression=expression, total=result.total)
        return result.total


__all__ = [
    "DiceRoller",
    "Roller",
]
