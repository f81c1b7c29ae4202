"""Level progression rules.

XP is tracked as progress within the current level. A character levels up
whenever that progress reaches ``floor(100 * level ** 1.5)``; the excess
carries over into the next level.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from rpg_combat.core.constants import STARTING_LEVEL, XP_CURVE_BASE, XP_CURVE_EXPONENT


# =============================================================================
# XP Curve
# =============================================================================


def xp_for_next_level(level: int) -> int:
    """XP needed to advance from ``level`` to ``level + 1``.

    Example:
        >>> xp_for_next_level(1)
        100
        >>> xp_for_next_level(4)
        800
    """
    if level < STARTING_LEVEL:
        msg = f"Level must be at least {STARTING_LEVEL}, got {level}"
        raise ValueError(msg)
    return math.floor(XP_CURVE_BASE * level**XP_CURVE_EXPONENT)


@dataclass(frozen=True)
class LevelProgress:
    """Result of applying XP to a character."""

    level: int
    xp: int
    levels_gained: int

    @property
    def leveled_up(self) -> bool:
        return self.levels_gained > 0


def apply_experience(level: int, xp: int, gained: int, *, max_level: int = 20) -> LevelProgress:
    """Add XP and resolve any level-ups.

    Args:
        level: Current level.
        xp: Current progress within the level.
        gained: XP to add.
        max_level: Level cap; XP keeps accumulating at the cap.

    Returns:
        The new level, the remaining progress and the levels gained.

    Example:
        >>> apply_experience(1, 90, 300)
        LevelProgress(level=3, xp=8, levels_gained=2)
    """
    if gained < 0:
        msg = f"XP gained cannot be negative, got {gained}"
        raise ValueError(msg)

    new_level = level
    progress = xp + gained
    while new_level < max_level and progress >= xp_for_next_level(new_level):
        progress -= xp_for_next_level(new_level)
        new_level += 1
    return LevelProgress(level=new_level, xp=progress, levels_gained=new_level - level)


__all__ = [
    "xp_for_next_level",
    "LevelProgress",
    "apply_experience",
]
