"""Application-wide constants for the RPG combat engine.

This module defines rule constants used throughout the engine and the
built-in status effect table that content files may extend or override.
"""

from __future__ import annotations

from typing import Any

# =============================================================================
# Dice Constants
# =============================================================================

MIN_DICE_COUNT = 1
"""Minimum number of dice in a formula."""

MIN_DIE_SIDES = 2
"""Minimum number of sides of a die."""

MAX_DICE_COUNT = 100
"""Upper bound on dice per formula, guards against absurd content."""

CRITICAL_ROLL = 20
"""Natural d20 result that always hits and doubles damage dice."""

FUMBLE_ROLL = 1
"""Natural d20 result that always misses."""

# =============================================================================
# Combat Constants
# =============================================================================

UNARMED_DAMAGE = "1d4"
"""Damage formula for combatants without a weapon formula."""

DEFAULT_MONSTER_ATTACK_BONUS = 3
"""Attack bonus for monster templates that do not declare one."""

MIN_HIT_DAMAGE = 1
"""A successful hit always deals at least this much damage."""

# =============================================================================
# Progression Constants
# =============================================================================

XP_CURVE_BASE = 100
"""Base of the XP curve: floor(XP_CURVE_BASE * level ** XP_CURVE_EXPONENT)."""

XP_CURVE_EXPONENT = 1.5
"""Exponent of the XP curve."""

STARTING_LEVEL = 1
"""Level of a fresh character."""

# =============================================================================
# Built-in Status Effects
# =============================================================================

DEFAULT_STATUS_EFFECTS: dict[str, dict[str, Any]] = {
    "poisoned": {"name": "Poisoned", "duration": 3, "damage_per_turn": "1d4"},
    "burning": {"name": "Burning", "duration": 2, "damage_per_turn": "1d6"},
    "stunned": {"name": "Stunned", "duration": 1, "skip_turn": True},
    "blinded": {"name": "Blinded", "duration": 2, "attack_modifier": -4},
    "frightened": {"name": "Frightened", "duration": 2, "attack_modifier": -2},
    "paralyzed": {"name": "Paralyzed", "duration": 1, "skip_turn": True},
    "regenerating": {"name": "Regenerating", "duration": 3, "heal_per_turn": "1d4"},
    "shielded": {"name": "Shielded", "duration": 2, "armor_class_modifier": 5},
    "blessed": {"name": "Blessed", "duration": 3, "attack_modifier": 2},
}
"""Status effects every content set knows about, keyed by effect id."""


__all__ = [
    # Dice
    "MIN_DICE_COUNT",
    "MIN_DIE_SIDES",
    "MAX_DICE_COUNT",
    "CRITICAL_ROLL",
    "FUMBLE_ROLL",
    # Combat
    "UNARMED_DAMAGE",
    "DEFAULT_MONSTER_ATTACK_BONUS",
    "MIN_HIT_DAMAGE",
    # Progression
    "XP_CURVE_BASE",
    "XP_CURVE_EXPONENT",
    "STARTING_LEVEL",
    # Status effects
    "DEFAULT_STATUS_EFFECTS",
]
