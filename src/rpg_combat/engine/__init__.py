"""Combat engine: dice, turns, actions, sessions and rewards.

Submodules:
    dice: Dice formula parsing and rolling with an injectable generator
    turn_manager: Initiative, turn advancement and termination checks
    actions: One handler per ActionType
    monster_ai: Automatic monster turns
    session_store: Registry of live sessions with locks and idle eviction
    rewards: XP/gold/level rewards, defeat penalties and persistence
    render: Plain-text rendering of a session
    service: CombatEngine, the public entry point

Example:
    >>> from rpg_combat.engine import CombatEngine, ActionType
    >>> engine = CombatEngine(content, characters)
    >>> engine.start_encounter("1234", ["1234"], ["goblin"])
    >>> engine.submit_action("1234", "1234", ActionType.ATTACK)
"""

from __future__ import annotations

# =============================================================================
# Dice Rolling
# =============================================================================
from rpg_combat.engine.dice import (
    CriticalRule,
    DiceFormula,
    DiceRoller,
    RollResult,
    ability_modifier,
    parse_formula,
)

# =============================================================================
# Turn Management
# =============================================================================
from rpg_combat.engine.turn_manager import TurnManager, TurnStart

# =============================================================================
# Action Resolution
# =============================================================================
from rpg_combat.engine.actions import ActionResolver, StrikeResult
from rpg_combat.engine.monster_ai import MonsterAI

# =============================================================================
# Sessions and Rewards
# =============================================================================
from rpg_combat.engine.rewards import RewardDispatcher, split_evenly
from rpg_combat.engine.session_store import SessionStore

# =============================================================================
# Public API
# =============================================================================
from rpg_combat.engine.render import TextRenderer, health_bar
from rpg_combat.engine.service import CombatEngine
from rpg_combat.models.enums import ActionType


__all__ = [
    # Dice
    "CriticalRule",
    "DiceFormula",
    "DiceRoller",
    "RollResult",
    "ability_modifier",
    "parse_formula",
    # Turns
    "TurnManager",
    "TurnStart",
    # Actions
    "ActionResolver",
    "StrikeResult",
    "MonsterAI",
    # Sessions and rewards
    "RewardDispatcher",
    "split_evenly",
    "SessionStore",
    # Public API
    "TextRenderer",
    "health_bar",
    "CombatEngine",
    "ActionType",
]
