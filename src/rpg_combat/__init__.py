"""rpg_combat - turn-based combat sessions for a Discord RPG bot.

A player (or a party) fights monsters in a per-session state machine driven
by button callbacks: initiative order, attacks, spells, abilities, items,
defending and fleeing, status effects and cooldowns, then XP, gold and
level-ups once the fight is decided.

Example:
    >>> from rpg_combat import ActionType, CombatEngine, ContentRepository
    >>> from rpg_combat.collaborators import InMemoryCharacterRepository
    >>>
    >>> content = ContentRepository.from_json("content/base.json")
    >>> engine = CombatEngine(content, InMemoryCharacterRepository({"1234": hero}))
    >>> engine.start_encounter("1234", ["1234"], ["goblin"])
    >>> outcome = engine.submit_action("1234", "1234", ActionType.ATTACK)
    >>> print(engine.render("1234"))

Modules:
    core: Configuration, logging, exceptions and rule constants.
    models: Pydantic V2 schemas for combatants, sessions, outcomes and content.
    content: Typed lookup of monsters, spells, abilities, items and effects.
    engine: Dice, turns, actions, session store, rewards and the CombatEngine.
    collaborators: Interfaces to the character store, inventory, quests and UI.
"""

from __future__ import annotations

# Core
from rpg_combat.core.config import Settings, get_settings
from rpg_combat.core.exceptions import CombatError, RpgCombatError
from rpg_combat.core.logging import configure_logging, get_logger

# Models
from rpg_combat.models import (
    ActionOutcome,
    ActionPayload,
    ActionType,
    Combatant,
    CombatantKind,
    CombatResult,
    CombatSession,
    ResourcePool,
    SessionMode,
    SessionState,
)

# Content
from rpg_combat.content import ContentRepository

# Engine
from rpg_combat.engine import CombatEngine, DiceRoller


__version__ = "0.1.0"

__all__ = [
    # Core
    "Settings",
    "get_settings",
    "RpgCombatError",
    "CombatError",
    "configure_logging",
    "get_logger",
    # Models
    "ActionOutcome",
    "ActionPayload",
    "ActionType",
    "Combatant",
    "CombatantKind",
    "CombatResult",
    "CombatSession",
    "ResourcePool",
    "SessionMode",
    "SessionState",
    # Content
    "ContentRepository",
    # Engine
    "CombatEngine",
    "DiceRoller",
]
