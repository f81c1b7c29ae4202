"""Pydantic V2 schemas for the RPG combat engine.

Submodules:
    enums: Enumeration types (ActionType, SessionState, EffectKind, ...)
    combatant: Combatant state (ResourcePool, ActiveEffect, Combatant)
    session: The live CombatSession
    outcome: Action and combat results
    content: Static content definitions (monsters, spells, items, effects)
    progression: XP curve and level-up rules

Example:
    >>> from rpg_combat.models import Combatant, CombatantKind, ResourcePool
    >>> hero = Combatant(
    ...     id="p1", name="Aria", kind=CombatantKind.PLAYER,
    ...     identity_ref="1234", health=ResourcePool.full(20),
    ... )
"""

from __future__ import annotations

# =============================================================================
# Enumerations
# =============================================================================
from rpg_combat.models.enums import (
    ActionType,
    CombatantKind,
    EffectKind,
    ItemEffect,
    SessionMode,
    SessionState,
    TargetRule,
)

# =============================================================================
# Combat State
# =============================================================================
from rpg_combat.models.combatant import (
    ActiveEffect,
    Combatant,
    ResourcePool,
    validate_formula,
)
from rpg_combat.models.outcome import (
    ActionOutcome,
    ActionPayload,
    CombatantDelta,
    CombatResult,
    PlayerReward,
    RollSummary,
)
from rpg_combat.models.session import CombatSession

# =============================================================================
# Content
# =============================================================================
from rpg_combat.models.content import (
    AbilityDefinition,
    ItemDefinition,
    MonsterTemplate,
    SpellDefinition,
    StatusEffectDefinition,
)

# =============================================================================
# Progression
# =============================================================================
from rpg_combat.models.progression import (
    LevelProgress,
    apply_experience,
    xp_for_next_level,
)


__all__ = [
    # Enums
    "ActionType",
    "CombatantKind",
    "EffectKind",
    "ItemEffect",
    "SessionMode",
    "SessionState",
    "TargetRule",
    # Combat state
    "ActiveEffect",
    "Combatant",
    "ResourcePool",
    "validate_formula",
    "ActionOutcome",
    "ActionPayload",
    "CombatantDelta",
    "CombatResult",
    "PlayerReward",
    "RollSummary",
    "CombatSession",
    # Content
    "AbilityDefinition",
    "ItemDefinition",
    "MonsterTemplate",
    "SpellDefinition",
    "StatusEffectDefinition",
    # Progression
    "LevelProgress",
    "apply_experience",
    "xp_for_next_level",
]
