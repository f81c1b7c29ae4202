"""Enumeration types for the RPG combat engine.

This module defines the closed sets of values used throughout combat:
combatant kinds, session modes and states, player action types and the
kinds of effect that content definitions may declare.
"""

from __future__ import annotations

from enum import StrEnum


class CombatantKind(StrEnum):
    """Which side of the fight a combatant is on."""

    PLAYER = "player"
    MONSTER = "monster"


class SessionMode(StrEnum):
    """Solo combat belongs to one player, group combat to a party."""

    SOLO = "solo"
    GROUP = "group"


class SessionState(StrEnum):
    """Lifecycle state of a combat session.

    ``ACTIVE`` is the only non-terminal state. Every other state ends the
    session and removes it from the store.
    """

    ACTIVE = "active"
    VICTORY = "victory"
    DEFEAT = "defeat"
    FLED = "fled"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        """Whether the session has ended."""
        return self is not SessionState.ACTIVE


class ActionType(StrEnum):
    """Actions a player may take on their turn."""

    ATTACK = "attack"
    CAST_SPELL = "cast_spell"
    USE_ABILITY = "use_ability"
    DEFEND = "defend"
    FLEE = "flee"
    USE_ITEM = "use_item"

    @property
    def label(self) -> str:
        """Human-readable label (e.g. 'Cast Spell')."""
        return self.value.replace("_", " ").title()


class EffectKind(StrEnum):
    """What a spell or ability does when it resolves."""

    DAMAGE = "damage"
    HEAL = "heal"
    STATUS = "status"
    BUFF = "buff"


class TargetRule(StrEnum):
    """Who a spell or ability may be aimed at."""

    ENEMY = "enemy"
    ALLY = "ally"
    SELF = "self"


class ItemEffect(StrEnum):
    """Combat effects an inventory item may declare."""

    HEAL = "heal"
    RESTORE_MANA = "restore_mana"
    CURE = "cure"
    BUFF = "buff"


__all__ = [
    "CombatantKind",
    "SessionMode",
    "SessionState",
    "ActionType",
    "EffectKind",
    "TargetRule",
    "ItemEffect",
]
