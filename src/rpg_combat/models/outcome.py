"""Pydantic V2 schemas for action and combat outcomes.

This module defines what the engine hands back to the presentation layer:
the result of a single action, the per-player rewards of a finished fight
and the delta written back to the character store.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from rpg_combat.models.enums import ActionType, SessionState


if TYPE_CHECKING:
    from rpg_combat.engine.dice import RollResult


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Action Input / Output
# =============================================================================


class ActionPayload(BaseModel):
    """Arguments accompanying an action.

    Attributes:
        target_id: Combatant the action is aimed at, if any.
        content_id: Spell, ability or item id for content-driven actions.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    target_id: str | None = Field(default=None, description="Target combatant id")
    content_id: str | None = Field(default=None, description="Spell/ability/item id")


class RollSummary(BaseModel):
    """The d20 roll behind an attack, spell or flee attempt."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    expression: str = Field(description="Formula rolled")
    natural: int | None = Field(default=None, description="Raw die result")
    modifier: int = Field(default=0, description="Total modifier applied")
    total: int = Field(description="Final total")
    target_number: int | None = Field(default=None, description="AC or DC rolled against")
    is_critical: bool = Field(default=False)
    is_fumble: bool = Field(default=False)

    @classmethod
    def from_result(cls, result: RollResult, *, target_number: int | None = None) -> "RollSummary":
        """Build a summary from a dice roll."""
        return cls(
            expression=result.expression,
            natural=result.natural,
            modifier=result.modifier,
            total=result.total,
            target_number=target_number,
            is_critical=result.is_critical,
            is_fumble=result.is_fumble,
        )


class ActionOutcome(BaseModel):
    """Result of resolving one action.

    Attributes:
        actor_id: Combatant that acted.
        target_id: Combatant affected, if any.
        action_type: What was done.
        round: Round in which the action happened.
        roll: The attack/flee roll, if one was made.
        hit: Whether the action landed.
        damage: Damage dealt.
        healing: Health (or mana, for restore items) restored.
        mana_spent: Mana paid for a spell or ability.
        applied_effects: Status effect ids applied.
        removed_effects: Status effect ids removed (cures).
        narrative: One-line description for display.
        ends_turn: False when the action lets the actor keep the turn.
        turn_notes: Start-of-turn effect ticks that followed this action.
        follow_ups: Monster turns resolved automatically afterwards.
        session_state: Session state once everything above resolved.
    """

    model_config = ConfigDict(extra="forbid")

    actor_id: str
    target_id: str | None = None
    action_type: ActionType
    round: int = Field(default=1, ge=1)
    roll: RollSummary | None = None
    hit: bool = False
    damage: int = Field(default=0, ge=0)
    healing: int = Field(default=0, ge=0)
    mana_spent: int = Field(default=0, ge=0)
    applied_effects: list[str] = Field(default_factory=list)
    removed_effects: list[str] = Field(default_factory=list)
    narrative: str = ""
    ends_turn: bool = True
    turn_notes: list[str] = Field(default_factory=list)
    follow_ups: list[ActionOutcome] = Field(default_factory=list)
    session_state: SessionState = SessionState.ACTIVE

    @property
    def is_critical(self) -> bool:
        return self.roll is not None and self.roll.is_critical

    @property
    def total_damage(self) -> int:
        """Damage of this action plus every follow-up monster turn."""
        return self.damage + sum(f.total_damage for f in self.follow_ups)


# =============================================================================
# Combat Results
# =============================================================================


class CombatantDelta(BaseModel):
    """End-of-combat state written back to the character store."""

    model_config = ConfigDict(extra="forbid")

    identity_ref: str
    health: int = Field(ge=0)
    max_health: int = Field(ge=0)
    mana: int = Field(ge=0)
    max_mana: int = Field(ge=0)
    level: int = Field(ge=1)
    xp: int = Field(ge=0)
    gold: int = Field(ge=0)
    deaths_added: int = Field(default=0, ge=0)


class PlayerReward(BaseModel):
    """What a single player gained or lost when combat ended.

    Attributes:
        identity_ref: The player's identity.
        combatant_id: The player's combatant id in the session.
        xp_gained: XP awarded.
        gold_gained: Gold awarded.
        gold_lost: Gold lost to the defeat penalty.
        levels_gained: Number of level-ups.
        new_level: Level after rewards.
        kills: Monster template ids this player landed the killing blow on.
        persisted: Whether the character store accepted the write.
    """

    model_config = ConfigDict(extra="forbid")

    identity_ref: str
    combatant_id: str
    xp_gained: int = Field(default=0, ge=0)
    gold_gained: int = Field(default=0, ge=0)
    gold_lost: int = Field(default=0, ge=0)
    levels_gained: int = Field(default=0, ge=0)
    new_level: int = Field(default=1, ge=1)
    kills: list[str] = Field(default_factory=list)
    persisted: bool = True

    @property
    def leveled_up(self) -> bool:
        return self.levels_gained > 0


class CombatResult(BaseModel):
    """Outcome of a finished combat session."""

    model_config = ConfigDict(extra="forbid")

    session_id: str
    state: SessionState
    reason: str | None = None
    rounds: int = Field(default=1, ge=1)
    rewards: list[PlayerReward] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    ended_at: datetime = Field(default_factory=_utcnow)

    def reward_for(self, identity_ref: str) -> PlayerReward | None:
        """Look up the reward entry for a player identity."""
        for reward in self.rewards:
            if reward.identity_ref == identity_ref:
                return reward
        return None


__all__ = [
    "ActionPayload",
    "RollSummary",
    "ActionOutcome",
    "CombatantDelta",
    "PlayerReward",
    "CombatResult",
]
