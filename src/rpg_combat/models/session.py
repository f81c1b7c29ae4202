"""Pydantic V2 schema for a live combat session.

A session holds the ordered combatants of one fight, whose turn it is, the
round counter and the lifecycle state. It is created when combat starts,
mutated only by the turn manager and action resolver, and dropped from the
store once its state becomes terminal.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, model_validator

from rpg_combat.models.combatant import Combatant
from rpg_combat.models.enums import SessionMode, SessionState
from rpg_combat.models.outcome import ActionOutcome


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CombatSession(BaseModel):
    """State of one solo or group fight.

    Attributes:
        id: Session key (owner identity, or party id for group combat).
        owner: Identity that started the fight; the party leader in groups.
        mode: Solo or group.
        combatants: Combatants in initiative order.
        current_turn_index: Index of the combatant whose turn it is.
        round: Round counter, starting at 1.
        state: Lifecycle state.
        created_at: When the session was created.
        last_action_at: When the last action was accepted.
        ended_reason: Why the session ended, for aborted sessions.
        log: Outcomes resolved so far.

    Example:
        >>> session.current_combatant.name
        'Aria'
        >>> [c.name for c in session.living_monsters]
        ['Goblin']
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: str = Field(min_length=1, description="Session key")
    owner: str = Field(min_length=1, description="Initiating identity")
    mode: SessionMode = Field(default=SessionMode.SOLO)
    combatants: list[Combatant] = Field(min_length=2, description="Initiative order")
    current_turn_index: int = Field(default=0, ge=0)
    round: int = Field(default=1, ge=1)
    state: SessionState = Field(default=SessionState.ACTIVE)
    created_at: datetime = Field(default_factory=_utcnow)
    last_action_at: datetime = Field(default_factory=_utcnow)
    ended_reason: str | None = None
    log: list[ActionOutcome] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_roster(self) -> "CombatSession":
        """Ids must be unique, both sides present and the index in range."""
        ids = [c.id for c in self.combatants]
        if len(ids) != len(set(ids)):
            msg = "Combatant ids must be unique within a session"
            raise ValueError(msg)
        if not any(c.is_player for c in self.combatants):
            msg = "A session needs at least one player"
            raise ValueError(msg)
        if not any(c.is_monster for c in self.combatants):
            msg = "A session needs at least one monster"
            raise ValueError(msg)
        if self.current_turn_index >= len(self.combatants):
            msg = (
                f"current_turn_index {self.current_turn_index} out of range "
                f"for {len(self.combatants)} combatants"
            )
            raise ValueError(msg)
        return self

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    @property
    def current_combatant(self) -> Combatant:
        """The combatant whose turn it is."""
        return self.combatants[self.current_turn_index]

    @property
    def players(self) -> list[Combatant]:
        return [c for c in self.combatants if c.is_player]

    @property
    def monsters(self) -> list[Combatant]:
        return [c for c in self.combatants if c.is_monster]

    @property
    def living_players(self) -> list[Combatant]:
        return [c for c in self.combatants if c.is_player and c.is_alive]

    @property
    def living_monsters(self) -> list[Combatant]:
        return [c for c in self.combatants if c.is_monster and c.is_alive]

    @property
    def identities(self) -> set[str]:
        """Identities of every player in the session."""
        return {c.identity_ref for c in self.players}

    def get_combatant(self, combatant_id: str) -> Combatant | None:
        """Find a combatant by id."""
        for combatant in self.combatants:
            if combatant.id == combatant_id:
                return combatant
        return None

    def player_for(self, identity: str) -> Combatant | None:
        """Find the player combatant controlled by an identity."""
        for combatant in self.players:
            if combatant.identity_ref == identity:
                return combatant
        return None

    def opponents_of(self, combatant: Combatant) -> list[Combatant]:
        """Living combatants on the other side."""
        return [c for c in self.combatants if c.kind != combatant.kind and c.is_alive]

    def allies_of(self, combatant: Combatant) -> list[Combatant]:
        """Living combatants on the same side, including the combatant."""
        return [c for c in self.combatants if c.kind == combatant.kind and c.is_alive]

    def touch(self, now: datetime | None = None) -> None:
        """Record activity for idle-expiry purposes."""
        self.last_action_at = now or _utcnow()


__all__ = ["CombatSession"]
