"""Pydantic V2 schemas for combat participants.

This module defines the mutable combatant state a session holds for each
player and monster: health and mana pools, armor and attack figures, active
status effects and cooldowns.

Models:
    ResourcePool: A bounded pool such as health or mana.
    ActiveEffect: A status effect currently applied to a combatant.
    Combatant: A player or monster taking part in a session.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from rpg_combat.core.constants import UNARMED_DAMAGE
from rpg_combat.core.exceptions import InvalidFormula
from rpg_combat.models.enums import CombatantKind


# =============================================================================
# Validators
# =============================================================================


def validate_formula(value: str | None) -> str | None:
    """Check that a dice formula parses.

    Args:
        value: Formula text, or None.

    Returns:
        The formula unchanged.

    Raises:
        ValueError: If the formula is not a valid ``NdM+K`` expression.
    """
    from rpg_combat.engine.dice import parse_formula

    if value is None:
        return value
    try:
        parse_formula(value)
    except InvalidFormula as exc:
        raise ValueError(exc.message) from exc
    return value


DiceExpression = Annotated[str, Field(min_length=2, description="Dice formula such as 1d8+2")]


# =============================================================================
# Resource Pool
# =============================================================================


class ResourcePool(BaseModel):
    """A bounded resource such as health or mana.

    Attributes:
        current: Current amount, never below 0 or above ``max``.
        max: Maximum amount.

    Example:
        >>> pool = ResourcePool(current=10, max=12)
        >>> pool.reduce(15)
        10
        >>> pool.current
        0
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    current: int = Field(ge=0, description="Current amount")
    max: int = Field(ge=0, description="Maximum amount")

    @model_validator(mode="after")
    def validate_bounds(self) -> "ResourcePool":
        """Ensure current never exceeds max."""
        if self.current > self.max:
            msg = f"current ({self.current}) exceeds max ({self.max})"
            raise ValueError(msg)
        return self

    @classmethod
    def full(cls, amount: int) -> "ResourcePool":
        """Create a pool filled to its maximum."""
        return cls(current=amount, max=amount)

    @property
    def is_empty(self) -> bool:
        return self.current == 0

    @property
    def is_full(self) -> bool:
        return self.current == self.max

    def reduce(self, amount: int) -> int:
        """Remove up to ``amount``, flooring at 0.

        Returns:
            The amount actually removed.
        """
        removed = min(self.current, max(0, amount))
        self.current -= removed
        return removed

    def restore(self, amount: int) -> int:
        """Add up to ``amount``, capping at max.

        Returns:
            The amount actually restored.
        """
        restored = min(self.max - self.current, max(0, amount))
        self.current += restored
        return restored


# =============================================================================
# Active Effect
# =============================================================================


class ActiveEffect(BaseModel):
    """A status effect currently applied to a combatant.

    Attributes:
        effect_id: Status effect id from content.
        name: Display name.
        remaining: Turns left; the effect is dropped when it reaches 0.
        skip_turn: The bearer loses its turns while this is active.
        attack_modifier: Added to the bearer's attack rolls.
        armor_class_modifier: Added to the bearer's armor class.
        damage_per_turn: Formula rolled against the bearer each turn.
        heal_per_turn: Formula healed on the bearer each turn.
        source: Combatant id that applied the effect.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    effect_id: str = Field(min_length=1, description="Status effect id")
    name: str = Field(default="", description="Display name")
    remaining: int = Field(ge=0, description="Turns remaining")
    skip_turn: bool = Field(default=False, description="Bearer skips its turns")
    attack_modifier: int = Field(default=0, description="Attack roll modifier")
    armor_class_modifier: int = Field(default=0, description="Armor class modifier")
    damage_per_turn: str | None = Field(default=None, description="Damage each turn")
    heal_per_turn: str | None = Field(default=None, description="Healing each turn")
    source: str | None = Field(default=None, description="Combatant that applied it")

    @field_validator("damage_per_turn", "heal_per_turn")
    @classmethod
    def validate_tick_formulas(cls, value: str | None) -> str | None:
        return validate_formula(value)

    @property
    def display_name(self) -> str:
        return self.name or self.effect_id.replace("_", " ").title()


# =============================================================================
# Combatant
# =============================================================================


class Combatant(BaseModel):
    """A player or monster participating in a combat session.

    Attributes:
        id: Identifier unique within the session.
        name: Display name.
        kind: Player or monster.
        identity_ref: Owning user identity for players, template id for
            monsters. Used for turn validation and persistence only.
        health: Health pool; 0 means defeated.
        mana: Mana pool; 0/0 for non-casters.
        armor_class: Base armor class.
        attack_bonus: Added to attack rolls.
        damage_formula: Weapon or natural attack damage.
        dexterity_modifier: Used for initiative, flee checks and tiebreaks.
        initiative: Initiative total rolled at combat start.
        status_effects: Active status effects.
        cooldowns: Spell/ability id to turns until usable again.
        defending: Set by the defend action until the next own turn.
        spells: Spell ids this combatant knows.
        abilities: Ability ids this combatant knows.
        level: Character level (players).
        xp: Progress towards the next level (players).
        gold: Carried gold (players).
        xp_reward: XP granted when defeated (monsters).
        gold_reward: Gold granted when defeated (monsters).
        damage_dealt: Total damage dealt during the session.
        last_hit_by: Combatant id that dealt the killing blow.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: str = Field(min_length=1, description="Combatant id")
    name: str = Field(min_length=1, max_length=100, description="Display name")
    kind: CombatantKind = Field(description="Player or monster")
    identity_ref: str = Field(min_length=1, description="Owner identity or template id")

    health: ResourcePool = Field(description="Health pool")
    mana: ResourcePool = Field(
        default_factory=lambda: ResourcePool(current=0, max=0),
        description="Mana pool",
    )
    armor_class: int = Field(default=10, ge=0, description="Base armor class")
    attack_bonus: int = Field(default=0, description="Attack roll bonus")
    damage_formula: DiceExpression = Field(default=UNARMED_DAMAGE, description="Damage formula")
    dexterity_modifier: int = Field(default=0, description="DEX modifier")
    initiative: int = Field(default=0, description="Initiative total")

    status_effects: list[ActiveEffect] = Field(default_factory=list)
    cooldowns: dict[str, int] = Field(default_factory=dict)
    defending: bool = Field(default=False, description="Defending until next turn")

    spells: list[str] = Field(default_factory=list, description="Known spell ids")
    abilities: list[str] = Field(default_factory=list, description="Known ability ids")

    level: int = Field(default=1, ge=1, description="Character level")
    xp: int = Field(default=0, ge=0, description="XP towards next level")
    gold: int = Field(default=0, ge=0, description="Carried gold")
    xp_reward: int = Field(default=0, ge=0, description="XP yield when defeated")
    gold_reward: int = Field(default=0, ge=0, description="Gold yield when defeated")

    damage_dealt: int = Field(default=0, ge=0, description="Damage dealt this session")
    last_hit_by: str | None = Field(default=None, description="Killing blow attribution")

    @field_validator("damage_formula")
    @classmethod
    def validate_damage_formula(cls, value: str) -> str:
        validate_formula(value)
        return value

    @field_validator("cooldowns")
    @classmethod
    def validate_cooldowns(cls, value: dict[str, int]) -> dict[str, int]:
        """Cooldowns count down to 0 and never go negative."""
        for content_id, remaining in value.items():
            if remaining < 0:
                msg = f"Cooldown for {content_id!r} cannot be negative"
                raise ValueError(msg)
        return value

    @property
    def is_defeated(self) -> bool:
        """A combatant at 0 health is out of the fight."""
        return self.health.current == 0

    @property
    def is_alive(self) -> bool:
        return self.health.current > 0

    @property
    def is_player(self) -> bool:
        return self.kind is CombatantKind.PLAYER

    @property
    def is_monster(self) -> bool:
        return self.kind is CombatantKind.MONSTER

    @property
    def is_skipping_turn(self) -> bool:
        """Whether an active effect takes away this combatant's turn."""
        return any(effect.skip_turn for effect in self.status_effects)

    @property
    def effect_attack_modifier(self) -> int:
        """Sum of attack modifiers from active effects."""
        return sum(effect.attack_modifier for effect in self.status_effects)

    @property
    def effect_armor_modifier(self) -> int:
        """Sum of armor class modifiers from active effects."""
        return sum(effect.armor_class_modifier for effect in self.status_effects)

    def effective_armor_class(self, defend_bonus: int = 0) -> int:
        """Armor class including the defend bonus and status modifiers.

        Args:
            defend_bonus: Bonus applied while ``defending`` is set.

        Returns:
            The armor class an attack roll must meet, never below 0.
        """
        armor = self.armor_class + self.effect_armor_modifier
        if self.defending:
            armor += defend_bonus
        return max(0, armor)

    def get_effect(self, effect_id: str) -> ActiveEffect | None:
        """Find an active effect by id."""
        for effect in self.status_effects:
            if effect.effect_id == effect_id:
                return effect
        return None

    def has_effect(self, effect_id: str) -> bool:
        return self.get_effect(effect_id) is not None

    def apply_effect(self, effect: ActiveEffect) -> None:
        """Apply a status effect, refreshing the duration if already active."""
        existing = self.get_effect(effect.effect_id)
        if existing is None:
            self.status_effects = [*self.status_effects, effect]
            return
        existing.remaining = max(existing.remaining, effect.remaining)
        existing.source = effect.source

    def remove_effect(self, effect_id: str) -> ActiveEffect | None:
        """Remove an active effect.

        Returns:
            The removed effect, or None if it was not active.
        """
        effect = self.get_effect(effect_id)
        if effect is not None:
            self.status_effects = [e for e in self.status_effects if e.effect_id != effect_id]
        return effect

    def cooldown_remaining(self, content_id: str) -> int:
        return self.cooldowns.get(content_id, 0)

    def set_cooldown(self, content_id: str, turns: int) -> None:
        cooldowns = dict(self.cooldowns)
        if turns > 0:
            cooldowns[content_id] = turns
        else:
            cooldowns.pop(content_id, None)
        self.cooldowns = cooldowns

    def take_damage(self, amount: int, *, source: str | None = None) -> int:
        """Subtract damage from health, flooring at 0.

        Args:
            amount: Damage to apply.
            source: Attacker combatant id, recorded on a killing blow.

        Returns:
            Damage actually applied.
        """
        applied = self.health.reduce(amount)
        if applied and self.health.current == 0 and source is not None:
            self.last_hit_by = source
        return applied

    def heal(self, amount: int) -> int:
        """Restore health, capping at max. Returns the amount healed."""
        return self.health.restore(amount)


__all__ = [
    "validate_formula",
    "DiceExpression",
    "ResourcePool",
    "ActiveEffect",
    "Combatant",
]
