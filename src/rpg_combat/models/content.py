"""Pydantic V2 schemas for static combat content.

Monsters, spells, abilities, items and status effects are declarative data.
The engine only interprets a handful of effect kinds (damage, heal, status,
buff for spells and abilities; heal, restore_mana, cure, buff for items), so
content authors add new entries without touching code.
"""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from rpg_combat.core.constants import DEFAULT_MONSTER_ATTACK_BONUS
from rpg_combat.models.combatant import (
    ActiveEffect,
    Combatant,
    DiceExpression,
    ResourcePool,
    validate_formula,
)
from rpg_combat.models.enums import CombatantKind, EffectKind, ItemEffect, TargetRule


# =============================================================================
# Status Effects
# =============================================================================


class StatusEffectDefinition(BaseModel):
    """A status effect as declared in content.

    Attributes:
        id: Effect id (e.g. 'poisoned').
        name: Display name.
        duration: Default duration in turns.
        skip_turn: The bearer loses its turns.
        attack_modifier: Added to the bearer's attack rolls.
        armor_class_modifier: Added to the bearer's armor class.
        damage_per_turn: Formula rolled against the bearer each turn.
        heal_per_turn: Formula healed on the bearer each turn.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    duration: int = Field(default=1, ge=1)
    skip_turn: bool = False
    attack_modifier: int = 0
    armor_class_modifier: int = 0
    damage_per_turn: str | None = None
    heal_per_turn: str | None = None

    @field_validator("damage_per_turn", "heal_per_turn")
    @classmethod
    def validate_tick_formulas(cls, value: str | None) -> str | None:
        return validate_formula(value)

    @property
    def is_beneficial(self) -> bool:
        """Whether the effect helps its bearer."""
        if self.skip_turn or self.damage_per_turn:
            return False
        return bool(self.heal_per_turn) or (self.attack_modifier + self.armor_class_modifier) > 0

    def activate(self, *, source: str | None = None, duration: int | None = None) -> ActiveEffect:
        """Create an active instance of this effect.

        Args:
            source: Combatant id applying the effect.
            duration: Override of the default duration.

        Returns:
            A fresh ActiveEffect.
        """
        return ActiveEffect(
            effect_id=self.id,
            name=self.name,
            remaining=duration or self.duration,
            skip_turn=self.skip_turn,
            attack_modifier=self.attack_modifier,
            armor_class_modifier=self.armor_class_modifier,
            damage_per_turn=self.damage_per_turn,
            heal_per_turn=self.heal_per_turn,
            source=source,
        )


# =============================================================================
# Spells and Abilities
# =============================================================================


class SpellDefinition(BaseModel):
    """A spell a combatant may cast.

    Attributes:
        id: Spell id.
        name: Display name.
        description: Flavour text.
        effect: What the spell does.
        target: Who it may be aimed at. Defaults to enemies for damage and
            status effects, to self for heals and buffs.
        mana_cost: Mana deducted on use.
        cooldown: Own turns before it can be used again.
        formula: Damage or healing formula.
        auto_hit: Damage spells skip the attack roll when set.
        attack_bonus: Extra bonus on the attack roll.
        status_effect: Status effect applied (status/buff, or a damage rider).
        status_duration: Override of the status effect's default duration.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str = ""
    effect: EffectKind
    target: TargetRule | None = None
    mana_cost: int = Field(default=0, ge=0)
    cooldown: int = Field(default=0, ge=0)
    formula: str | None = None
    auto_hit: bool = False
    attack_bonus: int = 0
    status_effect: str | None = None
    status_duration: int | None = Field(default=None, ge=1)

    @field_validator("formula")
    @classmethod
    def validate_effect_formula(cls, value: str | None) -> str | None:
        return validate_formula(value)

    @model_validator(mode="after")
    def validate_effect_fields(self) -> "SpellDefinition":
        """Each effect kind needs the fields its handler reads."""
        if self.effect in (EffectKind.DAMAGE, EffectKind.HEAL) and not self.formula:
            msg = f"{self.id}: '{self.effect}' effects need a formula"
            raise ValueError(msg)
        if self.effect in (EffectKind.STATUS, EffectKind.BUFF) and not self.status_effect:
            msg = f"{self.id}: '{self.effect}' effects need a status_effect"
            raise ValueError(msg)
        return self

    @property
    def target_rule(self) -> TargetRule:
        """The explicit target rule, or the default for the effect kind."""
        if self.target is not None:
            return self.target
        if self.effect in (EffectKind.DAMAGE, EffectKind.STATUS):
            return TargetRule.ENEMY
        return TargetRule.SELF

    @property
    def ends_turn(self) -> bool:
        return True


class AbilityDefinition(SpellDefinition):
    """A class ability. Like a spell, but may leave the turn with the actor.

    Attributes:
        keeps_turn: The actor acts again after using it (e.g. action surge).
    """

    keeps_turn: bool = False

    @property
    def ends_turn(self) -> bool:
        return not self.keeps_turn


# =============================================================================
# Items
# =============================================================================


class ItemDefinition(BaseModel):
    """An inventory item.

    Items without ``effect`` exist in inventories but cannot be used in
    combat.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str = ""
    effect: ItemEffect | None = None
    formula: str | None = None
    cures: str | None = None
    status_effect: str | None = None
    status_duration: int | None = Field(default=None, ge=1)

    @field_validator("formula")
    @classmethod
    def validate_effect_formula(cls, value: str | None) -> str | None:
        return validate_formula(value)

    @model_validator(mode="after")
    def validate_effect_fields(self) -> "ItemDefinition":
        if self.effect in (ItemEffect.HEAL, ItemEffect.RESTORE_MANA) and not self.formula:
            msg = f"{self.id}: '{self.effect}' items need a formula"
            raise ValueError(msg)
        if self.effect is ItemEffect.CURE and not self.cures:
            msg = f"{self.id}: cure items need 'cures'"
            raise ValueError(msg)
        if self.effect is ItemEffect.BUFF and not self.status_effect:
            msg = f"{self.id}: buff items need a status_effect"
            raise ValueError(msg)
        return self

    @property
    def usable_in_combat(self) -> bool:
        return self.effect is not None


# =============================================================================
# Monsters
# =============================================================================


class MonsterTemplate(BaseModel):
    """A monster as declared in content.

    Example:
        >>> goblin = MonsterTemplate(id="goblin", name="Goblin", hp=7, armor_class=13)
        >>> goblin.instantiate("goblin-1", party_size=3).health.max
        14
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    hp: int = Field(ge=1)
    armor_class: int = Field(default=10, ge=0)
    attack_bonus: int = DEFAULT_MONSTER_ATTACK_BONUS
    damage_formula: DiceExpression = "1d6"
    dexterity_modifier: int = 0
    xp_reward: int = Field(default=0, ge=0)
    gold_reward: int = Field(default=0, ge=0)

    @field_validator("damage_formula")
    @classmethod
    def validate_damage_formula(cls, value: str) -> str:
        validate_formula(value)
        return value

    def scaled_hp(self, party_size: int = 1, scaling: float = 0.5) -> int:
        """Base HP plus ``floor(base * (party_size - 1) * scaling)``."""
        extra = max(0, party_size - 1)
        return self.hp + math.floor(self.hp * extra * scaling)

    def instantiate(
        self,
        combatant_id: str,
        *,
        party_size: int = 1,
        scaling: float = 0.5,
        name: str | None = None,
    ) -> Combatant:
        """Create a combatant for this monster.

        Args:
            combatant_id: Id within the session.
            party_size: Number of players facing it.
            scaling: HP scaling per extra player.
            name: Display name override (e.g. 'Goblin 2').

        Returns:
            A monster Combatant at full health.
        """
        return Combatant(
            id=combatant_id,
            name=name or self.name,
            kind=CombatantKind.MONSTER,
            identity_ref=self.id,
            health=ResourcePool.full(self.scaled_hp(party_size, scaling)),
            armor_class=self.armor_class,
            attack_bonus=self.attack_bonus,
            damage_formula=self.damage_formula,
            dexterity_modifier=self.dexterity_modifier,
            xp_reward=self.xp_reward,
            gold_reward=self.gold_reward,
        )


__all__ = [
    "StatusEffectDefinition",
    "SpellDefinition",
    "AbilityDefinition",
    "ItemDefinition",
    "MonsterTemplate",
]
