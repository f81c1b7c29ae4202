"""Resolution of combat actions.

Each ``ActionType`` has exactly one handler. A handler first validates
everything it needs (target, content, mana, cooldown, item possession) and
only then mutates combatants, so a rejected action leaves the session
untouched.

Handlers never move the turn; the caller decides, based on
``ActionOutcome.ends_turn``, whether to hand the turn on.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from rpg_combat.collaborators import InventoryService
from rpg_combat.content.repository import ContentRepository
from rpg_combat.core.config import CombatSettings
from rpg_combat.core.constants import MIN_HIT_DAMAGE
from rpg_combat.core.exceptions import (
    ActionNotAvailable,
    ContentNotFound,
    GameEngineError,
    InsufficientResource,
    InvalidTarget,
    ItemNotUsable,
    OnCooldown,
)
from rpg_combat.core.logging import get_logger
from rpg_combat.engine.dice import CriticalRule, DiceRoller
from rpg_combat.models.combatant import Combatant
from rpg_combat.models.content import ItemDefinition, SpellDefinition
from rpg_combat.models.enums import ActionType, EffectKind, ItemEffect, SessionMode, SessionState, TargetRule
from rpg_combat.models.outcome import ActionOutcome, ActionPayload, RollSummary
from rpg_combat.models.session import CombatSession


logger = get_logger(__name__)

Handler = Callable[[CombatSession, Combatant, ActionPayload], ActionOutcome]


@dataclass
class StrikeResult:
    """Result of an attack roll and the damage it dealt."""

    roll: RollSummary | None
    hit: bool
    damage: int = 0

    @property
    def is_critical(self) -> bool:
        return self.roll is not None and self.roll.is_critical


class ActionResolver:
    """Resolves player and monster actions against a session.

    Example:
        >>> resolver = ActionResolver(DiceRoller(), content, settings.combat)
        >>> outcome = resolver.resolve(session, hero, ActionType.ATTACK, ActionPayload())
        >>> outcome.hit
        True
    """

    def __init__(
        self,
        roller: DiceRoller,
        content: ContentRepository,
        settings: CombatSettings,
        *,
        inventory: InventoryService | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            roller: Dice roller for every roll an action makes.
            content: Spell, ability, item and status effect lookup.
            settings: Combat rule settings.
            inventory: Item possession and consumption; items cannot be
                used without one.

        Raises:
            GameEngineError: If an ActionType has no handler.
        """
        self._roller = roller
        self._content = content
        self._settings = settings
        self._inventory = inventory

        self._handlers: dict[ActionType, Handler] = {
            ActionType.ATTACK: self._attack,
            ActionType.CAST_SPELL: self._cast_spell,
            ActionType.USE_ABILITY: self._use_ability,
            ActionType.DEFEND: self._defend,
            ActionType.FLEE: self._flee,
            ActionType.USE_ITEM: self._use_item,
        }
        missing = set(ActionType) - set(self._handlers)
        if missing:
            raise GameEngineError(
                f"No handler for action types: {', '.join(sorted(missing))}",
                details={"missing": sorted(missing)},
            )

    def resolve(
        self,
        session: CombatSession,
        actor: Combatant,
        action_type: ActionType,
        payload: ActionPayload | None = None,
    ) -> ActionOutcome:
        """Resolve one action for ``actor``.

        Args:
            session: The live session.
            actor: The combatant acting (already validated to hold the turn).
            action_type: What to do.
            payload: Target and content arguments.

        Returns:
            The ActionOutcome.

        Raises:
            CombatError: Any of its subclasses when the action is rejected;
                the session is left unchanged.
        """
        handler = self._handlers[ActionType(action_type)]
        outcome = handler(session, actor, payload or ActionPayload())
        logger.info(
            "Action resolved",
            actor=actor.name,
            action=outcome.action_type.value,
            target=outcome.target_id,
            hit=outcome.hit,
            damage=outcome.damage,
            healing=outcome.healing,
        )
        return outcome

    # =========================================================================
    # Target Resolution
    # =========================================================================

    def _opponent(self, session: CombatSession, actor: Combatant, target_id: str | None) -> Combatant:
        """A living combatant on the other side; the first one if none chosen."""
        if target_id is None:
            opponents = session.opponents_of(actor)
            if not opponents:
                raise InvalidTarget("No living opponent to target", combatant_id=actor.id)
            return opponents[0]

        target = session.get_combatant(target_id)
        if target is None:
            raise InvalidTarget(f"Unknown target: {target_id}", combatant_id=actor.id)
        if target.kind == actor.kind:
            raise InvalidTarget(f"{target.name} is not an opponent", combatant_id=actor.id)
        if target.is_defeated:
            raise InvalidTarget(f"{target.name} is already down", combatant_id=actor.id)
        return target

    def _ally(self, session: CombatSession, actor: Combatant, target_id: str | None) -> Combatant:
        """A living combatant on the actor's side; the actor if none chosen."""
        if target_id is None or target_id == actor.id:
            return actor

        target = session.get_combatant(target_id)
        if target is None:
            raise InvalidTarget(f"Unknown target: {target_id}", combatant_id=actor.id)
        if target.kind != actor.kind:
            raise InvalidTarget(f"{target.name} is not an ally", combatant_id=actor.id)
        if target.is_defeated:
            raise InvalidTarget(f"{target.name} is down and cannot be helped", combatant_id=actor.id)
        return target

    def _target_for_rule(
        self,
        session: CombatSession,
        actor: Combatant,
        rule: TargetRule,
        target_id: str | None,
    ) -> Combatant:
        if rule is TargetRule.ENEMY:
            return self._opponent(session, actor, target_id)
        if rule is TargetRule.SELF:
            if target_id is not None and target_id != actor.id:
                raise InvalidTarget("This can only target yourself", combatant_id=actor.id)
            return actor
        return self._ally(session, actor, target_id)

    # =========================================================================
    # Shared Mechanics
    # =========================================================================

    def strike(
        self,
        actor: Combatant,
        target: Combatant,
        *,
        damage_formula: str,
        extra_bonus: int = 0,
        auto_hit: bool = False,
        rule: CriticalRule | None = None,
    ) -> StrikeResult:
        """Roll to hit and apply damage.

        A natural 20 always hits and is critical, a natural 1 always misses,
        otherwise ``d20 + bonuses >= target effective AC`` hits. A hit deals
        at least 1 damage; health is floored at 0.

        Args:
            actor: The attacker.
            target: The defender.
            damage_formula: Formula rolled on a hit.
            extra_bonus: Bonus on top of the actor's attack bonus.
            auto_hit: Skip the attack roll.
            rule: Critical hit rule; defaults by attacker kind.

        Returns:
            The StrikeResult.
        """
        if auto_hit:
            summary = None
            hit = True
            critical = False
        else:
            armor = target.effective_armor_class(self._settings.defend_armor_bonus)
            modifier = actor.attack_bonus + extra_bonus + actor.effect_attack_modifier
            rolled = self._roller.roll_d20(modifier)
            summary = RollSummary.from_result(rolled, target_number=armor)
            critical = rolled.is_critical
            hit = critical or (not rolled.is_fumble and rolled.total >= armor)

        if not hit:
            return StrikeResult(roll=summary, hit=False)

        if rule is None:
            rule = (
                self._settings.critical_hit_rule
                if actor.is_player
                else self._settings.monster_critical_hit_rule
            )
        damage = self._roller.roll_damage(damage_formula, critical=critical, rule=rule).total
        applied = target.take_damage(max(MIN_HIT_DAMAGE, damage), source=actor.id)
        actor.damage_dealt += applied
        return StrikeResult(roll=summary, hit=True, damage=applied)

    def _strike_narrative(self, actor: Combatant, target: Combatant, strike: StrikeResult, what: str) -> str:
        if not strike.hit:
            if strike.roll is not None and strike.roll.is_fumble:
                return f"{actor.name} fumbles {what} against {target.name}!"
            return f"{actor.name}'s {what} misses {target.name}."
        text = f"{actor.name}'s {what} hits {target.name} for {strike.damage} damage"
        if strike.is_critical:
            text = f"Critical! {text}"
        if target.is_defeated:
            text += f", and {target.name} falls"
        return text + "."

    # =========================================================================
    # Handlers
    # =========================================================================

    def _attack(self, session: CombatSession, actor: Combatant, payload: ActionPayload) -> ActionOutcome:
        target = self._opponent(session, actor, payload.target_id)
        strike = self.strike(actor, target, damage_formula=actor.damage_formula)
        return ActionOutcome(
            actor_id=actor.id,
            target_id=target.id,
            action_type=ActionType.ATTACK,
            round=session.round,
            roll=strike.roll,
            hit=strike.hit,
            damage=strike.damage,
            narrative=self._strike_narrative(actor, target, strike, "attack"),
        )

    def _cast_spell(self, session: CombatSession, actor: Combatant, payload: ActionPayload) -> ActionOutcome:
        if not payload.content_id:
            raise ActionNotAvailable("Choose a spell to cast", combatant_id=actor.id)
        if payload.content_id not in actor.spells:
            raise ActionNotAvailable(
                f"{actor.name} does not know {payload.content_id}", combatant_id=actor.id
            )
        spell = self._content.spell(payload.content_id)
        return self._resolve_castable(session, actor, spell, ActionType.CAST_SPELL, payload.target_id)

    def _use_ability(self, session: CombatSession, actor: Combatant, payload: ActionPayload) -> ActionOutcome:
        if not payload.content_id:
            raise ActionNotAvailable("Choose an ability to use", combatant_id=actor.id)
        if payload.content_id not in actor.abilities:
            raise ActionNotAvailable(
                f"{actor.name} does not have {payload.content_id}", combatant_id=actor.id
            )
        ability = self._content.ability(payload.content_id)
        return self._resolve_castable(session, actor, ability, ActionType.USE_ABILITY, payload.target_id)

    def _resolve_castable(
        self,
        session: CombatSession,
        actor: Combatant,
        spell: SpellDefinition,
        action_type: ActionType,
        target_id: str | None,
    ) -> ActionOutcome:
        """Pay for and resolve a spell or ability by its effect kind."""
        if actor.mana.current < spell.mana_cost:
            raise InsufficientResource(
                f"{spell.name} needs {spell.mana_cost} mana, {actor.name} has {actor.mana.current}",
                required=spell.mana_cost,
                available=actor.mana.current,
                combatant_id=actor.id,
            )
        remaining = actor.cooldown_remaining(spell.id)
        if remaining > 0:
            raise OnCooldown(
                f"{spell.name} is recharging ({remaining} turn(s) left)",
                content_id=spell.id,
                remaining=remaining,
                combatant_id=actor.id,
            )
        target = self._target_for_rule(session, actor, spell.target_rule, target_id)
        status = self._content.status_effect(spell.status_effect) if spell.status_effect else None

        # Validation done; from here on the action mutates state.
        actor.mana.reduce(spell.mana_cost)
        actor.set_cooldown(spell.id, spell.cooldown)

        outcome = ActionOutcome(
            actor_id=actor.id,
            target_id=target.id,
            action_type=action_type,
            round=session.round,
            mana_spent=spell.mana_cost,
            ends_turn=spell.ends_turn,
        )

        if spell.effect is EffectKind.DAMAGE:
            strike = self.strike(
                actor,
                target,
                damage_formula=spell.formula or actor.damage_formula,
                extra_bonus=spell.attack_bonus,
                auto_hit=spell.auto_hit,
            )
            outcome.roll = strike.roll
            outcome.hit = strike.hit
            outcome.damage = strike.damage
            outcome.narrative = self._strike_narrative(actor, target, strike, spell.name)
            if strike.hit and status is not None and target.is_alive:
                target.apply_effect(status.activate(source=actor.id, duration=spell.status_duration))
                outcome.applied_effects.append(status.id)
                outcome.narrative += f" {target.name} is {status.name.lower()}."

        elif spell.effect is EffectKind.HEAL:
            healed = target.heal(self._roller.roll(spell.formula or "1d4").total)
            outcome.hit = True
            outcome.healing = healed
            outcome.narrative = f"{actor.name}'s {spell.name} restores {healed} HP to {target.name}."

        elif spell.effect is EffectKind.STATUS:
            landed = True
            if target.kind != actor.kind and not spell.auto_hit:
                strike_roll = self._roller.roll_d20(
                    actor.attack_bonus + spell.attack_bonus + actor.effect_attack_modifier
                )
                armor = target.effective_armor_class(self._settings.defend_armor_bonus)
                outcome.roll = RollSummary.from_result(strike_roll, target_number=armor)
                landed = strike_roll.is_critical or (
                    not strike_roll.is_fumble and strike_roll.total >= armor
                )
            outcome.hit = landed
            if landed:
                target.apply_effect(status.activate(source=actor.id, duration=spell.status_duration))
                outcome.applied_effects.append(status.id)
                outcome.narrative = f"{actor.name}'s {spell.name} leaves {target.name} {status.name.lower()}."
            else:
                outcome.narrative = f"{target.name} resists {actor.name}'s {spell.name}."

        else:
            target.apply_effect(status.activate(source=actor.id, duration=spell.status_duration))
            outcome.hit = True
            outcome.applied_effects.append(status.id)
            outcome.narrative = f"{actor.name}'s {spell.name} grants {target.name} {status.name}."

        if not spell.ends_turn:
            outcome.narrative += f" {actor.name} may act again."
        return outcome

    def _defend(self, session: CombatSession, actor: Combatant, payload: ActionPayload) -> ActionOutcome:
        actor.defending = True
        return ActionOutcome(
            actor_id=actor.id,
            target_id=actor.id,
            action_type=ActionType.DEFEND,
            round=session.round,
            hit=True,
            narrative=(
                f"{actor.name} takes a defensive stance "
                f"(+{self._settings.defend_armor_bonus} AC until their next turn)."
            ),
        )

    def _flee(self, session: CombatSession, actor: Combatant, payload: ActionPayload) -> ActionOutcome:
        if session.mode is SessionMode.GROUP and actor.identity_ref != session.owner:
            raise ActionNotAvailable("Only the party leader can order a retreat", combatant_id=actor.id)

        if self._settings.flee_mode == "opposed" and session.living_monsters:
            pursuer = max(session.living_monsters, key=lambda m: m.dexterity_modifier)
            difficulty = self._roller.roll_d20(pursuer.dexterity_modifier).total
        else:
            difficulty = self._settings.flee_difficulty

        rolled = self._roller.roll_d20(actor.dexterity_modifier)
        escaped = rolled.total >= difficulty
        if escaped:
            session.state = SessionState.FLED
            narrative = f"{actor.name} escapes the fight!"
        else:
            narrative = f"{actor.name} tries to flee but cannot get away."
        logger.info("Flee attempted", actor=actor.name, total=rolled.total, difficulty=difficulty)
        return ActionOutcome(
            actor_id=actor.id,
            action_type=ActionType.FLEE,
            round=session.round,
            roll=RollSummary.from_result(rolled, target_number=difficulty),
            hit=escaped,
            narrative=narrative,
        )

    def _use_item(self, session: CombatSession, actor: Combatant, payload: ActionPayload) -> ActionOutcome:
        if not payload.content_id:
            raise ItemNotUsable("Choose an item to use", combatant_id=actor.id)
        try:
            item = self._content.item(payload.content_id)
        except ContentNotFound as exc:
            raise ItemNotUsable(f"Unknown item: {payload.content_id}", combatant_id=actor.id) from exc
        if self._inventory is None or not self._inventory.has_item(actor.identity_ref, item.id):
            raise ItemNotUsable(f"{actor.name} has no {item.name}", combatant_id=actor.id)
        if item.effect is None:
            raise ItemNotUsable(f"{item.name} cannot be used in combat", combatant_id=actor.id)

        target = self._ally(session, actor, payload.target_id)
        self._check_item_applies(item, target, actor)
        status = self._content.status_effect(item.status_effect) if item.status_effect else None

        self._inventory.consume_item(actor.identity_ref, item.id)

        outcome = ActionOutcome(
            actor_id=actor.id,
            target_id=target.id,
            action_type=ActionType.USE_ITEM,
            round=session.round,
            hit=True,
        )
        if item.effect is ItemEffect.HEAL:
            outcome.healing = target.heal(self._roller.roll(item.formula or "1d4").total)
            outcome.narrative = f"{actor.name} uses {item.name}: {target.name} recovers {outcome.healing} HP."
        elif item.effect is ItemEffect.RESTORE_MANA:
            outcome.healing = target.mana.restore(self._roller.roll(item.formula or "1d4").total)
            outcome.narrative = f"{actor.name} uses {item.name}: {target.name} recovers {outcome.healing} mana."
        elif item.effect is ItemEffect.CURE:
            target.remove_effect(item.cures)
            outcome.removed_effects.append(item.cures)
            outcome.narrative = f"{actor.name} uses {item.name}: {target.name} is no longer {item.cures}."
        else:
            target.apply_effect(status.activate(source=actor.id, duration=item.status_duration))
            outcome.applied_effects.append(status.id)
            outcome.narrative = f"{actor.name} uses {item.name}: {target.name} gains {status.name}."
        return outcome

    def _check_item_applies(self, item: ItemDefinition, target: Combatant, actor: Combatant) -> None:
        """Reject items that would do nothing to the target."""
        if item.effect is ItemEffect.CURE and item.cures and not target.has_effect(item.cures):
            raise ItemNotUsable(f"{target.name} is not {item.cures}", combatant_id=actor.id)
        if item.effect is ItemEffect.RESTORE_MANA:
            if target.mana.max == 0:
                raise ItemNotUsable(f"{target.name} has no mana to restore", combatant_id=actor.id)
            if target.mana.is_full:
                raise ItemNotUsable(f"{target.name}'s mana is already full", combatant_id=actor.id)


__all__ = ["Handler", "StrikeResult", "ActionResolver"]
