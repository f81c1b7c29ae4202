"""Turn and initiative management for combat sessions.

This module owns the turn order of a session: it rolls initiative, validates
that the acting identity holds the turn, runs start-of-turn processing
(defend reset, cooldowns, status effect ticks) and detects victory/defeat.

``TurnManager.advance_turn`` is the only code path that moves
``CombatSession.current_turn_index``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from rpg_combat.core.exceptions import InvalidGameStateError, NotYourTurn
from rpg_combat.core.logging import get_logger
from rpg_combat.engine.dice import DiceRoller
from rpg_combat.models.combatant import Combatant
from rpg_combat.models.enums import SessionState
from rpg_combat.models.session import CombatSession


logger = get_logger(__name__)


@dataclass
class TurnStart:
    """What happened at the start of a combatant's turn.

    Attributes:
        combatant_id: Combatant whose turn began.
        notes: Human-readable effect ticks (damage, healing, expiry).
        skipped: The combatant lost this turn to a skip effect.
        damage: Total per-turn damage taken.
        healing: Total per-turn healing received.
    """

    combatant_id: str
    notes: list[str] = field(default_factory=list)
    skipped: bool = False
    damage: int = 0
    healing: int = 0


class TurnManager:
    """Initiative, turn advancement and termination checks.

    Example:
        >>> manager = TurnManager(DiceRoller())
        >>> ordered = manager.roll_initiative([hero, goblin])
        >>> session = CombatSession(id="u1", owner="u1", combatants=ordered)
        >>> notes = manager.advance_turn(session)
    """

    def __init__(self, roller: DiceRoller) -> None:
        """Initialize the turn manager.

        Args:
            roller: Dice roller for initiative and per-turn effects.
        """
        self._roller = roller

    # =========================================================================
    # Initiative
    # =========================================================================

    def roll_initiative(self, combatants: Sequence[Combatant]) -> list[Combatant]:
        """Roll ``1d20 + dexterity_modifier`` for everyone and sort.

        Combatants are sorted by total descending, then by dexterity
        modifier descending; remaining ties keep their input order.

        Args:
            combatants: Participants in input order.

        Returns:
            A new list in initiative order. Each combatant's ``initiative``
            field holds its total.
        """
        for combatant in combatants:
            result = self._roller.roll_d20(combatant.dexterity_modifier)
            combatant.initiative = result.total
            logger.debug(
                "Initiative rolled",
                combatant=combatant.name,
                roll=result.natural,
                total=result.total,
            )
        # sorted() is stable, also with reverse=True
        return sorted(
            combatants,
            key=lambda c: (c.initiative, c.dexterity_modifier),
            reverse=True,
        )

    def begin(self, session: CombatSession) -> list[str]:
        """Hand the opening turn to a combatant able to act.

        A combatant that won initiative while already at 0 HP is passed
        over through ``advance_turn``, so the usual start-of-turn processing
        runs for whoever takes the turn instead.

        Args:
            session: A freshly created session.

        Returns:
            Notes from the start-of-turn ticks that ran, if any.
        """
        if self.check_termination(session).is_terminal:
            return []
        current = session.current_combatant
        if current.is_alive:
            return []
        logger.debug("Opening combatant is down", session=session.id, combatant=current.name)
        return self.advance_turn(session)

    # =========================================================================
    # Validation
    # =========================================================================

    def validate_turn(self, session: CombatSession, identity: str) -> Combatant:
        """Check that ``identity`` controls the combatant whose turn it is.

        Args:
            session: The live session.
            identity: The identity submitting an action.

        Returns:
            The acting combatant.

        Raises:
            InvalidGameStateError: If the session is no longer active.
            NotYourTurn: If another combatant (or a monster) holds the turn.
        """
        if not session.is_active:
            raise InvalidGameStateError(
                f"Session {session.id} has ended",
                current_state=session.state.value,
                expected_states=[SessionState.ACTIVE.value],
            )

        current = session.current_combatant
        if current.is_monster or current.identity_ref != identity:
            raise NotYourTurn(
                f"It is {current.name}'s turn",
                identity=identity,
                expected=None if current.is_monster else current.identity_ref,
            )
        if current.is_defeated:
            raise InvalidGameStateError(
                f"{current.name} is down and cannot act",
                current_state=session.state.value,
                combatant_id=current.id,
            )
        return current

    # =========================================================================
    # Termination
    # =========================================================================

    def check_termination(self, session: CombatSession) -> SessionState:
        """Move the session to victory or defeat when one side is down.

        Victory is checked first, so a trade that drops both sides at once
        counts as a win.

        Returns:
            The session state after the check.
        """
        if not session.is_active:
            return session.state
        if not session.living_monsters:
            session.state = SessionState.VICTORY
        elif not session.living_players:
            session.state = SessionState.DEFEAT
        if not session.is_active:
            logger.info("Combat decided", session=session.id, state=session.state.value)
        return session.state

    # =========================================================================
    # Turn Advancement
    # =========================================================================

    def start_turn(self, combatant: Combatant) -> TurnStart:
        """Run start-of-turn processing for a combatant.

        Clears ``defending``, counts cooldowns down, applies per-turn
        damage and healing from status effects, then decrements effect
        durations and drops expired effects. Whether the turn is skipped is
        decided by the effects active before the tick.

        Args:
            combatant: The combatant whose turn begins.

        Returns:
            A TurnStart describing the tick.
        """
        start = TurnStart(combatant_id=combatant.id, skipped=combatant.is_skipping_turn)
        combatant.defending = False

        if combatant.cooldowns:
            combatant.cooldowns = {
                content_id: remaining - 1
                for content_id, remaining in combatant.cooldowns.items()
                if remaining > 1
            }

        for effect in list(combatant.status_effects):
            if combatant.is_defeated:
                break
            if effect.damage_per_turn:
                rolled = self._roller.roll(effect.damage_per_turn).total
                taken = combatant.take_damage(rolled, source=effect.source)
                start.damage += taken
                start.notes.append(f"{combatant.name} takes {taken} damage from {effect.display_name}")
            if effect.heal_per_turn and combatant.is_alive:
                healed = combatant.heal(self._roller.roll(effect.heal_per_turn).total)
                start.healing += healed
                start.notes.append(f"{combatant.name} recovers {healed} HP from {effect.display_name}")

        remaining_effects = []
        for effect in combatant.status_effects:
            effect.remaining -= 1
            if effect.remaining > 0:
                remaining_effects.append(effect)
            else:
                start.notes.append(f"{effect.display_name} wears off {combatant.name}")
        combatant.status_effects = remaining_effects

        if start.skipped and combatant.is_alive:
            start.notes.append(f"{combatant.name} loses the turn")
        return start

    def advance_turn(self, session: CombatSession) -> list[str]:
        """Hand the turn to the next combatant able to act.

        Moves ``current_turn_index`` forward (wrapping increments the round)
        and runs start-of-turn processing for each combatant reached.
        Defeated combatants are passed over; combatants that lose their turn
        to a skip effect or die from a per-turn effect are passed over after
        their tick. Stops early if a tick ends the fight.

        Args:
            session: The live session.

        Returns:
            Notes from every start-of-turn tick that ran.

        Raises:
            InvalidGameStateError: If the session is no longer active.
        """
        if not session.is_active:
            raise InvalidGameStateError(
                f"Cannot advance turn of ended session {session.id}",
                current_state=session.state.value,
                expected_states=[SessionState.ACTIVE.value],
            )

        notes: list[str] = []
        count = len(session.combatants)
        while True:
            next_index = (session.current_turn_index + 1) % count
            if next_index == 0:
                session.round += 1
            session.current_turn_index = next_index

            combatant = session.current_combatant
            if combatant.is_defeated:
                continue

            start = self.start_turn(combatant)
            notes.extend(start.notes)
            if start.damage and combatant.is_defeated:
                if self.check_termination(session).is_terminal:
                    break
                continue
            if start.skipped:
                continue
            break

        logger.debug(
            "Turn advanced",
            session=session.id,
            combatant=session.current_combatant.name,
            round=session.round,
        )
        return notes


__all__ = ["TurnStart", "TurnManager"]
