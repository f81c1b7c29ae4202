"""Public entry point of the combat engine.

``CombatEngine`` wires the dice roller, turn manager, action resolver,
monster AI, reward dispatcher and session store together and exposes the
operations the UI layer calls: start a fight, submit an action, read the
status, end a fight and evict idle sessions.

Every operation on a session runs under that session's lock. When a fight
ends, rewards are dispatched (and persisted) before the session is removed
from the store.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from rpg_combat.collaborators import (
    CharacterRepository,
    InventoryService,
    QuestNotifier,
    Renderer,
)
from rpg_combat.content.repository import ContentRepository
from rpg_combat.core.config import Settings, get_settings
from rpg_combat.core.exceptions import (
    ActionNotAvailable,
    SessionAlreadyExists,
    ValidationError,
)
from rpg_combat.core.logging import get_logger, session_context
from rpg_combat.engine.actions import ActionResolver
from rpg_combat.engine.dice import DiceRoller
from rpg_combat.engine.monster_ai import MonsterAI
from rpg_combat.engine.render import TextRenderer
from rpg_combat.engine.rewards import RewardDispatcher
from rpg_combat.engine.session_store import Clock, SessionStore
from rpg_combat.engine.turn_manager import TurnManager
from rpg_combat.models.combatant import Combatant
from rpg_combat.models.enums import ActionType, SessionMode, SessionState
from rpg_combat.models.outcome import ActionOutcome, ActionPayload, CombatResult
from rpg_combat.models.session import CombatSession


logger = get_logger(__name__)

EvictionListener = Callable[[CombatResult], None]


class CombatEngine:
    """Turn-based combat sessions for solo players and parties.

    Example:
        >>> engine = CombatEngine(content, characters, inventory=inventory)
        >>> session = engine.start_encounter("1234", ["1234"], ["goblin"])
        >>> outcome = engine.submit_action("1234", "1234", ActionType.ATTACK)
        >>> outcome.narrative
        "Aria's attack hits Goblin for 7 damage, and Goblin falls."
        >>> engine.last_result("1234").state
        <SessionState.VICTORY: 'victory'>
    """

    def __init__(
        self,
        content: ContentRepository,
        characters: CharacterRepository,
        *,
        inventory: InventoryService | None = None,
        quests: QuestNotifier | None = None,
        renderer: Renderer | None = None,
        settings: Settings | None = None,
        roller: DiceRoller | None = None,
        store: SessionStore | None = None,
        clock: Clock | None = None,
        on_evict: EvictionListener | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            content: Static content lookup.
            characters: Character store for loading players and saving results.
            inventory: Item possession and consumption.
            quests: Receiver of kill events.
            renderer: View builder; plain text by default.
            settings: Engine settings; the cached application settings by default.
            roller: Dice roller; a new one by default.
            store: Session store; a fresh one using the idle timeout setting by default.
            clock: Time source for a default store.
            on_evict: Called with the result of every idle eviction, so the
                owner can be told their fight was abandoned.
        """
        self._settings = settings or get_settings()
        self._content = content
        self._characters = characters
        self._roller = roller or DiceRoller()
        self._store = store or SessionStore(
            idle_timeout=self._settings.session.idle_timeout,
            clock=clock,
        )
        self._renderer = renderer or TextRenderer()
        self._on_evict = on_evict

        self._turns = TurnManager(self._roller)
        self._resolver = ActionResolver(
            self._roller,
            content,
            self._settings.combat,
            inventory=inventory,
        )
        self._monster_ai = MonsterAI(self._resolver, self._roller)
        self._rewards = RewardDispatcher(
            characters,
            quests,
            self._settings.progression,
            self._settings.persistence,
        )
        self._results: dict[str, CombatResult] = {}

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def store(self) -> SessionStore:
        return self._store

    # =========================================================================
    # Starting Combat
    # =========================================================================

    def start_combat(
        self,
        owner_key: str,
        participants: Sequence[Combatant],
        *,
        owner: str | None = None,
        mode: SessionMode | None = None,
    ) -> CombatSession:
        """Start a fight between the given combatants.

        Initiative is rolled, the session is registered and, if monsters
        win initiative, their opening turns are resolved right away.

        Args:
            owner_key: Session key (the owner identity, or a party id).
            participants: Players and monsters, in input order.
            owner: Identity of the initiator; defaults to ``owner_key``.
            mode: Solo or group; inferred from the number of players.

        Returns:
            A snapshot of the new session.

        Raises:
            SessionAlreadyExists: If the key or any player is already in combat.
            ValidationError: If the participants do not form a valid session,
                or every player or every monster is already at 0 HP.
        """
        self._ensure_free(owner_key, [p.identity_ref for p in participants if p.is_player])
        players = [p for p in participants if p.is_player]
        monsters = [p for p in participants if p.is_monster]
        for side, members in (("players", players), ("monsters", monsters)):
            if members and all(member.is_defeated for member in members):
                raise ValidationError(
                    f"Cannot start combat: all {side} are already down",
                    field_name="participants",
                    invalid_value=[member.id for member in members],
                )
        if mode is None:
            mode = SessionMode.GROUP if len(players) > 1 else SessionMode.SOLO

        ordered = self._turns.roll_initiative(list(participants))
        now = self._store.now()
        try:
            session = CombatSession(
                id=owner_key,
                owner=owner or owner_key,
                mode=mode,
                combatants=ordered,
                created_at=now,
                last_action_at=now,
            )
        except PydanticValidationError as exc:
            raise ValidationError(
                f"Cannot start combat: {exc.error_count()} validation error(s)",
                field_name="participants",
                details={"errors": exc.errors()},
            ) from exc

        self._store.create(owner_key, session)
        for key in (owner_key, *session.identities):
            self._results.pop(key, None)

        with self._store.locked(owner_key) as live, session_context(session=owner_key):
            logger.info(
                "Combat started",
                mode=live.mode.value,
                order=[c.name for c in live.combatants],
            )
            opening = self._turns.begin(live)
            if opening:
                logger.info("Opening turn passed on", notes=opening)
            live.log.extend(self._run_monster_turns(live))
            snapshot = live.model_copy(deep=True)
            if not live.is_active:
                self._finish(live)
        return snapshot

    def start_encounter(
        self,
        owner_key: str,
        player_identities: Sequence[str],
        monster_ids: Sequence[str],
        *,
        owner: str | None = None,
    ) -> CombatSession:
        """Start a fight from character identities and monster template ids.

        Monster health is scaled by party size:
        ``hp + floor(hp * (players - 1) * group_hp_scaling)``.

        Args:
            owner_key: Session key.
            player_identities: Identities of the fighting players.
            monster_ids: Monster template ids; repeats spawn several monsters.
            owner: Identity of the initiator; defaults to the first player.

        Returns:
            A snapshot of the new session.

        Raises:
            ValidationError: If there are no players or no monsters.
            ContentNotFound: If a monster id is unknown.
            SessionAlreadyExists: If the key or any player is already in combat.
        """
        if not player_identities:
            raise ValidationError("An encounter needs at least one player", field_name="player_identities")
        if not monster_ids:
            raise ValidationError("An encounter needs at least one monster", field_name="monster_ids")

        self._ensure_free(owner_key, player_identities)

        templates = [self._content.monster(monster_id) for monster_id in monster_ids]
        players = [self._characters.load_combatant(identity) for identity in player_identities]

        totals = Counter(template.id for template in templates)
        seen: Counter[str] = Counter()
        monsters: list[Combatant] = []
        for template in templates:
            seen[template.id] += 1
            number = seen[template.id]
            name = f"{template.name} {number}" if totals[template.id] > 1 else template.name
            monsters.append(
                template.instantiate(
                    f"{template.id}-{number}",
                    party_size=len(players),
                    scaling=self._settings.combat.group_hp_scaling,
                    name=name,
                )
            )

        return self.start_combat(
            owner_key,
            [*players, *monsters],
            owner=owner or player_identities[0],
        )

    def _ensure_free(self, owner_key: str, identities: Iterable[str]) -> None:
        busy = [identity for identity in identities if identity in self._store]
        if owner_key in self._store or busy:
            raise SessionAlreadyExists(
                f"Already in combat: {', '.join(busy) or owner_key}",
                session_key=owner_key,
            )

    # =========================================================================
    # Actions
    # =========================================================================

    def submit_action(
        self,
        owner_key: str,
        acting_identity: str,
        action_type: ActionType | str,
        payload: ActionPayload | Mapping[str, Any] | None = None,
    ) -> ActionOutcome:
        """Resolve a player's action and everything that follows it.

        After the action the session is checked for victory/defeat; if the
        fight goes on and the action ends the turn, the turn passes on and
        monsters act until a player holds the turn again. Those monster
        turns are returned as ``follow_ups``.

        Args:
            owner_key: Session key or any participating identity.
            acting_identity: Identity pressing the button.
            action_type: What to do.
            payload: Target and content arguments.

        Returns:
            The ActionOutcome, with follow-ups and the resulting session state.

        Raises:
            SessionNotFound: If no fight is live for ``owner_key``.
            NotYourTurn: If ``acting_identity`` does not hold the turn.
            InsufficientResource: If the actor cannot pay the mana cost.
            OnCooldown: If the spell or ability is recharging.
            InvalidTarget: If the target is missing, down or on the wrong side.
            ItemNotUsable: If the item cannot be used.
            ActionNotAvailable: If the actor cannot take this action.
        """
        try:
            action = ActionType(action_type)
        except ValueError:
            raise ActionNotAvailable(f"Unknown action: {action_type}") from None
        if payload is None or isinstance(payload, ActionPayload):
            request = payload or ActionPayload()
        else:
            request = ActionPayload.model_validate(payload)

        with self._store.locked(owner_key) as session, session_context(
            session=session.id,
            actor=acting_identity,
            action=action.value,
        ):
            actor = self._turns.validate_turn(session, acting_identity)
            outcome = self._resolver.resolve(session, actor, action, request)
            session.touch(self._store.now())

            if self._turns.check_termination(session) is SessionState.ACTIVE and outcome.ends_turn:
                outcome.turn_notes.extend(self._turns.advance_turn(session))
                outcome.follow_ups.extend(self._run_monster_turns(session))

            outcome.session_state = session.state
            session.log.append(outcome)
            if not session.is_active:
                self._finish(session)
            return outcome.model_copy(deep=True)

    def _run_monster_turns(self, session: CombatSession) -> list[ActionOutcome]:
        """Let monsters act until a player holds the turn or the fight ends."""
        outcomes: list[ActionOutcome] = []
        while session.is_active and session.current_combatant.is_monster:
            outcome = self._monster_ai.take_turn(session, session.current_combatant)
            if self._turns.check_termination(session) is SessionState.ACTIVE:
                outcome.turn_notes.extend(self._turns.advance_turn(session))
            outcome.session_state = session.state
            outcomes.append(outcome)
        return outcomes

    # =========================================================================
    # Status
    # =========================================================================

    def get_status(self, owner_key: str) -> CombatSession:
        """A deep copy of the live session.

        Raises:
            SessionNotFound: If no fight is live for ``owner_key``.
        """
        with self._store.locked(owner_key) as session:
            return session.model_copy(deep=True)

    def render(self, owner_key: str) -> Any:
        """Render the live session and its latest outcome.

        Raises:
            SessionNotFound: If no fight is live for ``owner_key``.
        """
        with self._store.locked(owner_key) as session:
            latest = session.log[-1] if session.log else None
            return self._renderer.render(session, latest)

    def last_result(self, key: str) -> CombatResult | None:
        """The result of the last finished fight for a session key or identity."""
        return self._results.get(key)

    # =========================================================================
    # Ending Combat
    # =========================================================================

    def end_combat(self, owner_key: str, reason: str = "ended by owner") -> CombatResult:
        """Abort a fight. Health and mana are saved; no rewards are given.

        Raises:
            SessionNotFound: If no fight is live for ``owner_key``.
        """
        with self._store.locked(owner_key) as session, session_context(session=session.id):
            session.state = SessionState.ABORTED
            session.ended_reason = reason
            session.touch(self._store.now())
            return self._finish(session)

    def evict_idle(self, now: datetime | None = None) -> list[CombatResult]:
        """Abort every session idle past the timeout.

        Returns:
            The results of the evicted sessions.
        """
        results: list[CombatResult] = []

        def _on_evict(session: CombatSession) -> None:
            with session_context(session=session.id):
                result = self._rewards.dispatch(session)
            self._remember(session, result)
            results.append(result)

        self._store.evict_idle(now, on_evict=_on_evict)
        if self._on_evict is not None:
            for result in results:
                self._on_evict(result)
        return results

    def _finish(self, session: CombatSession) -> CombatResult:
        """Dispatch rewards, then drop the session from the store."""
        try:
            result = self._rewards.dispatch(session)
        finally:
            self._store.remove(session.id)
        self._remember(session, result)
        return result

    def _remember(self, session: CombatSession, result: CombatResult) -> None:
        for key in (session.id, *session.identities):
            self._results[key] = result


__all__ = ["CombatEngine", "EvictionListener"]
