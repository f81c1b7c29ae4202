"""Rewards, penalties and persistence at the end of combat.

On victory the defeated monsters' XP and gold are shared between the
players, levels are resolved and kill events go to the quest notifier. On
defeat every player pays the gold penalty, wakes up at a fraction of their
health and gains a death. Fled and aborted fights only write health and
mana back.

Transient write errors are retried with exponential backoff. A write that
still fails, or fails with any other error, is logged and reported as a
warning; the combat result stands. Quest notifications are handled the
same way without retries.
"""

from __future__ import annotations

import math

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from rpg_combat.collaborators import CharacterRepository, QuestNotifier
from rpg_combat.core.config import PersistenceSettings, ProgressionSettings
from rpg_combat.core.exceptions import PersistenceError
from rpg_combat.core.logging import get_logger
from rpg_combat.models.combatant import Combatant
from rpg_combat.models.enums import SessionState
from rpg_combat.models.outcome import CombatantDelta, CombatResult, PlayerReward
from rpg_combat.models.progression import apply_experience
from rpg_combat.models.session import CombatSession


logger = get_logger(__name__)

RETRYABLE_ERRORS = (PersistenceError, ConnectionError, TimeoutError)


def split_evenly(total: int, players: list[Combatant]) -> dict[str, int]:
    """Split ``total`` between players, floor per player.

    The remainder goes to the player with the most damage dealt; players
    are expected in initiative order, so the earlier one wins a tie.

    Returns:
        Combatant id to share.

    Example:
        >>> split_evenly(10, [a, b, c])  # b dealt the most damage
        {'a': 3, 'b': 4, 'c': 3}
    """
    if not players:
        return {}
    share, remainder = divmod(total, len(players))
    shares = {player.id: share for player in players}
    if remainder:
        top = max(players, key=lambda p: p.damage_dealt)
        shares[top.id] += remainder
    return shares


class RewardDispatcher:
    """Computes end-of-combat rewards and writes them back.

    Example:
        >>> dispatcher = RewardDispatcher(characters, quests, progression, persistence)
        >>> result = dispatcher.dispatch(session)
        >>> result.reward_for("1234").xp_gained
        50
    """

    def __init__(
        self,
        characters: CharacterRepository,
        quests: QuestNotifier | None,
        progression: ProgressionSettings,
        persistence: PersistenceSettings,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            characters: Character store to write deltas to.
            quests: Receiver of kill events, if any.
            progression: Level cap and defeat penalties.
            persistence: Retry policy for writes.
        """
        self._characters = characters
        self._quests = quests
        self._progression = progression
        self._persistence = persistence

    def dispatch(self, session: CombatSession) -> CombatResult:
        """Apply the rewards or penalties of a finished session.

        Args:
            session: A session in a terminal state.

        Returns:
            The CombatResult, including any persistence warnings.
        """
        players = session.players
        if session.state is SessionState.VICTORY:
            rewards, deltas = self._victory(session, players)
        elif session.state is SessionState.DEFEAT:
            rewards, deltas = self._defeat(players)
        else:
            rewards, deltas = self._unchanged(players)

        warnings: list[str] = []
        for reward, delta in zip(rewards, deltas, strict=True):
            try:
                self._persist(delta)
            except RETRYABLE_ERRORS as exc:
                logger.warning(
                    "Persistence failed",
                    session=session.id,
                    identity=delta.identity_ref,
                    error=str(exc),
                )
                reward.persisted = False
            except Exception:
                # Not retried; the session must still be released.
                logger.exception(
                    "Persistence failed unexpectedly",
                    session=session.id,
                    identity=delta.identity_ref,
                )
                reward.persisted = False
            if not reward.persisted:
                warnings.append(f"Could not save progress for {delta.identity_ref}; rewards may be delayed")

        if session.state is SessionState.VICTORY:
            warnings.extend(self._notify_kills(session, rewards))

        result = CombatResult(
            session_id=session.id,
            state=session.state,
            reason=session.ended_reason,
            rounds=session.round,
            rewards=rewards,
            warnings=warnings,
        )
        logger.info(
            "Combat ended",
            session=session.id,
            state=session.state.value,
            rounds=session.round,
            warnings=len(warnings),
        )
        return result

    # =========================================================================
    # Outcomes
    # =========================================================================

    def _victory(
        self,
        session: CombatSession,
        players: list[Combatant],
    ) -> tuple[list[PlayerReward], list[CombatantDelta]]:
        defeated = [m for m in session.monsters if m.is_defeated]
        xp_shares = split_evenly(sum(m.xp_reward for m in defeated), players)
        gold_shares = split_evenly(sum(m.gold_reward for m in defeated), players)

        kills: dict[str, list[str]] = {p.id: [] for p in players}
        for monster in defeated:
            if monster.last_hit_by in kills:
                kills[monster.last_hit_by].append(monster.identity_ref)

        rewards: list[PlayerReward] = []
        deltas: list[CombatantDelta] = []
        for player in players:
            progress = apply_experience(
                player.level,
                player.xp,
                xp_shares[player.id],
                max_level=self._progression.max_level,
            )
            health = player.health.current or self._recovered_health(player)
            rewards.append(
                PlayerReward(
                    identity_ref=player.identity_ref,
                    combatant_id=player.id,
                    xp_gained=xp_shares[player.id],
                    gold_gained=gold_shares[player.id],
                    levels_gained=progress.levels_gained,
                    new_level=progress.level,
                    kills=kills[player.id],
                )
            )
            deltas.append(
                self._delta(
                    player,
                    health=health,
                    level=progress.level,
                    xp=progress.xp,
                    gold=player.gold + gold_shares[player.id],
                )
            )
            if progress.leveled_up:
                logger.info("Level up", identity=player.identity_ref, level=progress.level)
        return rewards, deltas

    def _defeat(self, players: list[Combatant]) -> tuple[list[PlayerReward], list[CombatantDelta]]:
        rewards: list[PlayerReward] = []
        deltas: list[CombatantDelta] = []
        for player in players:
            lost = math.floor(player.gold * self._progression.defeat_gold_penalty)
            rewards.append(
                PlayerReward(
                    identity_ref=player.identity_ref,
                    combatant_id=player.id,
                    gold_lost=lost,
                    new_level=player.level,
                )
            )
            deltas.append(
                self._delta(
                    player,
                    health=self._recovered_health(player),
                    gold=player.gold - lost,
                    deaths_added=1,
                )
            )
        return rewards, deltas

    def _unchanged(self, players: list[Combatant]) -> tuple[list[PlayerReward], list[CombatantDelta]]:
        rewards = [
            PlayerReward(identity_ref=p.identity_ref, combatant_id=p.id, new_level=p.level)
            for p in players
        ]
        deltas = [
            self._delta(p, health=p.health.current or self._recovered_health(p)) for p in players
        ]
        return rewards, deltas

    def _recovered_health(self, player: Combatant) -> int:
        """Health a knocked-out player wakes up with."""
        return max(1, math.ceil(player.health.max * self._progression.defeat_recovery_ratio))

    def _delta(
        self,
        player: Combatant,
        *,
        health: int,
        level: int | None = None,
        xp: int | None = None,
        gold: int | None = None,
        deaths_added: int = 0,
    ) -> CombatantDelta:
        return CombatantDelta(
            identity_ref=player.identity_ref,
            health=min(health, player.health.max),
            max_health=player.health.max,
            mana=player.mana.current,
            max_mana=player.mana.max,
            level=player.level if level is None else level,
            xp=player.xp if xp is None else xp,
            gold=player.gold if gold is None else gold,
            deaths_added=deaths_added,
        )

    # =========================================================================
    # External Calls
    # =========================================================================

    def _persist(self, delta: CombatantDelta) -> None:
        """Write a delta, retrying transient failures.

        Raises:
            PersistenceError: If every attempt failed (ConnectionError and
                TimeoutError are re-raised as they come).
        """
        settings = self._persistence

        @retry(
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            stop=stop_after_attempt(settings.retry_attempts),
            wait=wait_exponential(
                multiplier=settings.retry_wait_seconds,
                max=settings.retry_max_wait_seconds,
            ),
            reraise=True,
        )
        def _call() -> None:
            try:
                self._characters.persist(delta)
            except RETRYABLE_ERRORS as exc:
                logger.warning("Persistence attempt failed, retrying", identity=delta.identity_ref, error=str(exc))
                raise

        _call()

    def _notify_kills(self, session: CombatSession, rewards: list[PlayerReward]) -> list[str]:
        if self._quests is None:
            return []
        warnings: list[str] = []
        for reward in rewards:
            for monster_id in reward.kills:
                try:
                    self._quests.record_kill(reward.identity_ref, monster_id)
                except Exception:
                    warnings.append(f"Quest progress for {reward.identity_ref} could not be recorded")
                    logger.exception(
                        "Quest notification failed",
                        session=session.id,
                        identity=reward.identity_ref,
                        monster=monster_id,
                    )
        return warnings


__all__ = ["RETRYABLE_ERRORS", "split_evenly", "RewardDispatcher"]
