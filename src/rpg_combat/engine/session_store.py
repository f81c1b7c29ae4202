"""Registry of live combat sessions.

Sessions are keyed by their owner identity (solo) or party id (group). An
identity index maps every player in a session to its key, so that any party
member can reach the party's session and no player can be in two fights at
once.

Each session has its own lock. ``locked()`` serialises actions on one
session while different sessions proceed independently.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone

from rpg_combat.core.exceptions import SessionAlreadyExists, SessionNotFound
from rpg_combat.core.logging import get_logger
from rpg_combat.models.enums import SessionState
from rpg_combat.models.session import CombatSession


logger = get_logger(__name__)

Clock = Callable[[], datetime]
EvictionCallback = Callable[[CombatSession], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """In-memory session registry with per-session locks and idle eviction.

    Example:
        >>> store = SessionStore(idle_timeout=timedelta(minutes=30))
        >>> store.create("1234", session)
        >>> with store.locked("1234") as live:
        ...     live.round
        1
    """

    def __init__(self, *, idle_timeout: timedelta, clock: Clock | None = None) -> None:
        """Initialize the store.

        Args:
            idle_timeout: Inactivity after which a session is evicted.
            clock: Source of the current time (UTC).
        """
        self._idle_timeout = idle_timeout
        self._clock = clock or _utcnow
        self._sessions: dict[str, CombatSession] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._identities: dict[str, str] = {}
        self._guard = threading.RLock()

    @property
    def idle_timeout(self) -> timedelta:
        return self._idle_timeout

    def now(self) -> datetime:
        return self._clock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, key: str) -> bool:
        return self.resolve_key(key) is not None

    # =========================================================================
    # Lookup
    # =========================================================================

    def resolve_key(self, key: str) -> str | None:
        """Map a session key or a participating identity to a session key."""
        with self._guard:
            if key in self._sessions:
                return key
            return self._identities.get(key)

    def get(self, key: str) -> CombatSession | None:
        """The live session for a key or participating identity, if any."""
        with self._guard:
            resolved = self.resolve_key(key)
            return self._sessions.get(resolved) if resolved is not None else None

    def session_for_identity(self, identity: str) -> CombatSession | None:
        with self._guard:
            key = self._identities.get(identity)
            return self._sessions.get(key) if key is not None else None

    # =========================================================================
    # Mutation
    # =========================================================================

    def create(self, key: str, session: CombatSession) -> None:
        """Register a new session.

        Raises:
            SessionAlreadyExists: If a session is live for ``key`` or any of
                the session's players is already fighting elsewhere.
        """
        with self._guard:
            if key in self._sessions:
                raise SessionAlreadyExists(f"A combat is already running for {key}", session_key=key)
            busy = sorted(identity for identity in session.identities if identity in self._identities)
            if busy:
                raise SessionAlreadyExists(
                    f"Already in combat: {', '.join(busy)}",
                    session_key=self._identities[busy[0]],
                    details={"identities": busy},
                )
            self._sessions[key] = session
            self._locks[key] = threading.Lock()
            for identity in session.identities:
                self._identities[identity] = key
        logger.info("Session registered", session=key, combatants=len(session.combatants))

    def remove(self, key: str) -> CombatSession | None:
        """Drop a session and its identity entries.

        Returns:
            The removed session, or None if nothing was registered.
        """
        with self._guard:
            resolved = self.resolve_key(key)
            if resolved is None:
                return None
            session = self._sessions.pop(resolved)
            self._locks.pop(resolved, None)
            for identity in [i for i, k in self._identities.items() if k == resolved]:
                del self._identities[identity]
        logger.info("Session removed", session=resolved, state=session.state.value)
        return session

    @contextmanager
    def locked(self, key: str) -> Iterator[CombatSession]:
        """Hold a session's lock for the duration of a ``with`` block.

        Args:
            key: Session key or participating identity.

        Yields:
            The live session.

        Raises:
            SessionNotFound: If no session is live, or it ended while waiting
                for the lock.
        """
        with self._guard:
            resolved = self.resolve_key(key)
            lock = self._locks.get(resolved) if resolved is not None else None
            session = self._sessions.get(resolved) if resolved is not None else None
        if lock is None or session is None:
            raise SessionNotFound(f"No combat in progress for {key}", session_key=key)

        with lock:
            if self._sessions.get(resolved) is not session:
                raise SessionNotFound(f"Combat for {key} has ended", session_key=key)
            yield session

    # =========================================================================
    # Expiry
    # =========================================================================

    def is_expired(self, session: CombatSession, now: datetime | None = None) -> bool:
        now = now or self.now()
        return now - session.last_action_at >= self._idle_timeout

    def evict_idle(
        self,
        now: datetime | None = None,
        *,
        on_evict: EvictionCallback | None = None,
    ) -> list[CombatSession]:
        """Abort and remove sessions idle for longer than the timeout.

        Sessions whose lock is held (an action is being resolved) are left
        alone. ``on_evict`` runs for each evicted session after it is marked
        aborted and before it is removed, while its lock is held. The session
        is removed even if the callback raises.

        Args:
            now: Current time; defaults to the store clock.
            on_evict: Callback for each evicted session.

        Returns:
            The evicted sessions, in state ``aborted``.
        """
        now = now or self.now()
        with self._guard:
            candidates = [
                (key, session, self._locks[key])
                for key, session in self._sessions.items()
                if self.is_expired(session, now)
            ]

        evicted: list[CombatSession] = []
        for key, session, lock in candidates:
            if not lock.acquire(blocking=False):
                logger.debug("Skipping busy session", session=key)
                continue
            try:
                if self._sessions.get(key) is not session or not self.is_expired(session, now):
                    continue
                session.state = SessionState.ABORTED
                session.ended_reason = "idle timeout"
                logger.info("Session evicted", session=key, idle_since=session.last_action_at.isoformat())
                try:
                    if on_evict is not None:
                        on_evict(session)
                finally:
                    self.remove(key)
                evicted.append(session)
            finally:
                lock.release()
        return evicted


__all__ = ["SessionStore", "Clock", "EvictionCallback"]
