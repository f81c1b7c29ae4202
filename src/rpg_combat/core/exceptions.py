"""Exception hierarchy for the RPG combat engine.

Everything the engine raises derives from RpgCombatError. Keyword context
passed to any of them (``combatant_id=``, ``session_key=``, ...) lands in
``details`` so the UI layer and the logs see the same structured data.

Combat errors are raised while an action is being validated, before any
session state changes. They are ``recoverable``: the bot shows
``user_message`` to the player and the fight carries on.

Example:
    >>> try:
    ...     engine.submit_action("1234", "5678", ActionType.ATTACK)
    ... except RpgCombatError as exc:
    ...     if not exc.recoverable:
    ...         raise
    ...     reply(exc.user_message)
"""

from __future__ import annotations

from typing import Any, ClassVar


class RpgCombatError(Exception):
    """Base exception for all combat engine errors.

    Attributes:
        message: Human-readable error description.
        details: Structured context; keyword arguments whose value is None
            are left out.
    """

    recoverable: ClassVar[bool] = False

    def __init__(self, message: str, *, details: dict[str, Any] | None = None, **context: Any) -> None:
        self.message = message
        self.details = dict(details or {})
        self.details.update({key: value for key, value in context.items() if value is not None})
        super().__init__(str(self))

    def __str__(self) -> str:
        if not self.details:
            return self.message
        detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
        return f"{self.message} [{detail_str}]"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"

    @property
    def user_message(self) -> str:
        """The message without the structured context, for chat replies."""
        return self.message


# =============================================================================
# Configuration, Validation & Content
# =============================================================================


class ConfigurationError(RpgCombatError):
    """Invalid settings (``config_key=``)."""


class ValidationError(RpgCombatError):
    """Participant snapshots or encounter arguments that do not validate.

    Context: ``field_name=``, ``invalid_value=``.
    """


class ContentError(RpgCombatError):
    """Malformed static content (monsters, spells, abilities, items, effects)."""


class ContentNotFound(ContentError):
    """A content lookup by id failed (``table=``, ``content_id=``)."""


# =============================================================================
# Engine
# =============================================================================


class GameEngineError(RpgCombatError):
    """Base exception for errors raised while running a fight."""


class InvalidGameStateError(GameEngineError):
    """The session is not in a state that allows the operation.

    Context: ``current_state=``, ``expected_states=``.
    """


class PersistenceError(GameEngineError):
    """A character collaborator could not complete a read or write.

    The reward dispatcher retries on this error and, once the attempts are
    exhausted, reports it as a warning on the CombatResult.
    """


class DiceRollError(GameEngineError):
    """Dice could not be rolled (``expression=``)."""


# =============================================================================
# Combat (recoverable)
# =============================================================================


class CombatError(GameEngineError):
    """An action or session request was rejected.

    Context: ``combatant_id=``, ``round_number=``.
    """

    recoverable = True


class InvalidFormula(DiceRollError, CombatError):
    """A dice formula does not parse, or has fewer than 1 die or 2 sides."""


class SessionAlreadyExists(CombatError):
    """A fight is already live for the key or for one of the players."""

    def __init__(self, message: str, *, session_key: str, **context: Any) -> None:
        super().__init__(message, session_key=session_key, **context)


class SessionNotFound(CombatError):
    """No live fight for the key: never started, already over or evicted."""

    def __init__(self, message: str, *, session_key: str, **context: Any) -> None:
        super().__init__(message, session_key=session_key, **context)


class NotYourTurn(CombatError):
    """``identity`` acted while ``expected`` holds the turn."""

    def __init__(self, message: str, *, identity: str, expected: str | None = None, **context: Any) -> None:
        super().__init__(message, identity=identity, expected=expected, **context)


class InsufficientResource(CombatError):
    """Not enough mana for the spell or ability."""

    def __init__(self, message: str, *, required: int, available: int, **context: Any) -> None:
        super().__init__(message, required=required, available=available, **context)


class OnCooldown(CombatError):
    """The spell or ability is still recharging."""

    def __init__(self, message: str, *, content_id: str, remaining: int, **context: Any) -> None:
        super().__init__(message, content_id=content_id, remaining=remaining, **context)


class InvalidTarget(CombatError):
    """The target does not exist, is down, or is on the wrong side."""


class ItemNotUsable(CombatError):
    """The item has no combat effect, is not owned, or has nothing to cure."""


class ActionNotAvailable(CombatError):
    """The actor does not know the spell/ability or may not take the action."""


__all__ = [
    "RpgCombatError",
    "ConfigurationError",
    "ValidationError",
    "ContentError",
    "ContentNotFound",
    "GameEngineError",
    "InvalidGameStateError",
    "PersistenceError",
    "DiceRollError",
    "CombatError",
    "InvalidFormula",
    "SessionAlreadyExists",
    "SessionNotFound",
    "NotYourTurn",
    "InsufficientResource",
    "OnCooldown",
    "InvalidTarget",
    "ItemNotUsable",
    "ActionNotAvailable",
]
