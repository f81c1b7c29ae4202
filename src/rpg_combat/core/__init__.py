"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        RpgCombatError: Base exception for all engine errors.
        CombatError and its subclasses: recoverable action rejections.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
        session_context: Scoped logging context.
"""

from __future__ import annotations

from rpg_combat.core.config import (
    CombatSettings,
    PersistenceSettings,
    ProgressionSettings,
    SessionSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from rpg_combat.core.exceptions import (
    ActionNotAvailable,
    CombatError,
    ConfigurationError,
    ContentError,
    ContentNotFound,
    DiceRollError,
    GameEngineError,
    InsufficientResource,
    InvalidFormula,
    InvalidGameStateError,
    InvalidTarget,
    ItemNotUsable,
    NotYourTurn,
    OnCooldown,
    PersistenceError,
    RpgCombatError,
    SessionAlreadyExists,
    SessionNotFound,
    ValidationError,
)
from rpg_combat.core.logging import (
    configure_logging,
    get_logger,
    session_context,
)


__all__ = [
    # Exceptions
    "RpgCombatError",
    "ConfigurationError",
    "ValidationError",
    "ContentError",
    "ContentNotFound",
    "GameEngineError",
    "InvalidGameStateError",
    "PersistenceError",
    "CombatError",
    "DiceRollError",
    "InvalidFormula",
    "SessionAlreadyExists",
    "SessionNotFound",
    "NotYourTurn",
    "InsufficientResource",
    "OnCooldown",
    "InvalidTarget",
    "ItemNotUsable",
    "ActionNotAvailable",
    # Configuration
    "Settings",
    "CombatSettings",
    "SessionSettings",
    "ProgressionSettings",
    "PersistenceSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "session_context",
]
