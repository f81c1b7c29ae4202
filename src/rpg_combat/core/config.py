"""Configuration management for the RPG combat engine.

This module provides centralized configuration management using
pydantic-settings, supporting environment variables, .env files, and
runtime configuration overrides.

Example:
    >>> from rpg_combat.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.combat.flee_difficulty
    10

Environment Variables:
    RPG_COMBAT_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    RPG_COMBAT_JSON_LOGS: Emit JSON log lines instead of console output
    RPG_COMBAT_COMBAT_FLEE_DIFFICULTY: Fixed DC for flee attempts
    RPG_COMBAT_SESSION_IDLE_TIMEOUT_SECONDS: Idle time before eviction
    RPG_COMBAT_PERSISTENCE_RETRY_ATTEMPTS: Attempts for end-of-combat writes
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rpg_combat.core.exceptions import ConfigurationError


class CombatSettings(BaseSettings):
    """Configuration for combat resolution rules.

    Attributes:
        defend_armor_bonus: AC bonus granted by the defend action.
        flee_mode: 'fixed' compares against flee_difficulty, 'opposed'
            against the best monster's dexterity roll.
        flee_difficulty: DC of a fixed-mode flee attempt.
        critical_hit_rule: How natural 20s multiply player damage.
        monster_critical_hit_rule: How natural 20s multiply monster damage.
        group_hp_scaling: Extra monster HP per additional party member,
            as a fraction of base HP.
    """

    model_config = SettingsConfigDict(
        env_prefix="RPG_COMBAT_COMBAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    defend_armor_bonus: int = Field(
        default=2,
        ge=0,
        le=10,
        description="AC bonus while defending",
    )
    flee_mode: Literal["fixed", "opposed"] = Field(
        default="fixed",
        description="Flee resolution mode",
    )
    flee_difficulty: int = Field(
        default=10,
        ge=1,
        le=30,
        description="Flee DC in fixed mode",
    )
    critical_hit_rule: Literal["double_dice", "double_damage"] = Field(
        default="double_dice",
        description="Critical hit damage calculation",
    )
    monster_critical_hit_rule: Literal["double_dice", "double_damage"] = Field(
        default="double_damage",
        description="Critical hit damage calculation for monster attacks",
    )
    group_hp_scaling: float = Field(
        default=0.5,
        ge=0.0,
        le=5.0,
        description="Monster HP bonus per extra party member",
    )


class SessionSettings(BaseSettings):
    """Configuration for the live session registry.

    Attributes:
        idle_timeout_seconds: Seconds without an action before a session
            is evicted as aborted.
    """

    model_config = SettingsConfigDict(
        env_prefix="RPG_COMBAT_SESSION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    idle_timeout_seconds: float = Field(
        default=30 * 60,
        gt=0,
        description="Idle time before eviction",
    )

    @property
    def idle_timeout(self) -> timedelta:
        """Idle timeout as a timedelta."""
        return timedelta(seconds=self.idle_timeout_seconds)


class ProgressionSettings(BaseSettings):
    """Configuration for rewards and penalties.

    Attributes:
        max_level: Level cap for characters.
        defeat_gold_penalty: Fraction of carried gold lost on defeat.
        defeat_recovery_ratio: Fraction of max HP a defeated player wakes with.
    """

    model_config = SettingsConfigDict(
        env_prefix="RPG_COMBAT_PROGRESSION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_level: int = Field(default=20, ge=1, le=100, description="Level cap")
    defeat_gold_penalty: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Gold fraction lost on defeat",
    )
    defeat_recovery_ratio: float = Field(
        default=0.25,
        gt=0.0,
        le=1.0,
        description="HP fraction restored after defeat",
    )


class PersistenceSettings(BaseSettings):
    """Configuration for end-of-combat writes.

    Attributes:
        retry_attempts: Total attempts per character write.
        retry_wait_seconds: Base of the exponential wait between attempts.
        retry_max_wait_seconds: Upper bound of the wait between attempts.
    """

    model_config = SettingsConfigDict(
        env_prefix="RPG_COMBAT_PERSISTENCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    retry_attempts: int = Field(default=3, ge=1, le=10, description="Write attempts")
    retry_wait_seconds: float = Field(default=0.5, ge=0, le=30, description="Base wait")
    retry_max_wait_seconds: float = Field(default=5.0, ge=0, le=120, description="Max wait")

    @model_validator(mode="after")
    def validate_wait_bounds(self) -> "PersistenceSettings":
        """Ensure the base wait does not exceed the maximum wait.

        Raises:
            ConfigurationError: If retry_wait_seconds > retry_max_wait_seconds.
        """
        if self.retry_wait_seconds > self.retry_max_wait_seconds:
            raise ConfigurationError(
                f"retry_wait_seconds ({self.retry_wait_seconds}) must not exceed "
                f"retry_max_wait_seconds ({self.retry_max_wait_seconds})",
                config_key="retry_wait_seconds",
            )
        return self


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        log_level: Application logging level.
        json_logs: Emit JSON logs.
        content_path: Optional JSON file with monsters/spells/items.
        combat: Combat rule settings.
        session: Session registry settings.
        progression: Reward and penalty settings.
        persistence: Persistence retry settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="RPG_COMBAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(default="RPG Combat Engine", description="Application name")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_logs: bool = Field(default=False, description="Emit JSON logs")
    content_path: Path | None = Field(default=None, description="Content JSON file")

    combat: CombatSettings = Field(default_factory=CombatSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    progression: ProgressionSettings = Field(default_factory=ProgressionSettings)
    persistence: PersistenceSettings = Field(default_factory=PersistenceSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "CombatSettings",
    "SessionSettings",
    "ProgressionSettings",
    "PersistenceSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
