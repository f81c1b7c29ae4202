"""Tests for configuration management."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from rpg_combat.core.config import (
    CombatSettings,
    PersistenceSettings,
    ProgressionSettings,
    SessionSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from rpg_combat.core.exceptions import ConfigurationError


class TestCombatSettings:
    """Tests for CombatSettings configuration."""

    def test_default_values(self) -> None:
        """Test default combat rules."""
        settings = CombatSettings()

        assert settings.defend_armor_bonus == 2
        assert settings.flee_mode == "fixed"
        assert settings.flee_difficulty == 10
        assert settings.critical_hit_rule == "double_dice"
        assert settings.monster_critical_hit_rule == "double_damage"
        assert settings.group_hp_scaling == 0.5

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test combat rules read from the environment."""
        monkeypatch.setenv("RPG_COMBAT_COMBAT_FLEE_DIFFICULTY", "15")
        monkeypatch.setenv("RPG_COMBAT_COMBAT_FLEE_MODE", "opposed")

        settings = CombatSettings()

        assert settings.flee_difficulty == 15
        assert settings.flee_mode == "opposed"

    def test_rejects_unknown_critical_rule(self) -> None:
        """Test that only the two critical hit rules are accepted."""
        with pytest.raises(ValueError):
            CombatSettings(critical_hit_rule="triple_damage")


class TestSessionSettings:
    """Tests for SessionSettings configuration."""

    def test_idle_timeout(self) -> None:
        """Test the idle timeout default and timedelta view."""
        settings = SessionSettings()

        assert settings.idle_timeout == timedelta(minutes=30)

    def test_timeout_must_be_positive(self) -> None:
        """Test that a zero timeout is rejected."""
        with pytest.raises(ValueError):
            SessionSettings(idle_timeout_seconds=0)


class TestProgressionSettings:
    """Tests for ProgressionSettings configuration."""

    def test_default_values(self) -> None:
        """Test default reward and penalty figures."""
        settings = ProgressionSettings()

        assert settings.max_level == 20
        assert settings.defeat_gold_penalty == 0.1
        assert settings.defeat_recovery_ratio == 0.25


class TestPersistenceSettings:
    """Tests for PersistenceSettings configuration."""

    def test_wait_bounds_validation(self) -> None:
        """Test that the base wait must not exceed the maximum wait."""
        with pytest.raises(ConfigurationError) as exc_info:
            PersistenceSettings(retry_wait_seconds=10, retry_max_wait_seconds=1)

        assert "retry_wait_seconds" in str(exc_info.value)

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test retry attempts read from the environment."""
        monkeypatch.setenv("RPG_COMBAT_PERSISTENCE_RETRY_ATTEMPTS", "5")

        assert PersistenceSettings().retry_attempts == 5


class TestSettings:
    """Tests for main Settings configuration."""

    def test_default_settings(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test default settings initialization."""
        monkeypatch.chdir(tmp_path)

        settings = Settings()

        assert settings.app_name == "RPG Combat Engine"
        assert settings.log_level == "INFO"
        assert settings.json_logs is False
        assert settings.content_path is None
        assert isinstance(settings.combat, CombatSettings)
        assert isinstance(settings.persistence, PersistenceSettings)

    def test_log_level_from_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test log level setting."""
        monkeypatch.setenv("RPG_COMBAT_LOG_LEVEL", "DEBUG")
        monkeypatch.chdir(tmp_path)

        assert Settings().log_level == "DEBUG"

    def test_nested_defaults_read_their_own_env(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that sub-settings pick up their prefixed variables."""
        monkeypatch.setenv("RPG_COMBAT_COMBAT_DEFEND_ARMOR_BONUS", "4")
        monkeypatch.chdir(tmp_path)

        assert Settings().combat.defend_armor_bonus == 4

    def test_dotenv_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test settings loaded from a .env file in the working directory."""
        (tmp_path / ".env").write_text("RPG_COMBAT_JSON_LOGS=true\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)

        assert Settings().json_logs is True


class TestGetSettings:
    """Tests for get_settings singleton function."""

    def test_returns_settings_instance(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that get_settings returns a Settings instance."""
        monkeypatch.chdir(tmp_path)

        assert isinstance(get_settings(), Settings)

    def test_caching(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that settings are cached."""
        monkeypatch.chdir(tmp_path)

        assert get_settings() is get_settings()

    def test_cache_clear(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that cache can be cleared."""
        monkeypatch.chdir(tmp_path)

        settings1 = get_settings()
        clear_settings_cache()
        settings2 = get_settings()

        assert settings1 is not settings2

    def test_invalid_env_raises_configuration_error(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that invalid configuration surfaces as ConfigurationError."""
        monkeypatch.setenv("RPG_COMBAT_LOG_LEVEL", "LOUD")
        monkeypatch.chdir(tmp_path)

        with pytest.raises(ConfigurationError) as exc_info:
            get_settings()

        assert "Failed to load application settings" in str(exc_info.value)
