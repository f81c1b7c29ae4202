"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

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


class TestRpgCombatError:
    """Tests for the base RpgCombatError exception."""

    def test_basic_message(self) -> None:
        """Test exception with basic message."""
        exc = RpgCombatError("Test error message")
        assert exc.message == "Test error message"
        assert exc.details == {}
        assert str(exc) == "Test error message"

    def test_with_details(self) -> None:
        """Test exception with additional details."""
        exc = RpgCombatError("Test error", details={"key": "value", "count": 42})
        assert exc.details == {"key": "value", "count": 42}
        assert "key='value'" in str(exc)
        assert "count=42" in str(exc)

    def test_repr(self) -> None:
        """Test exception repr output."""
        repr_str = repr(RpgCombatError("Test", details={"x": 1}))
        assert "RpgCombatError" in repr_str
        assert "Test" in repr_str


class TestConfigurationExceptions:
    """Tests for configuration and validation exceptions."""

    def test_configuration_error_with_key(self) -> None:
        """Test ConfigurationError with config key."""
        exc = ConfigurationError("Bad value", config_key="flee_difficulty")
        assert exc.details["config_key"] == "flee_difficulty"

    def test_validation_error_with_field(self) -> None:
        """Test ValidationError with field context."""
        exc = ValidationError("Invalid", field_name="participants", invalid_value=[])
        assert exc.details["field_name"] == "participants"
        assert exc.details["invalid_value"] == []


class TestContentExceptions:
    """Tests for content exceptions."""

    def test_content_not_found(self) -> None:
        """Test ContentNotFound carries table and id."""
        exc = ContentNotFound("Unknown spell", table="spells", content_id="meteor")
        assert exc.details == {"table": "spells", "content_id": "meteor"}
        assert isinstance(exc, ContentError)


class TestCombatExceptions:
    """Tests for combat-related exceptions."""

    def test_combat_error_context(self) -> None:
        """Test CombatError with combatant and round."""
        exc = CombatError("Combat failed", combatant_id="p-1", round_number=3)
        assert exc.details["combatant_id"] == "p-1"
        assert exc.details["round_number"] == 3

    def test_not_your_turn(self) -> None:
        """Test NotYourTurn carries both identities."""
        exc = NotYourTurn("It is Aria's turn", identity="u2", expected="u1")
        assert exc.details == {"identity": "u2", "expected": "u1"}

    def test_insufficient_resource(self) -> None:
        """Test InsufficientResource carries cost and balance."""
        exc = InsufficientResource("Not enough mana", required=5, available=3, combatant_id="p-1")
        assert exc.details["required"] == 5
        assert exc.details["available"] == 3
        assert exc.details["combatant_id"] == "p-1"

    def test_on_cooldown(self) -> None:
        """Test OnCooldown carries remaining turns."""
        exc = OnCooldown("Recharging", content_id="heal", remaining=2)
        assert exc.details == {"content_id": "heal", "remaining": 2}

    def test_session_errors_carry_key(self) -> None:
        """Test session errors carry the session key."""
        assert SessionNotFound("Gone", session_key="u1").details["session_key"] == "u1"
        assert SessionAlreadyExists("Busy", session_key="u1").details["session_key"] == "u1"

    def test_invalid_game_state(self) -> None:
        """Test InvalidGameStateError with state context."""
        exc = InvalidGameStateError("Ended", current_state="victory", expected_states=["active"])
        assert exc.details["current_state"] == "victory"
        assert exc.details["expected_states"] == ["active"]

    def test_invalid_formula_is_dice_error(self) -> None:
        """Test InvalidFormula carries the expression."""
        exc = InvalidFormula("Bad formula", expression="0d6")
        assert exc.details["expression"] == "0d6"
        assert isinstance(exc, DiceRollError)


class TestExceptionHierarchy:
    """Tests for exception inheritance."""

    @pytest.mark.parametrize(
        "exc_class",
        [
            SessionAlreadyExists,
            SessionNotFound,
            NotYourTurn,
            InsufficientResource,
            OnCooldown,
            InvalidTarget,
            ItemNotUsable,
            ActionNotAvailable,
        ],
    )
    def test_user_errors_are_combat_errors(self, exc_class: type[Exception]) -> None:
        """Test that recoverable action errors share CombatError."""
        assert issubclass(exc_class, CombatError)

    def test_engine_errors_inheritance(self) -> None:
        """Test game engine exception inheritance."""
        assert issubclass(CombatError, GameEngineError)
        assert issubclass(PersistenceError, GameEngineError)
        assert issubclass(GameEngineError, RpgCombatError)

    def test_catch_all_with_base(self) -> None:
        """Test catching all errors with the base class."""
        with pytest.raises(RpgCombatError):
            raise InvalidTarget("No such target")

    def test_invalid_formula_is_recoverable(self) -> None:
        """Test that a bad formula from a content author reaches the player as a combat error."""
        assert issubclass(InvalidFormula, CombatError)
        assert InvalidFormula("Bad formula").recoverable


class TestUserFacing:
    """Tests for the UI boundary helpers."""

    def test_user_message_drops_details(self) -> None:
        """Test that chat replies do not show internal context."""
        exc = NotYourTurn("It is Aria's turn", identity="u2", expected="u1")

        assert exc.user_message == "It is Aria's turn"
        assert "identity='u2'" in str(exc)

    def test_none_context_left_out(self) -> None:
        """Test that unset keyword context is not recorded."""
        exc = InvalidTarget("Gone", combatant_id=None, round_number=2)

        assert exc.details == {"round_number": 2}

    @pytest.mark.parametrize(
        ("exc", "recoverable"),
        [
            (InvalidTarget("x"), True),
            (SessionNotFound("x", session_key="u1"), True),
            (PersistenceError("x"), False),
            (ContentNotFound("x"), False),
            (ConfigurationError("x"), False),
        ],
    )
    def test_recoverable(self, exc: RpgCombatError, recoverable: bool) -> None:
        """Test which errors the bot may report and carry on from."""
        assert exc.recoverable is recoverable
