"""Tests for plain-text rendering."""

from __future__ import annotations

import pytest

from rpg_combat.engine.render import TextRenderer, health_bar
from rpg_combat.models.combatant import Combatant
from rpg_combat.models.enums import ActionType, SessionState
from rpg_combat.models.outcome import ActionOutcome
from rpg_combat.models.session import CombatSession


@pytest.fixture
def session(hero: Combatant, goblin: Combatant) -> CombatSession:
    return CombatSession(id="u1", owner="u1", combatants=[hero, goblin])


class TestHealthBar:
    """Tests for health_bar."""

    @pytest.mark.parametrize(
        ("current", "maximum", "bar"),
        [
            (10, 10, "[##########]"),
            (5, 10, "[#####-----]"),
            (0, 10, "[----------]"),
            (0, 0, "[----------]"),
        ],
    )
    def test_bar(self, current: int, maximum: int, bar: str) -> None:
        """Test bar fill levels."""
        assert health_bar(current, maximum) == bar


class TestTextRenderer:
    """Tests for TextRenderer."""

    def test_active_session(self, session: CombatSession) -> None:
        """Test the roster, turn marker and prompt."""
        text = TextRenderer().render(session)

        lines = text.splitlines()
        assert lines[0] == "Round 1 | ACTIVE"
        assert lines[1].startswith("> Aria HP")
        assert "MP 10/10" in lines[1]
        assert lines[2].startswith("  Goblin HP")
        assert lines[-1] == "Aria's turn"

    def test_outcome_and_follow_ups(self, session: CombatSession) -> None:
        """Test that the outcome narrative and monster turns are listed."""
        outcome = ActionOutcome(
            actor_id="p-u1",
            action_type=ActionType.DEFEND,
            narrative="Aria takes a defensive stance.",
            turn_notes=["Goblin takes 2 damage from Poisoned"],
            follow_ups=[
                ActionOutcome(actor_id="goblin-1", action_type=ActionType.ATTACK, narrative="Goblin's attack misses Aria.")
            ],
        )
        session.get_combatant("p-u1").defending = True

        text = TextRenderer().render(session, outcome)

        assert "(defending)" in text
        assert "Aria takes a defensive stance." in text
        assert "Goblin takes 2 damage from Poisoned" in text
        assert "Goblin's attack misses Aria." in text

    def test_ended_session(self, session: CombatSession) -> None:
        """Test that an ended fight shows no turn prompt."""
        session.get_combatant("goblin-1").take_damage(99)
        session.state = SessionState.VICTORY

        text = TextRenderer().render(session)

        assert text.startswith("Round 1 | VICTORY")
        assert "Goblin HP [----------] 0/7 (down)" in text
        assert "turn" not in text
