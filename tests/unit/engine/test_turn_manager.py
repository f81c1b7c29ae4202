"""Tests for initiative and turn management."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

import pytest

from rpg_combat.content.repository import ContentRepository
from rpg_combat.core.exceptions import InvalidGameStateError, NotYourTurn
from rpg_combat.engine.dice import DiceRoller
from rpg_combat.engine.turn_manager import TurnManager
from rpg_combat.models.combatant import Combatant
from rpg_combat.models.enums import SessionMode, SessionState
from rpg_combat.models.session import CombatSession


if TYPE_CHECKING:
    from conftest import ScriptedRandom


@pytest.fixture
def manager(roller: DiceRoller) -> TurnManager:
    return TurnManager(roller)


@pytest.fixture
def session(hero: Combatant, goblin: Combatant) -> CombatSession:
    return CombatSession(id="u1", owner="u1", combatants=[hero, goblin])


@pytest.fixture
def party(
    make_player: Callable[..., Combatant],
    content: ContentRepository,
) -> CombatSession:
    return CombatSession(
        id="party",
        owner="u1",
        mode=SessionMode.GROUP,
        combatants=[
            make_player("u1", name="Aria"),
            make_player("u2", name="Borin"),
            content.monster("goblin").instantiate("goblin-1"),
        ],
    )


class TestInitiative:
    """Tests for initiative rolls and ordering."""

    def test_sorted_by_total(
        self,
        manager: TurnManager,
        rng: ScriptedRandom,
        hero: Combatant,
        goblin: Combatant,
    ) -> None:
        """Test that the higher total acts first."""
        rng.push(10, 15)

        ordered = manager.roll_initiative([hero, goblin])

        assert [c.id for c in ordered] == ["goblin-1", "p-u1"]
        assert goblin.initiative == 15
        assert hero.initiative == 10

    def test_dexterity_breaks_ties(
        self,
        manager: TurnManager,
        rng: ScriptedRandom,
        hero: Combatant,
        content: ContentRepository,
    ) -> None:
        """Test that equal totals are ordered by dexterity modifier."""
        orc = content.monster("orc").instantiate("orc-1")
        rng.push(11, 10)

        ordered = manager.roll_initiative([hero, orc])

        assert hero.initiative == orc.initiative == 11
        assert [c.id for c in ordered] == ["orc-1", "p-u1"]

    def test_full_ties_keep_input_order(
        self,
        manager: TurnManager,
        rng: ScriptedRandom,
        make_player: Callable[..., Combatant],
    ) -> None:
        """Test that full ties are stable."""
        players = [make_player("u1"), make_player("u2"), make_player("u3")]
        rng.push(12, 12, 12)

        ordered = manager.roll_initiative(players)

        assert [c.id for c in ordered] == ["p-u1", "p-u2", "p-u3"]

    def test_one_roll_per_combatant(
        self,
        manager: TurnManager,
        rng: ScriptedRandom,
        hero: Combatant,
        goblin: Combatant,
    ) -> None:
        """Test that initiative draws exactly one d20 each."""
        manager.roll_initiative([hero, goblin])

        assert rng.calls == [(1, 20), (1, 20)]


class TestValidateTurn:
    """Tests for turn validation."""

    def test_current_player(self, manager: TurnManager, session: CombatSession) -> None:
        """Test that the turn holder is returned."""
        assert manager.validate_turn(session, "u1").id == "p-u1"

    def test_other_identity(self, manager: TurnManager, party: CombatSession) -> None:
        """Test that another party member is rejected."""
        with pytest.raises(NotYourTurn) as exc_info:
            manager.validate_turn(party, "u2")

        assert exc_info.value.details == {"identity": "u2", "expected": "u1"}

    def test_monster_turn(self, manager: TurnManager, session: CombatSession) -> None:
        """Test that nobody may act on a monster's turn."""
        session.current_turn_index = 1

        with pytest.raises(NotYourTurn):
            manager.validate_turn(session, "u1")

    def test_ended_session(self, manager: TurnManager, session: CombatSession) -> None:
        """Test that an ended session accepts no actions."""
        session.state = SessionState.FLED

        with pytest.raises(InvalidGameStateError):
            manager.validate_turn(session, "u1")

    def test_defeated_turn_holder(self, manager: TurnManager, session: CombatSession) -> None:
        """Test that a player at 0 HP cannot act even while holding the turn."""
        session.get_combatant("p-u1").take_damage(99)

        with pytest.raises(InvalidGameStateError) as exc_info:
            manager.validate_turn(session, "u1")

        assert exc_info.value.details["combatant_id"] == "p-u1"


class TestBegin:
    """Tests for handing out the opening turn."""

    def test_living_opener_keeps_turn(self, manager: TurnManager, session: CombatSession) -> None:
        """Test that a healthy initiative winner keeps the first turn."""
        assert manager.begin(session) == []
        assert session.current_turn_index == 0
        assert session.round == 1

    def test_downed_opener_passed_over(
        self,
        manager: TurnManager,
        make_player: Callable[..., Combatant],
        content: ContentRepository,
    ) -> None:
        """Test that a player at 0 HP who won initiative does not get the turn."""
        session = CombatSession(
            id="party",
            owner="u1",
            mode=SessionMode.GROUP,
            combatants=[
                make_player("u1", name="Aria", hp=0, max_hp=20),
                make_player("u2", name="Borin"),
                content.monster("goblin").instantiate("goblin-1"),
            ],
        )

        manager.begin(session)

        assert session.current_combatant.id == "p-u2"
        assert session.round == 1
        assert manager.validate_turn(session, "u2").id == "p-u2"
        with pytest.raises(NotYourTurn):
            manager.validate_turn(session, "u1")

    def test_decided_roster_not_advanced(self, manager: TurnManager, session: CombatSession) -> None:
        """Test that a roster with one side already down is settled, not looped."""
        session.get_combatant("goblin-1").take_damage(99)

        assert manager.begin(session) == []
        assert session.state is SessionState.VICTORY
        assert session.current_turn_index == 0


class TestCheckTermination:
    """Tests for victory and defeat detection."""

    def test_still_active(self, manager: TurnManager, session: CombatSession) -> None:
        """Test that a fight with both sides standing goes on."""
        assert manager.check_termination(session) is SessionState.ACTIVE

    def test_victory(self, manager: TurnManager, session: CombatSession) -> None:
        """Test victory once every monster is down."""
        session.get_combatant("goblin-1").take_damage(99)

        assert manager.check_termination(session) is SessionState.VICTORY
        assert session.state is SessionState.VICTORY

    def test_defeat(self, manager: TurnManager, session: CombatSession) -> None:
        """Test defeat once every player is down."""
        session.get_combatant("p-u1").take_damage(99)

        assert manager.check_termination(session) is SessionState.DEFEAT

    def test_victory_wins_simultaneous_knockout(self, manager: TurnManager, session: CombatSession) -> None:
        """Test that victory is checked before defeat."""
        for combatant in session.combatants:
            combatant.take_damage(99)

        assert manager.check_termination(session) is SessionState.VICTORY


class TestStartTurn:
    """Tests for start-of-turn processing."""

    def test_clears_defending(self, manager: TurnManager, hero: Combatant) -> None:
        """Test that the defend stance lasts until the next own turn."""
        hero.defending = True

        manager.start_turn(hero)

        assert not hero.defending

    def test_cooldowns_count_down(self, manager: TurnManager, hero: Combatant) -> None:
        """Test that cooldowns tick once per own turn and drop at zero."""
        hero.set_cooldown("cure_wounds", 2)

        manager.start_turn(hero)
        assert hero.cooldown_remaining("cure_wounds") == 1

        manager.start_turn(hero)
        assert hero.cooldowns == {}

    def test_damage_over_time(
        self,
        manager: TurnManager,
        rng: ScriptedRandom,
        goblin: Combatant,
        content: ContentRepository,
    ) -> None:
        """Test per-turn damage and duration countdown."""
        goblin.apply_effect(content.status_effect("poisoned").activate(source="p-u1"))
        rng.push(3)

        start = manager.start_turn(goblin)

        assert start.damage == 3
        assert goblin.health.current == 4
        assert goblin.get_effect("poisoned").remaining == 2
        assert "Goblin takes 3 damage from Poisoned" in start.notes

    def test_damage_over_time_credits_source(
        self,
        manager: TurnManager,
        rng: ScriptedRandom,
        goblin: Combatant,
        content: ContentRepository,
    ) -> None:
        """Test that a lethal tick credits whoever applied the effect."""
        goblin.health.current = 2
        goblin.apply_effect(content.status_effect("poisoned").activate(source="p-u1"))
        rng.push(4)

        manager.start_turn(goblin)

        assert goblin.is_defeated
        assert goblin.last_hit_by == "p-u1"

    def test_healing_over_time(
        self,
        manager: TurnManager,
        rng: ScriptedRandom,
        make_player: Callable[..., Combatant],
        content: ContentRepository,
    ) -> None:
        """Test per-turn healing."""
        player = make_player(hp=10, max_hp=20)
        player.apply_effect(content.status_effect("regenerating").activate())
        rng.push(4)

        start = manager.start_turn(player)

        assert start.healing == 4
        assert player.health.current == 14

    def test_expiry(self, manager: TurnManager, hero: Combatant, content: ContentRepository) -> None:
        """Test that effects are dropped when their duration runs out."""
        hero.apply_effect(content.status_effect("shielded").activate(duration=1))

        start = manager.start_turn(hero)

        assert hero.status_effects == []
        assert "Shielded wears off Aria" in start.notes

    def test_skip_decided_before_tick(
        self,
        manager: TurnManager,
        goblin: Combatant,
        content: ContentRepository,
    ) -> None:
        """Test that a one-turn stun still costs the turn it expires on."""
        goblin.apply_effect(content.status_effect("stunned").activate())

        start = manager.start_turn(goblin)

        assert start.skipped
        assert not goblin.has_effect("stunned")
        assert "Goblin loses the turn" in start.notes


class TestAdvanceTurn:
    """Tests for turn advancement."""

    def test_moves_to_next(self, manager: TurnManager, session: CombatSession) -> None:
        """Test a plain turn hand-over."""
        manager.advance_turn(session)

        assert session.current_turn_index == 1
        assert session.round == 1

    def test_wrap_increments_round(self, manager: TurnManager, session: CombatSession) -> None:
        """Test that wrapping to the first combatant starts a new round."""
        manager.advance_turn(session)
        manager.advance_turn(session)

        assert session.current_turn_index == 0
        assert session.round == 2

    def test_skips_defeated(self, manager: TurnManager, party: CombatSession) -> None:
        """Test that knocked-out combatants are passed over."""
        party.get_combatant("p-u2").take_damage(99)

        manager.advance_turn(party)

        assert party.current_combatant.id == "goblin-1"

    def test_skips_stunned(
        self,
        manager: TurnManager,
        session: CombatSession,
        content: ContentRepository,
    ) -> None:
        """Test that a stunned monster loses its turn."""
        session.get_combatant("goblin-1").apply_effect(content.status_effect("stunned").activate())

        notes = manager.advance_turn(session)

        assert session.current_combatant.id == "p-u1"
        assert session.round == 2
        assert "Goblin loses the turn" in notes

    def test_lethal_tick_ends_fight(
        self,
        manager: TurnManager,
        rng: ScriptedRandom,
        session: CombatSession,
        content: ContentRepository,
    ) -> None:
        """Test that a monster killed by poison ends the fight on the spot."""
        goblin = session.get_combatant("goblin-1")
        goblin.health.current = 1
        goblin.apply_effect(content.status_effect("poisoned").activate(source="p-u1"))
        rng.push(2)

        manager.advance_turn(session)

        assert session.state is SessionState.VICTORY
        assert session.current_turn_index == 1

    def test_ended_session_rejected(self, manager: TurnManager, session: CombatSession) -> None:
        """Test that an ended session's turn cannot move."""
        session.state = SessionState.DEFEAT

        with pytest.raises(InvalidGameStateError):
            manager.advance_turn(session)
