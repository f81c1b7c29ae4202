"""Pytest configuration and shared fixtures.

This module provides common fixtures for the combat engine test suite:
a scripted random generator so every die roll can be chosen by the test,
a small content set, player factories and a fully wired engine.
"""

from __future__ import annotations

import random
from collections import deque
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, TypeVar

import pytest

from rpg_combat.collaborators import (
    InMemoryCharacterRepository,
    InMemoryInventory,
    InMemoryQuestNotifier,
)
from rpg_combat.content.repository import ContentRepository
from rpg_combat.core.config import CombatSettings, PersistenceSettings, Settings
from rpg_combat.engine.dice import DiceRoller
from rpg_combat.engine.service import CombatEngine, EvictionListener
from rpg_combat.models.combatant import Combatant, ResourcePool
from rpg_combat.models.enums import CombatantKind


if TYPE_CHECKING:
    from collections.abc import Generator

T = TypeVar("T")


# =============================================================================
# Scripted Randomness
# =============================================================================


class ScriptedRandom(random.Random):
    """A Random whose die faces are queued by the test.

    d20 rolls each die as ``random.randrange(sides) + 1``; the ``rng``
    fixture routes that call here, so ``push(4)`` makes the next die show
    a 4 and ``calls`` records ``(1, sides)`` per die. Once the queue runs
    dry it falls back to a seeded generator, so tests only script the rolls
    they assert on. ``choice`` picks the first option unless an index was
    queued with ``push_choice``.
    """

    def __init__(self) -> None:
        super().__init__(0)
        self.values: deque[int] = deque()
        self.choices: deque[int] = deque()
        self.calls: list[tuple[int, int]] = []

    def push(self, *values: int) -> ScriptedRandom:
        self.values.extend(values)
        return self

    def push_choice(self, *indices: int) -> ScriptedRandom:
        self.choices.extend(indices)
        return self

    def randrange(self, start: int, stop: int | None = None, step: int = 1) -> int:
        if stop is None:
            low, high, offset = 1, start, 1
        else:
            low, high, offset = start, stop - 1, 0
        self.calls.append((low, high))
        if not self.values:
            return super().randrange(start, stop, step)
        value = self.values.popleft()
        if not low <= value <= high:
            msg = f"Scripted roll {value} outside [{low}, {high}]"
            raise ValueError(msg)
        return value - offset

    def choice(self, seq: Sequence[T]) -> T:
        index = self.choices.popleft() if self.choices else 0
        return seq[index]


@pytest.fixture
def rng(monkeypatch: pytest.MonkeyPatch) -> ScriptedRandom:
    """Provide a scripted generator that also feeds d20's dice."""
    scripted = ScriptedRandom()
    monkeypatch.setattr(random, "randrange", scripted.randrange)
    return scripted


@pytest.fixture
def roller(rng: ScriptedRandom) -> DiceRoller:
    """Provide a dice roller drawing from the scripted generator."""
    return DiceRoller(rng=rng)


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from rpg_combat.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings() -> Settings:
    """Provide settings with instant persistence retries."""
    return Settings(
        persistence=PersistenceSettings(
            retry_attempts=3,
            retry_wait_seconds=0,
            retry_max_wait_seconds=0,
        ),
    )


@pytest.fixture
def combat_settings(settings: Settings) -> CombatSettings:
    return settings.combat


# =============================================================================
# Content Fixtures
# =============================================================================


CONTENT: dict[str, Any] = {
    "monsters": {
        "goblin": {
            "name": "Goblin",
            "hp": 7,
            "armor_class": 13,
            "attack_bonus": 3,
            "damage_formula": "1d6",
            "xp_reward": 50,
            "gold_reward": 10,
        },
        "orc": {
            "name": "Orc",
            "hp": 15,
            "armor_class": 13,
            "attack_bonus": 5,
            "damage_formula": "1d12+3",
            "dexterity_modifier": 1,
            "xp_reward": 100,
            "gold_reward": 25,
        },
    },
    "spells": {
        "firebolt": {
            "name": "Fire Bolt",
            "effect": "damage",
            "mana_cost": 5,
            "formula": "1d10",
        },
        "cure_wounds": {
            "name": "Cure Wounds",
            "effect": "heal",
            "target": "ally",
            "mana_cost": 3,
            "cooldown": 2,
            "formula": "2d4",
        },
        "poison_spray": {
            "name": "Poison Spray",
            "effect": "status",
            "mana_cost": 2,
            "status_effect": "poisoned",
            "auto_hit": True,
        },
        "shield": {
            "name": "Shield",
            "effect": "buff",
            "mana_cost": 2,
            "status_effect": "shielded",
        },
        "venom_dart": {
            "name": "Venom Dart",
            "effect": "damage",
            "mana_cost": 1,
            "formula": "1d4",
            "status_effect": "poisoned",
            "status_duration": 2,
        },
        "cause_fear": {
            "name": "Cause Fear",
            "effect": "status",
            "mana_cost": 1,
            "status_effect": "frightened",
        },
    },
    "abilities": {
        "power_strike": {
            "name": "Power Strike",
            "effect": "damage",
            "cooldown": 2,
            "formula": "2d6+2",
        },
        "action_surge": {
            "name": "Action Surge",
            "effect": "buff",
            "cooldown": 3,
            "status_effect": "blessed",
            "keeps_turn": True,
        },
        "stunning_blow": {
            "name": "Stunning Blow",
            "effect": "status",
            "status_effect": "stunned",
            "auto_hit": True,
        },
    },
    "items": {
        "potion": {"name": "Healing Potion", "effect": "heal", "formula": "2d4+2"},
        "antidote": {"name": "Antidote", "effect": "cure", "cures": "poisoned"},
        "mana_potion": {"name": "Mana Potion", "effect": "restore_mana", "formula": "1d6+2"},
        "elixir": {"name": "Elixir of Might", "effect": "buff", "status_effect": "blessed"},
        "trinket": {"name": "Shiny Trinket"},
    },
}


@pytest.fixture
def content_data() -> dict[str, Any]:
    """Provide raw content tables."""
    return CONTENT


@pytest.fixture
def content() -> ContentRepository:
    """Provide the test content repository."""
    return ContentRepository.from_mapping(CONTENT)


# =============================================================================
# Combatant Fixtures
# =============================================================================


PlayerFactory = Callable[..., Combatant]


@pytest.fixture
def make_player() -> PlayerFactory:
    """Provide a factory for player combatants.

    The defaults match the reference hero: HP 20, AC 12, attack +5,
    damage 1d6+3.
    """

    def _make(
        identity: str = "u1",
        *,
        name: str | None = None,
        hp: int = 20,
        max_hp: int | None = None,
        mana: int = 10,
        max_mana: int | None = None,
        **overrides: Any,
    ) -> Combatant:
        data: dict[str, Any] = {
            "id": f"p-{identity}",
            "name": name or f"Hero {identity}",
            "kind": CombatantKind.PLAYER,
            "identity_ref": identity,
            "health": ResourcePool(current=hp, max=max_hp if max_hp is not None else hp),
            "mana": ResourcePool(current=mana, max=max_mana if max_mana is not None else mana),
            "armor_class": 12,
            "attack_bonus": 5,
            "damage_formula": "1d6+3",
            "spells": ["firebolt", "cure_wounds", "poison_spray", "shield", "venom_dart", "cause_fear"],
            "abilities": ["power_strike", "action_surge", "stunning_blow"],
            "gold": 100,
        }
        data.update(overrides)
        return Combatant(**data)

    return _make


@pytest.fixture
def hero(make_player: PlayerFactory) -> Combatant:
    return make_player("u1", name="Aria")


@pytest.fixture
def goblin(content: ContentRepository) -> Combatant:
    return content.monster("goblin").instantiate("goblin-1")


# =============================================================================
# Collaborator and Engine Fixtures
# =============================================================================


@pytest.fixture
def characters(make_player: PlayerFactory) -> InMemoryCharacterRepository:
    """Provide a character store with three heroes."""
    return InMemoryCharacterRepository(
        {
            "u1": make_player("u1", name="Aria"),
            "u2": make_player("u2", name="Borin"),
            "u3": make_player("u3", name="Cyra"),
        }
    )


@pytest.fixture
def inventory() -> InMemoryInventory:
    return InMemoryInventory(
        {
            "u1": {"potion": 2, "antidote": 1, "mana_potion": 1, "elixir": 1, "trinket": 1},
            "u2": {"potion": 1},
        }
    )


@pytest.fixture
def quests() -> InMemoryQuestNotifier:
    return InMemoryQuestNotifier()


class FakeClock:
    """A settable UTC clock."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


EngineFactory = Callable[..., CombatEngine]


@pytest.fixture
def make_engine(
    content: ContentRepository,
    characters: InMemoryCharacterRepository,
    inventory: InMemoryInventory,
    quests: InMemoryQuestNotifier,
    settings: Settings,
    roller: DiceRoller,
    clock: FakeClock,
) -> EngineFactory:
    """Provide a factory for engines with scripted dice.

    Keyword arguments override combat rule settings, e.g.
    ``make_engine(flee_difficulty=15)``.
    """

    def _make(on_evict: EvictionListener | None = None, **combat_overrides: Any) -> CombatEngine:
        configured = settings
        if combat_overrides:
            configured = settings.model_copy(
                update={"combat": CombatSettings(**combat_overrides)}
            )
        return CombatEngine(
            content,
            characters,
            inventory=inventory,
            quests=quests,
            settings=configured,
            roller=roller,
            clock=clock,
            on_evict=on_evict,
        )

    return _make


@pytest.fixture
def engine(make_engine: EngineFactory) -> CombatEngine:
    """Provide a fully wired engine with scripted dice."""
    return make_engine()
