"""Interfaces to the systems the combat engine talks to.

The engine never owns characters, inventories, quests or views. It reads
and writes them through the abstract interfaces below. In-memory
implementations are provided for tests and for running the engine
standalone.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections import Counter, defaultdict
from collections.abc import Mapping
from typing import Any

from rpg_combat.core.exceptions import ItemNotUsable, PersistenceError
from rpg_combat.core.logging import get_logger
from rpg_combat.models.combatant import Combatant, ResourcePool
from rpg_combat.models.outcome import ActionOutcome, CombatantDelta
from rpg_combat.models.session import CombatSession


logger = get_logger(__name__)


# =============================================================================
# Abstract Interfaces
# =============================================================================


class CharacterRepository(ABC):
    """Read/write access to player characters."""

    @abstractmethod
    def load_combatant(self, identity: str) -> Combatant:
        """Load the combat-relevant stats of a character.

        Args:
            identity: The owning user identity.

        Returns:
            A player Combatant at the character's current health and mana.

        Raises:
            PersistenceError: If the character cannot be loaded.
        """

    @abstractmethod
    def persist(self, delta: CombatantDelta) -> None:
        """Write end-of-combat state back to the character.

        Raises:
            PersistenceError: If the write fails. Transient failures may
                also surface as ConnectionError or TimeoutError.
        """


class InventoryService(ABC):
    """Item possession checks and consumption."""

    @abstractmethod
    def has_item(self, identity: str, item_id: str) -> bool:
        """Whether the identity holds at least one charge of the item."""

    @abstractmethod
    def consume_item(self, identity: str, item_id: str) -> None:
        """Remove one charge of the item.

        Raises:
            ItemNotUsable: If the identity holds no charge.
        """


class QuestNotifier(ABC):
    """Receives kill events for quest objective tracking."""

    @abstractmethod
    def record_kill(self, identity: str, monster_id: str) -> None:
        """Record that ``identity`` landed the killing blow on ``monster_id``."""


class Renderer(ABC):
    """Turns a session and its latest outcome into the next user-facing view.

    The view type is owned by the UI layer (an embed, a message payload,
    plain text).
    """

    @abstractmethod
    def render(self, session: CombatSession, outcome: ActionOutcome | None = None) -> Any:
        """Build the view for ``session`` after ``outcome``."""


# =============================================================================
# In-Memory Implementations
# =============================================================================


class InMemoryCharacterRepository(CharacterRepository):
    """Character store backed by a dict of combatant templates.

    Example:
        >>> repo = InMemoryCharacterRepository({"1234": hero})
        >>> repo.load_combatant("1234").name
        'Aria'
    """

    def __init__(self, characters: Mapping[str, Combatant] | None = None) -> None:
        self._characters: dict[str, Combatant] = dict(characters or {})
        self.deaths: Counter[str] = Counter()
        self.writes: list[CombatantDelta] = []
        self._lock = threading.Lock()

    def add(self, identity: str, combatant: Combatant) -> None:
        with self._lock:
            self._characters[identity] = combatant

    def get(self, identity: str) -> Combatant | None:
        return self._characters.get(identity)

    def load_combatant(self, identity: str) -> Combatant:
        with self._lock:
            template = self._characters.get(identity)
        if template is None:
            raise PersistenceError(
                f"No character for identity {identity}",
                details={"identity": identity},
            )
        return template.model_copy(deep=True)

    def persist(self, delta: CombatantDelta) -> None:
        with self._lock:
            character = self._characters.get(delta.identity_ref)
            if character is None:
                raise PersistenceError(
                    f"No character for identity {delta.identity_ref}",
                    details={"identity": delta.identity_ref},
                )
            updated = character.model_copy(deep=True)
            updated.health = ResourcePool(current=delta.health, max=delta.max_health)
            updated.mana = ResourcePool(current=delta.mana, max=delta.max_mana)
            updated.level = delta.level
            updated.xp = delta.xp
            updated.gold = delta.gold
            updated.status_effects = []
            updated.cooldowns = {}
            updated.defending = False
            updated.damage_dealt = 0
            updated.last_hit_by = None
            self._characters[delta.identity_ref] = updated
            self.deaths[delta.identity_ref] += delta.deaths_added
            self.writes.append(delta)
        logger.debug("Character persisted", identity=delta.identity_ref, level=delta.level)


class InMemoryInventory(InventoryService):
    """Inventory backed by per-identity item counts."""

    def __init__(self, items: Mapping[str, Mapping[str, int]] | None = None) -> None:
        self._items: defaultdict[str, Counter[str]] = defaultdict(Counter)
        for identity, counts in (items or {}).items():
            self._items[identity].update(counts)
        self._lock = threading.Lock()

    def give(self, identity: str, item_id: str, quantity: int = 1) -> None:
        with self._lock:
            self._items[identity][item_id] += quantity

    def count(self, identity: str, item_id: str) -> int:
        return self._items[identity][item_id]

    def has_item(self, identity: str, item_id: str) -> bool:
        return self.count(identity, item_id) > 0

    def consume_item(self, identity: str, item_id: str) -> None:
        with self._lock:
            if self._items[identity][item_id] <= 0:
                raise ItemNotUsable(f"{identity} has no {item_id} left", details={"item_id": item_id})
            self._items[identity][item_id] -= 1


class InMemoryQuestNotifier(QuestNotifier):
    """Collects kill events per identity."""

    def __init__(self) -> None:
        self.kills: defaultdict[str, list[str]] = defaultdict(list)

    def record_kill(self, identity: str, monster_id: str) -> None:
        self.kills[identity].append(monster_id)

    def as_dict(self) -> dict[str, Any]:
        return {identity: list(kills) for identity, kills in self.kills.items()}


__all__ = [
    "CharacterRepository",
    "InventoryService",
    "QuestNotifier",
    "Renderer",
    "InMemoryCharacterRepository",
    "InMemoryInventory",
    "InMemoryQuestNotifier",
]
