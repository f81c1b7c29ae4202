"""Typed lookup tables for static combat content.

The repository holds monsters, spells, abilities, items and status effects
keyed by id. Tables are loaded from a mapping (or a JSON file of the same
shape) and validated up front, including cross references from spells and
items to status effects, so that a bad content file fails at load time and
not halfway through an action.

Content shape::

    {
        "monsters": {"goblin": {"name": "Goblin", "hp": 7, "armor_class": 13}},
        "spells": {"firebolt": {"name": "Fire Bolt", "effect": "damage", ...}},
        "abilities": {...},
        "items": {...},
        "status_effects": {...}
    }

Each table may also be a list of objects carrying their own ``id``.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from rpg_combat.core.constants import DEFAULT_STATUS_EFFECTS
from rpg_combat.core.exceptions import ContentError, ContentNotFound
from rpg_combat.core.logging import get_logger
from rpg_combat.models.content import (
    AbilityDefinition,
    ItemDefinition,
    MonsterTemplate,
    SpellDefinition,
    StatusEffectDefinition,
)
from rpg_combat.models.enums import ItemEffect, TargetRule


logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

TABLES = ("monsters", "spells", "abilities", "items", "status_effects")


def _index(entries: Iterable[ModelT], table: str) -> dict[str, ModelT]:
    indexed: dict[str, ModelT] = {}
    for entry in entries:
        entry_id = entry.id  # type: ignore[attr-defined]
        if entry_id in indexed:
            raise ContentError(
                f"Duplicate id {entry_id!r} in {table}",
                details={"table": table, "content_id": entry_id},
            )
        indexed[entry_id] = entry
    return indexed


def _parse_table(raw: Any, model: type[ModelT], table: str) -> list[ModelT]:
    """Validate one content table.

    Args:
        raw: A mapping of id to definition, or a list of definitions.
        model: The definition model.
        table: Table name, for error reporting.

    Returns:
        The validated definitions.

    Raises:
        ContentError: If the table is malformed or an entry is invalid.
    """
    if raw is None:
        return []
    if isinstance(raw, Mapping):
        items = [{"id": key, **value} for key, value in raw.items()]
    elif isinstance(raw, list):
        items = list(raw)
    else:
        raise ContentError(
            f"Content table {table!r} must be a mapping or a list",
            details={"table": table, "type": type(raw).__name__},
        )

    parsed: list[ModelT] = []
    for item in items:
        try:
            parsed.append(model.model_validate(item))
        except PydanticValidationError as exc:
            content_id = item.get("id") if isinstance(item, Mapping) else None
            raise ContentError(
                f"Invalid entry {content_id!r} in {table}: {exc.error_count()} error(s)",
                details={"table": table, "content_id": content_id, "errors": exc.errors()},
            ) from exc
    return parsed


class ContentRepository:
    """Read-only lookup of combat content.

    Status effects always include the built-in set (poisoned, burning,
    stunned, ...); content may override or extend it.

    Example:
        >>> repo = ContentRepository.from_mapping({
        ...     "monsters": {"goblin": {"name": "Goblin", "hp": 7, "armor_class": 13}},
        ... })
        >>> repo.monster("goblin").hp
        7
    """

    def __init__(
        self,
        *,
        monsters: Iterable[MonsterTemplate] = (),
        spells: Iterable[SpellDefinition] = (),
        abilities: Iterable[AbilityDefinition] = (),
        items: Iterable[ItemDefinition] = (),
        status_effects: Iterable[StatusEffectDefinition] = (),
    ) -> None:
        """Initialize the repository.

        Args:
            monsters: Monster templates.
            spells: Spell definitions.
            abilities: Ability definitions.
            items: Item definitions.
            status_effects: Status effects added to (or replacing) the built-ins.

        Raises:
            ContentError: On duplicate ids or broken status effect references
                (unknown ids, or an effect aimed at the wrong side).
        """
        self._monsters = _index(monsters, "monsters")
        self._spells = _index(spells, "spells")
        self._abilities = _index(abilities, "abilities")
        self._items = _index(items, "items")

        defaults = _parse_table(DEFAULT_STATUS_EFFECTS, StatusEffectDefinition, "status_effects")
        self._status_effects = {effect.id: effect for effect in defaults}
        self._status_effects.update(_index(status_effects, "status_effects"))

        self._check_references()
        logger.debug(
            "Content loaded",
            monsters=len(self._monsters),
            spells=len(self._spells),
            abilities=len(self._abilities),
            items=len(self._items),
            status_effects=len(self._status_effects),
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ContentRepository":
        """Build a repository from a content mapping.

        Raises:
            ContentError: If a table is malformed or an entry is invalid.
        """
        unknown = set(data) - set(TABLES)
        if unknown:
            raise ContentError(
                f"Unknown content tables: {', '.join(sorted(unknown))}",
                details={"tables": sorted(unknown)},
            )
        return cls(
            monsters=_parse_table(data.get("monsters"), MonsterTemplate, "monsters"),
            spells=_parse_table(data.get("spells"), SpellDefinition, "spells"),
            abilities=_parse_table(data.get("abilities"), AbilityDefinition, "abilities"),
            items=_parse_table(data.get("items"), ItemDefinition, "items"),
            status_effects=_parse_table(
                data.get("status_effects"), StatusEffectDefinition, "status_effects"
            ),
        )

    @classmethod
    def from_json(cls, path: str | Path) -> "ContentRepository":
        """Load a repository from a JSON content file.

        Raises:
            ContentError: If the file cannot be read or parsed.
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ContentError(
                f"Cannot read content file: {path}",
                details={"path": str(path)},
            ) from exc
        except json.JSONDecodeError as exc:
            raise ContentError(
                f"Content file is not valid JSON: {path} (line {exc.lineno})",
                details={"path": str(path)},
            ) from exc

        if not isinstance(data, Mapping):
            raise ContentError("Content file must contain a JSON object", details={"path": str(path)})
        logger.info("Loading content file", path=str(path))
        return cls.from_mapping(data)

    def _check_references(self) -> None:
        for table, entries in (("spells", self._spells), ("abilities", self._abilities)):
            for entry in entries.values():
                if not entry.status_effect:
                    continue
                status = self._status_effects.get(entry.status_effect)
                if status is None:
                    raise ContentError(
                        f"{table[:-1].capitalize()} {entry.id!r} references unknown "
                        f"status effect {entry.status_effect!r}",
                        details={"table": table, "content_id": entry.id},
                    )
                if entry.target_rule is TargetRule.ENEMY and status.is_beneficial:
                    raise ContentError(
                        f"{table[:-1].capitalize()} {entry.id!r} would give the beneficial "
                        f"status effect {status.id!r} to an opponent",
                        details={"table": table, "content_id": entry.id},
                    )
        for item in self._items.values():
            for effect_id in (item.status_effect, item.cures):
                if effect_id and effect_id not in self._status_effects:
                    raise ContentError(
                        f"Item {item.id!r} references unknown status effect {effect_id!r}",
                        details={"table": "items", "content_id": item.id},
                    )
            if item.effect is ItemEffect.BUFF and not self._status_effects[item.status_effect].is_beneficial:
                raise ContentError(
                    f"Item {item.id!r} would give the harmful status effect {item.status_effect!r} to an ally",
                    details={"table": "items", "content_id": item.id},
                )

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def monster(self, monster_id: str) -> MonsterTemplate:
        try:
            return self._monsters[monster_id]
        except KeyError:
            raise ContentNotFound(
                f"Unknown monster: {monster_id}", table="monsters", content_id=monster_id
            ) from None

    def spell(self, spell_id: str) -> SpellDefinition:
        try:
            return self._spells[spell_id]
        except KeyError:
            raise ContentNotFound(
                f"Unknown spell: {spell_id}", table="spells", content_id=spell_id
            ) from None

    def ability(self, ability_id: str) -> AbilityDefinition:
        try:
            return self._abilities[ability_id]
        except KeyError:
            raise ContentNotFound(
                f"Unknown ability: {ability_id}", table="abilities", content_id=ability_id
            ) from None

    def item(self, item_id: str) -> ItemDefinition:
        try:
            return self._items[item_id]
        except KeyError:
            raise ContentNotFound(
                f"Unknown item: {item_id}", table="items", content_id=item_id
            ) from None

    def status_effect(self, effect_id: str) -> StatusEffectDefinition:
        try:
            return self._status_effects[effect_id]
        except KeyError:
            raise ContentNotFound(
                f"Unknown status effect: {effect_id}",
                table="status_effects",
                content_id=effect_id,
            ) from None

    @property
    def monster_ids(self) -> list[str]:
        return sorted(self._monsters)

    @property
    def status_effect_ids(self) -> list[str]:
        return sorted(self._status_effects)

    def __contains__(self, key: tuple[str, str]) -> bool:
        table, content_id = key
        tables = {
            "monsters": self._monsters,
            "spells": self._spells,
            "abilities": self._abilities,
            "items": self._items,
            "status_effects": self._status_effects,
        }
        return content_id in tables.get(table, {})


__all__ = ["ContentRepository", "TABLES"]
