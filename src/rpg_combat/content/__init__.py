"""Static combat content: monsters, spells, abilities, items, status effects.

Example:
    >>> from rpg_combat.content import ContentRepository
    >>> repo = ContentRepository.from_json("content/base.json")
"""

from __future__ import annotations

from rpg_combat.content.repository import TABLES, ContentRepository


__all__ = ["ContentRepository", "TABLES"]
