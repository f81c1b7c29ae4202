"""Automatic turns for monsters.

Monsters attack a living player picked by the session's random generator
(in solo combat that is always the one player), using the same strike
mechanics as player attacks.
"""

from __future__ import annotations

from rpg_combat.core.exceptions import InvalidTarget
from rpg_combat.core.logging import get_logger
from rpg_combat.engine.actions import ActionResolver
from rpg_combat.engine.dice import DiceRoller
from rpg_combat.models.combatant import Combatant
from rpg_combat.models.enums import ActionType
from rpg_combat.models.outcome import ActionOutcome, ActionPayload
from rpg_combat.models.session import CombatSession


logger = get_logger(__name__)


class MonsterAI:
    """Chooses and resolves monster actions."""

    def __init__(self, resolver: ActionResolver, roller: DiceRoller) -> None:
        self._resolver = resolver
        self._roller = roller

    def choose_target(self, session: CombatSession, monster: Combatant) -> Combatant:
        """Pick a random living player.

        Raises:
            InvalidTarget: If no player is left standing.
        """
        players = session.living_players
        if not players:
            raise InvalidTarget("No living player to attack", combatant_id=monster.id)
        return self._roller.choice(players)

    def take_turn(self, session: CombatSession, monster: Combatant) -> ActionOutcome:
        """Resolve the monster's turn as an attack on a chosen player."""
        target = self.choose_target(session, monster)
        logger.debug("Monster acts", monster=monster.name, target=target.name)
        return self._resolver.resolve(
            session,
            monster,
            ActionType.ATTACK,
            ActionPayload(target_id=target.id),
        )


__all__ = ["MonsterAI"]
