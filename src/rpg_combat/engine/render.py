"""Plain-text rendering of combat state.

The Discord layer renders embeds and buttons itself; this renderer produces
the same information as plain text for logs, tests and console play.
"""

from __future__ import annotations

from rpg_combat.collaborators import Renderer
from rpg_combat.models.combatant import Combatant
from rpg_combat.models.outcome import ActionOutcome
from rpg_combat.models.session import CombatSession


BAR_WIDTH = 10


def health_bar(current: int, maximum: int, width: int = BAR_WIDTH) -> str:
    """Render a pool as ``[#####-----]``.

    Example:
        >>> health_bar(5, 10)
        '[#####-----]'
    """
    if maximum <= 0:
        return "[" + "-" * width + "]"
    filled = round(width * current / maximum)
    return "[" + "#" * filled + "-" * (width - filled) + "]"


class TextRenderer(Renderer):
    """Renders a session and the latest outcome as text."""

    def render(self, session: CombatSession, outcome: ActionOutcome | None = None) -> str:
        lines = [f"Round {session.round} | {session.state.value.upper()}"]
        for index, combatant in enumerate(session.combatants):
            marker = ">" if index == session.current_turn_index and session.is_active else " "
            lines.append(f"{marker} {self._line(combatant)}")

        if outcome is not None:
            lines.append("")
            lines.extend(self._outcome_lines(outcome))

        if session.is_active:
            current = session.current_combatant
            lines.append("")
            lines.append(f"{current.name}'s turn")
        return "\n".join(lines)

    def _line(self, combatant: Combatant) -> str:
        text = (
            f"{combatant.name} HP {health_bar(combatant.health.current, combatant.health.max)} "
            f"{combatant.health.current}/{combatant.health.max}"
        )
        if combatant.mana.max:
            text += f" MP {combatant.mana.current}/{combatant.mana.max}"
        if combatant.is_defeated:
            text += " (down)"
        elif combatant.defending:
            text += " (defending)"
        if combatant.status_effects:
            effects = ", ".join(f"{e.display_name} {e.remaining}" for e in combatant.status_effects)
            text += f" [{effects}]"
        return text

    def _outcome_lines(self, outcome: ActionOutcome) -> list[str]:
        lines = [outcome.narrative] if outcome.narrative else []
        lines.extend(outcome.turn_notes)
        for follow_up in outcome.follow_ups:
            lines.extend(self._outcome_lines(follow_up))
        return lines


__all__ = ["TextRenderer", "health_bar"]
