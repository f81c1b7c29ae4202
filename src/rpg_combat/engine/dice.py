"""Dice rolling mechanics for combat resolution.

Formulas are restricted to the ``NdM+K`` shape content files use; they are
checked up front and then rolled with the d20 library. d20 draws from the
process-wide ``random`` module, so ``random.seed`` makes a fight
replayable. Critical and fumble detection is reported as flags on single
d20 rolls; the formula engine itself knows nothing about attacks.
"""

from __future__ import annotations

import random
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Literal, TypeVar

import d20

from rpg_combat.core.constants import (
    CRITICAL_ROLL,
    FUMBLE_ROLL,
    MAX_DICE_COUNT,
    MIN_DICE_COUNT,
    MIN_DIE_SIDES,
)
from rpg_combat.core.exceptions import InvalidFormula
from rpg_combat.core.logging import get_logger


logger = get_logger(__name__)

T = TypeVar("T")

CriticalRule = Literal["double_dice", "double_damage"]

# "d20", "1d8+3", "2d6 - 1"
_FORMULA_RE = re.compile(
    r"^\s*(\d*)\s*d\s*(\d+)\s*(?:([+-])\s*(\d+))?\s*$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class DiceFormula:
    """A validated dice formula.

    Attributes:
        count: Number of dice (N).
        sides: Sides per die (M).
        modifier: Flat modifier added after summing the dice (K).
    """

    count: int
    sides: int
    modifier: int = 0

    @property
    def minimum(self) -> int:
        """Lowest possible total."""
        return self.count + self.modifier

    @property
    def maximum(self) -> int:
        """Highest possible total."""
        return self.count * self.sides + self.modifier

    def __str__(self) -> str:
        text = f"{self.count}d{self.sides}"
        if self.modifier:
            text += f"{self.modifier:+d}"
        return text


@dataclass(frozen=True)
class RollResult:
    """Result of rolling a formula.

    Attributes:
        expression: The formula that was rolled, normalized.
        total: Sum of the dice plus the modifier.
        rolls: Individual die results.
        modifier: Flat modifier applied.
        is_critical: A single d20 came up 20.
        is_fumble: A single d20 came up 1.
        details: d20's rendering of the roll, e.g. ``1d20 (17) + 5 = `22```.
    """

    expression: str
    total: int
    rolls: tuple[int, ...]
    modifier: int = 0
    is_critical: bool = False
    is_fumble: bool = False
    details: str = ""

    @property
    def natural(self) -> int | None:
        """The raw die when exactly one die was rolled."""
        return self.rolls[0] if len(self.rolls) == 1 else None


def parse_formula(expression: str) -> DiceFormula:
    """Check that a formula has the shape ``NdM+K``.

    ``N`` may be omitted (``d20`` means ``1d20``) and the modifier may be
    negative. Anything else d20 could evaluate (keep/drop, arithmetic) is
    rejected, since content only ever declares plain formulas.

    Args:
        expression: The formula text.

    Returns:
        The parsed DiceFormula.

    Raises:
        InvalidFormula: If the text does not parse, N < 1 or M < 2.
    """
    if not isinstance(expression, str) or not expression.strip():
        raise InvalidFormula("Empty dice formula", expression=str(expression))

    match = _FORMULA_RE.match(expression)
    if match is None:
        raise InvalidFormula(f"Invalid dice formula: {expression!r}", expression=expression)

    count_str, sides_str, sign, mod_str = match.groups()
    count = int(count_str) if count_str else 1
    sides = int(sides_str)
    modifier = int(mod_str) if mod_str else 0
    if sign == "-":
        modifier = -modifier

    if count < MIN_DICE_COUNT:
        raise InvalidFormula(f"A formula needs at least {MIN_DICE_COUNT} die", expression=expression)
    if count > MAX_DICE_COUNT:
        raise InvalidFormula(f"A formula may not roll more than {MAX_DICE_COUNT} dice", expression=expression)
    if sides < MIN_DIE_SIDES:
        raise InvalidFormula(f"Dice need at least {MIN_DIE_SIDES} sides", expression=expression)

    return DiceFormula(count=count, sides=sides, modifier=modifier)


def ability_modifier(score: int) -> int:
    """Convert an ability score into its modifier (10-11 => +0)."""
    return (score - 10) // 2


def _kept_dice(node: Any) -> list[int]:
    """Collect the kept die faces from a d20 expression tree."""
    values: list[int] = []
    if isinstance(node, d20.Dice):
        for die in node.values:
            if getattr(die, "kept", True):
                values.append(die.number)
    elif hasattr(node, "children"):
        for child in node.children:
            values.extend(_kept_dice(child))
    return values


class DiceRoller:
    """Rolls formulas with d20 and picks random targets.

    Example:
        >>> roller = DiceRoller()
        >>> result = roller.roll("1d8+3")
        >>> 4 <= result.total <= 11
        True
    """

    def __init__(self, *, rng: random.Random | None = None) -> None:
        """Initialize the dice roller.

        Args:
            rng: Generator used for target selection; a fresh one by default.
        """
        self._rng = rng if rng is not None else random.Random()

    def roll(self, expression: str) -> RollResult:
        """Roll dice according to a formula.

        Args:
            expression: Dice formula (e.g. '1d20+5', '2d6-1').

        Returns:
            RollResult with the total and individual dice.

        Raises:
            InvalidFormula: If the formula is invalid.
        """
        return self.roll_formula(parse_formula(expression))

    def roll_formula(self, formula: DiceFormula) -> RollResult:
        """Roll a validated formula through d20."""
        expression = str(formula)
        try:
            rolled = d20.roll(expression)
        except d20.RollError as exc:
            raise InvalidFormula(f"Dice roll failed: {exc}", expression=expression) from exc

        rolls = tuple(_kept_dice(rolled.expr))
        single_d20 = formula.count == 1 and formula.sides == 20
        result = RollResult(
            expression=expression,
            total=rolled.total,
            rolls=rolls,
            modifier=formula.modifier,
            is_critical=single_d20 and rolls[0] == CRITICAL_ROLL,
            is_fumble=single_d20 and rolls[0] == FUMBLE_ROLL,
            details=str(rolled),
        )
        logger.debug("Dice rolled", expression=expression, rolls=rolls, total=result.total)
        return result

    def roll_d20(self, modifier: int = 0) -> RollResult:
        """Roll ``1d20 + modifier`` (attacks, initiative, flee checks)."""
        return self.roll_formula(DiceFormula(count=1, sides=20, modifier=modifier))

    def roll_damage(
        self,
        expression: str,
        *,
        critical: bool = False,
        rule: CriticalRule = "double_dice",
    ) -> RollResult:
        """Roll damage with the configured critical hit rule.

        Args:
            expression: Damage formula (e.g. '1d6+3').
            critical: Whether the attack was a critical hit.
            rule: 'double_dice' rolls twice the dice (modifier once),
                'double_damage' doubles the rolled total.

        Returns:
            RollResult for the damage.
        """
        formula = parse_formula(expression)
        if not critical:
            return self.roll_formula(formula)

        if rule == "double_damage":
            result = self.roll_formula(formula)
            return RollResult(
                expression=f"({formula}) x2",
                total=result.total * 2,
                rolls=result.rolls,
                modifier=result.modifier * 2,
                details=f"({result.details}) x2",
            )

        doubled = DiceFormula(count=formula.count * 2, sides=formula.sides, modifier=formula.modifier)
        return self.roll_formula(doubled)

    def choice(self, options: Sequence[T]) -> T:
        """Pick one element, e.g. a monster's target."""
        if len(options) == 1:
            return options[0]
        return self._rng.choice(options)


__all__ = [
    "CriticalRule",
    "DiceFormula",
    "RollResult",
    "DiceRoller",
    "parse_formula",
    "ability_modifier",
]
