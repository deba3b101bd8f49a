"""Dice expression parsing and rolling."""

from __future__ import annotations

import random
import re
from dataclasses import dataclass

from .errors import ParseError

__all__ = ["MAX_DICE", "MAX_SIDES", "DiceRoll", "format_roll", "parse_expression", "parse_integer", "roll"]

_INTEGER = re.compile(r"[+-]?[0-9]+")

# 100 dice of 1000 sides keep the formatted reply well under 2000 characters.
MAX_DICE = 100
MAX_SIDES = 1000


@dataclass(frozen=True)
class DiceRoll:
    """Outcome of a single dice expression."""

    results: tuple[int, ...]
    total: int


def parse_integer(text: str, label: str) -> int:
    """Parse a base-10 integer of ASCII digits with an optional sign."""

    if not _INTEGER.fullmatch(text):
        raise ParseError(f"invalid {label}: {text!r}")
    return int(text)


def parse_expression(expression: str) -> tuple[int, int]:
    """Split ``expression`` of the form ``<count>d<sides>`` into its numbers."""

    components = expression.split("d")
    if len(components) != 2:
        raise ParseError(f"invalid roll format: {expression!r}")
    count = parse_integer(components[0].strip(), "number of dice")
    sides = parse_integer(components[1].strip(), "number of sides")
    if count < 0:
        raise ParseError(f"cannot roll a negative number of dice: {count}")
    if sides < 1:
        raise ParseError(f"dice need at least one side: {sides}")
    if count > MAX_DICE:
        raise ParseError(f"too many dice: {count} (max {MAX_DICE})")
    if sides > MAX_SIDES:
        raise ParseError(f"too many sides: {sides} (max {MAX_SIDES})")
    return count, sides


def roll(expression: str, rng: random.Random | None = None) -> DiceRoll:
    """Roll the dice described by ``expression``.

    Results are kept in draw order. ``rng`` may be supplied to make the
    draws reproducible.
    """

    count, sides = parse_expression(expression)
    generator = rng or random
    results = tuple(generator.randint(1, sides) for _ in range(count))
    return DiceRoll(results=results, total=sum(results))


def format_roll(result: DiceRoll) -> str:
    rolls = "".join(f"{value} " for value in result.results)
    return f"Rolls: {rolls}\nTotal: {result.total}"
