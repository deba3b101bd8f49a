import random
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from bathtub import DiceRoll, ParseError, format_roll, roll
from bathtub.dice import MAX_DICE, MAX_SIDES, parse_expression, parse_integer


@pytest.mark.parametrize("count,sides", [(0, 6), (1, 1), (3, 6), (10, 20), (50, 100)])
def test_roll_returns_count_values_within_range(count: int, sides: int) -> None:
    result = roll(f"{count}d{sides}", random.Random(count * 31 + sides))
    assert len(result.results) == count
    assert all(1 <= value <= sides for value in result.results)
    assert result.total == sum(result.results)


def test_roll_is_reproducible_with_seeded_rng() -> None:
    first = roll("4d8", random.Random(7))
    second = roll("4d8", random.Random(7))
    assert first == second


def test_single_sided_dice_always_roll_one() -> None:
    assert roll("5d1") == DiceRoll(results=(1, 1, 1, 1, 1), total=5)


@pytest.mark.parametrize(
    "expression",
    ["", "d", "3d", "d6", "36", "3x6", "3d6d2", "ad6", "3db", "1.5d6", "3d6+1", "three d six"],
)
def test_malformed_expressions_raise_parse_error(expression: str) -> None:
    with pytest.raises(ParseError):
        roll(expression)


@pytest.mark.parametrize("expression", ["-1d6", "2d0", "2d-4"])
def test_out_of_range_expressions_are_rejected(expression: str) -> None:
    with pytest.raises(ParseError):
        roll(expression)


def test_parse_expression_accepts_explicit_sign() -> None:
    assert parse_expression("+2d12") == (2, 12)


def test_format_roll_lists_each_value_then_total() -> None:
    text = format_roll(DiceRoll(results=(2, 5, 1), total=8))
    assert text == "Rolls: 2 5 1 \nTotal: 8"


def test_format_roll_with_no_dice() -> None:
    assert format_roll(DiceRoll(results=(), total=0)) == "Rolls: \nTotal: 0"


@pytest.mark.parametrize("expression", [f"{MAX_DICE + 1}d6", "1000000000d6", f"2d{MAX_SIDES + 1}"])
def test_oversized_rolls_are_rejected(expression: str) -> None:
    with pytest.raises(ParseError):
        roll(expression)


def test_largest_allowed_roll_fits_in_one_message() -> None:
    result = roll(f"{MAX_DICE}d{MAX_SIDES}", random.Random(1))
    assert len(result.results) == MAX_DICE
    worst = DiceRoll(results=(MAX_SIDES,) * MAX_DICE, total=MAX_SIDES * MAX_DICE)
    assert len(format_roll(worst)) <= 2000


@pytest.mark.parametrize("text", [" 10", "1_0", "٢٠", "", "+"])
def test_parse_integer_accepts_only_ascii_digits(text: str) -> None:
    with pytest.raises(ParseError):
        parse_integer(text, "value")
