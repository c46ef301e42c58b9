import math

import pytest

from superfan_api.domain.economy.errors import InvalidAmountError
from superfan_api.domain.economy.formatting import (
    format_currency,
    format_points,
    format_points_compact,
    parse_points_amount,
    points_to_usd,
    validate_points_amount,
)


def test_format_points_groups_thousands_and_floors() -> None:
    assert format_points(1234567) == "1,234,567"
    assert format_points(999.9) == "999"
    assert format_points(math.nan) == "0"


def test_format_points_compact_uses_suffixes() -> None:
    assert format_points_compact(1_200_000) == "1.2M"
    assert format_points_compact(1_500) == "1.5K"
    assert format_points_compact(950) == "950"


def test_format_points_compact_rolls_over_to_millions() -> None:
    assert format_points_compact(999_949) == "999.9K"
    assert format_points_compact(999_950) == "1.0M"
    assert format_points_compact(999_999) == "1.0M"


def test_parse_recovers_formatted_values() -> None:
    for value in (0, 7, 1_000, 54_321, 999_999):
        assert parse_points_amount(format_points(value)) == value


def test_parse_never_raises_on_garbage() -> None:
    assert parse_points_amount("abc") == 0
    assert parse_points_amount("") == 0
    assert parse_points_amount(None) == 0
    assert parse_points_amount("-40") == 0
    assert parse_points_amount(" 1 200.7 ") == 1200


@pytest.mark.parametrize("amount", [-1, 1.5, math.nan, 2_000_000])
def test_validate_points_amount_rejects(amount: float) -> None:
    with pytest.raises(InvalidAmountError):
        validate_points_amount(amount)


def test_validate_points_amount_accepts_bounds() -> None:
    assert validate_points_amount(0) == 0
    assert validate_points_amount(999_999) == 999_999


def test_currency_helpers() -> None:
    assert format_currency(1234) == "$12.34"
    assert format_currency(123456) == "$1,234.56"
    assert points_to_usd(1_100) == 11.0
