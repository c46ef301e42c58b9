import pytest

from superfan_api.domain.economy.errors import GuardrailViolationError
from superfan_api.domain.economy.guardrails import (
    GuardrailBounds,
    minimum_solvent_sell_cents,
    validate_pricing_guardrails,
)
from superfan_api.models.club import Club


BOUNDS = GuardrailBounds(min_sell_cents=50, max_sell_cents=200, min_settle_cents=10, max_settle_cents=100)


def test_sell_below_minimum_fails() -> None:
    result = validate_pricing_guardrails(40, 20, BOUNDS)

    assert not result.is_valid
    assert any("below the minimum of 50" in error for error in result.errors)


def test_solvency_ratio_is_enforced() -> None:
    result = validate_pricing_guardrails(60, 100, BOUNDS)

    assert not result.is_valid
    assert result.errors == [
        "Sell price 60¢ must be at least 154¢ to cover settle price 100¢ after platform fee and reserve"
    ]
    assert minimum_solvent_sell_cents(100) == 154


def test_valid_pricing_passes() -> None:
    result = validate_pricing_guardrails(160, 100, BOUNDS)

    assert result.is_valid
    assert result.errors == []
    result.raise_for_errors()


def test_every_violation_is_reported() -> None:
    result = validate_pricing_guardrails(500, 5, BOUNDS)

    assert len(result.errors) == 2

    result = validate_pricing_guardrails(10, 150, BOUNDS)
    assert len(result.errors) == 3
    with pytest.raises(GuardrailViolationError) as excinfo:
        result.raise_for_errors()
    assert excinfo.value.errors == result.errors


def test_default_club_pricing_is_solvent() -> None:
    club = Club(
        name="Defaults",
        point_sell_cents=120,
        point_settle_cents=60,
        guardrail_min_sell=50,
        guardrail_max_sell=500,
        guardrail_min_settle=25,
        guardrail_max_settle=250,
    )

    result = validate_pricing_guardrails(
        club.point_sell_cents, club.point_settle_cents, GuardrailBounds.from_club(club)
    )
    assert result.is_valid
