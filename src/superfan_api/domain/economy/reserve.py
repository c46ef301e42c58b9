"""Reserve accounting for the liability carried by unspent points.

Amounts are computed with ``Decimal`` so ceilings land on exact cents.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal

PLATFORM_FEE = 0.10
RESERVE_RATIO = 0.25
BREAKAGE = 0.15
BUFFER = 0.10

_PLATFORM_FEE = Decimal(str(PLATFORM_FEE))
_RESERVE_FACTOR = Decimal(1) - Decimal(str(BREAKAGE)) + Decimal(str(BUFFER))


def _ceil_cents(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_CEILING))


def calculate_reserve_target(outstanding_pts: int, settle_cents_per_point: int) -> int:
    return _ceil_cents(Decimal(outstanding_pts) * Decimal(settle_cents_per_point) * _RESERVE_FACTOR)


def calculate_reserve_delta(points_purchased: int, settle_cents_per_point: int) -> int:
    return _ceil_cents(Decimal(points_purchased) * Decimal(settle_cents_per_point) * _RESERVE_FACTOR)


def calculate_platform_fee(gross_cents: int) -> int:
    return int((Decimal(gross_cents) * _PLATFORM_FEE).to_integral_value(rounding=ROUND_HALF_UP))


def calculate_upfront_amount(gross_cents: int, reserve_top_up_cents: int) -> int:
    gross = Decimal(gross_cents)
    upfront = gross - gross * _PLATFORM_FEE - Decimal(reserve_top_up_cents)
    return max(0, math.floor(upfront))


def derive_unit_sell_cents(gross_cents: int, paid_points: int) -> int:
    """Per-point sell price implied by a sale; bonus points ride along for free."""

    if paid_points <= 0:
        return 0
    return int((Decimal(gross_cents) / Decimal(paid_points)).to_integral_value(rounding=ROUND_HALF_UP))


def calculate_coverage_ratio(reserve_target: int, simulated_nav: int | None = None) -> float:
    """Simulated NAV over reserve target.

    Provisional: NAV is not modelled yet, so it defaults to the target and
    the ratio is 1.0. Do not base payout decisions on it.
    """

    if reserve_target <= 0:
        return 1.0
    nav = reserve_target if simulated_nav is None else simulated_nav
    return nav / reserve_target


@dataclass(slots=True, frozen=True)
class PurchaseSplit:
    gross_cents: int
    platform_fee_cents: int
    reserve_delta_cents: int
    upfront_cents: int


def build_purchase_split(gross_cents: int, points: int, settle_cents_per_point: int) -> PurchaseSplit:
    """Break one sale into fee, reserve top-up and the amount the club can draw now."""

    reserve_delta = calculate_reserve_delta(points, settle_cents_per_point)
    return PurchaseSplit(
        gross_cents=gross_cents,
        platform_fee_cents=calculate_platform_fee(gross_cents),
        reserve_delta_cents=reserve_delta,
        upfront_cents=calculate_upfront_amount(gross_cents, reserve_delta),
    )


__all__ = [
    "BREAKAGE",
    "BUFFER",
    "PLATFORM_FEE",
    "PurchaseSplit",
    "RESERVE_RATIO",
    "build_purchase_split",
    "calculate_coverage_ratio",
    "calculate_platform_fee",
    "calculate_reserve_delta",
    "calculate_reserve_target",
    "calculate_upfront_amount",
    "derive_unit_sell_cents",
]
