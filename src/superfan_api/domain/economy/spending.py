"""How much of a wallet is spendable, and how a spend splits across sub-ledgers.

Purchased points are always spent before earned points so that the
status-bearing earned balance is drawn down last. With ``preserve_status``
the earned points needed to hold the current tier are locked entirely.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .errors import InsufficientPointsError, InvalidAmountError
from .status import StatusTier, threshold_for


@dataclass(slots=True, frozen=True)
class SpendingPower:
    earned_locked_for_status: int
    earned_available: int
    purchased_available: int
    escrowed: int
    total_spendable: int


@dataclass(slots=True, frozen=True)
class SpendingBreakdown:
    spend_purchased: int
    spend_earned: int
    total: int
    remaining_spendable: int
    power: SpendingPower


def calculate_spending_power(
    earned_points: int,
    purchased_points: int,
    escrowed_points: int,
    current_status: StatusTier,
    preserve_status: bool,
) -> SpendingPower:
    earned_locked = min(threshold_for(current_status), earned_points) if preserve_status else 0
    earned_available = max(0, earned_points - earned_locked - escrowed_points)
    purchased_available = max(0, purchased_points)
    return SpendingPower(
        earned_locked_for_status=earned_locked,
        earned_available=earned_available,
        purchased_available=purchased_available,
        escrowed=escrowed_points,
        total_spendable=purchased_available + earned_available,
    )


def calculate_spending_breakdown(
    amount_to_spend: int,
    earned_points: int,
    purchased_points: int,
    escrowed_points: int,
    current_status: StatusTier,
    preserve_status: bool,
) -> SpendingBreakdown:
    if (
        not isinstance(amount_to_spend, (int, float))
        or isinstance(amount_to_spend, bool)
        or not math.isfinite(amount_to_spend)
        or amount_to_spend < 0
    ):
        raise InvalidAmountError("Spend amount must be a finite, non-negative number", amount=amount_to_spend)

    power = calculate_spending_power(
        earned_points, purchased_points, escrowed_points, current_status, preserve_status
    )
    if amount_to_spend > power.total_spendable:
        raise InsufficientPointsError(
            needed=int(math.ceil(amount_to_spend)),
            available=power.total_spendable,
            status_protected=preserve_status,
        )

    spend_purchased = min(amount_to_spend, power.purchased_available)
    spend_earned = amount_to_spend - spend_purchased
    return SpendingBreakdown(
        spend_purchased=int(spend_purchased),
        spend_earned=int(spend_earned),
        total=int(amount_to_spend),
        remaining_spendable=int(power.total_spendable - amount_to_spend),
        power=power,
    )


def can_spend_points(
    amount_to_spend: int,
    earned_points: int,
    purchased_points: int,
    escrowed_points: int,
    current_status: StatusTier,
    preserve_status: bool,
) -> bool:
    try:
        calculate_spending_breakdown(
            amount_to_spend,
            earned_points,
            purchased_points,
            escrowed_points,
            current_status,
            preserve_status,
        )
    except (InvalidAmountError, InsufficientPointsError):
        return False
    return True


__all__ = [
    "SpendingBreakdown",
    "SpendingPower",
    "calculate_spending_breakdown",
    "calculate_spending_power",
    "can_spend_points",
]
