"""Club pricing guardrails.

Every violated bound is reported so an admin sees all problems at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_CEILING, Decimal

from .errors import GuardrailViolationError
from .reserve import PLATFORM_FEE, RESERVE_RATIO


@dataclass(slots=True, frozen=True)
class GuardrailBounds:
    min_sell_cents: int
    max_sell_cents: int
    min_settle_cents: int
    max_settle_cents: int

    @classmethod
    def from_club(cls, club) -> "GuardrailBounds":
        return cls(
            min_sell_cents=club.guardrail_min_sell,
            max_sell_cents=club.guardrail_max_sell,
            min_settle_cents=club.guardrail_min_settle,
            max_settle_cents=club.guardrail_max_settle,
        )


@dataclass(slots=True)
class GuardrailResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)

    def raise_for_errors(self) -> None:
        if not self.is_valid:
            raise GuardrailViolationError(self.errors)


def minimum_solvent_sell_cents(settle_cents: int) -> int:
    """Smallest sell price that still covers settle value after fee and reserve."""

    retained = Decimal(1) - Decimal(str(PLATFORM_FEE)) - Decimal(str(RESERVE_RATIO))
    return int((Decimal(settle_cents) / retained).to_integral_value(rounding=ROUND_CEILING))


def validate_pricing_guardrails(sell_cents: int, settle_cents: int, bounds: GuardrailBounds) -> GuardrailResult:
    errors: list[str] = []

    if sell_cents < bounds.min_sell_cents:
        errors.append(f"Sell price {sell_cents}¢ is below the minimum of {bounds.min_sell_cents}¢")
    if sell_cents > bounds.max_sell_cents:
        errors.append(f"Sell price {sell_cents}¢ is above the maximum of {bounds.max_sell_cents}¢")
    if settle_cents < bounds.min_settle_cents:
        errors.append(f"Settle price {settle_cents}¢ is below the minimum of {bounds.min_settle_cents}¢")
    if settle_cents > bounds.max_settle_cents:
        errors.append(f"Settle price {settle_cents}¢ is above the maximum of {bounds.max_settle_cents}¢")

    minimum_sell = minimum_solvent_sell_cents(settle_cents)
    if sell_cents < minimum_sell:
        errors.append(
            f"Sell price {sell_cents}¢ must be at least {minimum_sell}¢ to cover "
            f"settle price {settle_cents}¢ after platform fee and reserve"
        )

    return GuardrailResult(is_valid=not errors, errors=errors)


__all__ = [
    "GuardrailBounds",
    "GuardrailResult",
    "minimum_solvent_sell_cents",
    "validate_pricing_guardrails",
]
