"""Exceptions raised by the points economy."""

from __future__ import annotations

from typing import Sequence
from uuid import UUID


class PointsEconomyError(RuntimeError):
    """Base exception for points economy failures."""


class InvalidAmountError(PointsEconomyError, ValueError):
    """Raised when a point amount is not a finite, non-negative integer within limits."""

    def __init__(self, message: str, *, amount: object = None) -> None:
        super().__init__(message)
        self.amount = amount


class InsufficientPointsError(PointsEconomyError):
    """Raised when a spend exceeds what the wallet can currently spend."""

    def __init__(self, needed: int, available: int, *, status_protected: bool = False) -> None:
        if status_protected:
            message = (
                f"Insufficient points: need {needed}, only {available} spendable "
                "while protecting current status"
            )
        else:
            message = f"Insufficient points: need {needed}, have {available}"
        super().__init__(message)
        self.needed = needed
        self.available = available
        self.status_protected = status_protected

    @property
    def shortfall(self) -> int:
        return max(0, self.needed - self.available)


class WalletNotFoundError(PointsEconomyError):
    """Raised when a ledger mutation targets an unknown wallet."""

    def __init__(self, wallet_id: UUID) -> None:
        super().__init__(f"Wallet {wallet_id} not found")
        self.wallet_id = wallet_id


class GuardrailViolationError(PointsEconomyError):
    def __init__(self, errors: Sequence[str]) -> None:
        super().__init__("; ".join(errors) or "Pricing guardrails violated")
        self.errors = list(errors)


class RewardUnavailableError(PointsEconomyError):
    def __init__(self, reasons: Sequence[str]) -> None:
        super().__init__(f"Reward unavailable: {', '.join(reasons)}")
        self.reasons = list(reasons)


class DuplicateEventError(PointsEconomyError):
    """Raised when an idempotency key has already been applied."""

    def __init__(self, ref: str) -> None:
        super().__init__(f"Event {ref} already recorded")
        self.ref = ref


class InvalidRedemptionTransitionError(PointsEconomyError):
    def __init__(self, current_state: str, requested_state: str) -> None:
        super().__init__(f"Cannot transition redemption from {current_state} to {requested_state}")
        self.current_state = current_state
        self.requested_state = requested_state


class RedemptionHoldExpiredError(InvalidRedemptionTransitionError):
    """Raised when confirming a presale hold after its expiry."""


class RedemptionNotFoundError(PointsEconomyError):
    pass


class ClubNotFoundError(PointsEconomyError):
    pass


class RewardNotFoundError(PointsEconomyError):
    pass


__all__ = [
    "ClubNotFoundError",
    "DuplicateEventError",
    "GuardrailViolationError",
    "InsufficientPointsError",
    "InvalidAmountError",
    "InvalidRedemptionTransitionError",
    "PointsEconomyError",
    "RedemptionHoldExpiredError",
    "RedemptionNotFoundError",
    "RewardNotFoundError",
    "RewardUnavailableError",
    "WalletNotFoundError",
]
