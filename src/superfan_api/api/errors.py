"""Translate economy exceptions into HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException, status
from loguru import logger

from superfan_api.domain.economy.errors import (
    ClubNotFoundError,
    DuplicateEventError,
    GuardrailViolationError,
    InsufficientPointsError,
    InvalidAmountError,
    InvalidRedemptionTransitionError,
    PointsEconomyError,
    RedemptionNotFoundError,
    RewardNotFoundError,
    RewardUnavailableError,
    WalletNotFoundError,
)


def economy_http_error(error: PointsEconomyError) -> HTTPException:
    if isinstance(error, InvalidAmountError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, InsufficientPointsError):
        return HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail={
                "message": str(error),
                "needed": error.needed,
                "available": error.available,
                "shortfall": error.shortfall,
                "statusProtected": error.status_protected,
            },
        )
    if isinstance(error, RewardUnavailableError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(error), "reasons": error.reasons},
        )
    if isinstance(error, GuardrailViolationError):
        return HTTPException(
            status_code=422,
            detail={"message": "Pricing guardrails violated", "errors": error.errors},
        )
    if isinstance(error, (InvalidRedemptionTransitionError, DuplicateEventError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, (ClubNotFoundError, RewardNotFoundError, RedemptionNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, WalletNotFoundError):
        # Ledger integrity fault: details stay in the logs.
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal ledger error")

    logger.error("Unmapped points economy error", error=str(error), error_type=type(error).__name__)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal ledger error")


__all__ = ["economy_http_error"]
