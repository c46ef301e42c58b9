"""Club pricing administration and reserve reporting."""

from __future__ import annotations

from datetime import date
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from superfan_api.api.dependencies.security import require_ledger_api_key
from superfan_api.api.errors import economy_http_error
from superfan_api.db.session import get_session
from superfan_api.domain.economy.errors import PointsEconomyError
from superfan_api.services.points import PointsService, ReserveService


router = APIRouter(prefix="/clubs", tags=["clubs"], dependencies=[Depends(require_ledger_api_key)])


class PricingRequest(BaseModel):
    sellCents: int = Field(..., ge=0)
    settleCents: int = Field(..., ge=0)


class PricingValidationResponse(BaseModel):
    isValid: bool
    errors: List[str]


class PricingResponse(BaseModel):
    clubId: UUID
    sellCents: int
    settleCents: int


class WeeklyUpfrontResponse(BaseModel):
    weekStart: date
    grossCents: int
    platformFeeCents: int
    reserveDeltaCents: int
    upfrontCents: int


class ReserveResponse(BaseModel):
    clubId: UUID
    outstandingPoints: int
    settleCentsPerPoint: int
    reserveTargetCents: int
    reserveHeldCents: int
    coverageRatio: float
    coverageRatioProvisional: bool = True
    currentWeek: WeeklyUpfrontResponse


@router.post("/{club_id}/pricing/validate", response_model=PricingValidationResponse)
async def validate_pricing(
    club_id: UUID,
    payload: PricingRequest,
    db: AsyncSession = Depends(get_session),
) -> PricingValidationResponse:
    try:
        result = await PointsService(db).validate_club_pricing(club_id, payload.sellCents, payload.settleCents)
    except PointsEconomyError as exc:
        raise economy_http_error(exc) from exc
    return PricingValidationResponse(isValid=result.is_valid, errors=result.errors)


@router.put("/{club_id}/pricing", response_model=PricingResponse)
async def update_pricing(
    club_id: UUID,
    payload: PricingRequest,
    db: AsyncSession = Depends(get_session),
) -> PricingResponse:
    try:
        club = await PointsService(db).update_club_pricing(club_id, payload.sellCents, payload.settleCents)
    except PointsEconomyError as exc:
        raise economy_http_error(exc) from exc
    return PricingResponse(
        clubId=club.id,
        sellCents=club.point_sell_cents,
        settleCents=club.point_settle_cents,
    )


@router.get("/{club_id}/reserve", response_model=ReserveResponse)
async def get_reserve(
    club_id: UUID,
    db: AsyncSession = Depends(get_session),
) -> ReserveResponse:
    try:
        snapshot = await ReserveService(db).get_reserve_snapshot(club_id)
    except PointsEconomyError as exc:
        raise economy_http_error(exc) from exc

    week = snapshot.current_week
    return ReserveResponse(
        clubId=snapshot.club_id,
        outstandingPoints=snapshot.outstanding_points,
        settleCentsPerPoint=snapshot.settle_cents_per_point,
        reserveTargetCents=snapshot.reserve_target_cents,
        reserveHeldCents=snapshot.reserve_held_cents,
        coverageRatio=snapshot.coverage_ratio,
        currentWeek=WeeklyUpfrontResponse(
            weekStart=week.week_start,
            grossCents=week.gross_cents,
            platformFeeCents=week.platform_fee_cents,
            reserveDeltaCents=week.reserve_delta_cents,
            upfrontCents=week.upfront_cents,
        ),
    )
