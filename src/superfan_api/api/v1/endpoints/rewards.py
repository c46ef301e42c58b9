"""Reward catalogue and redemption lifecycle endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from superfan_api.api.dependencies.security import require_ledger_api_key
from superfan_api.api.dependencies.session import require_member_id
from superfan_api.api.errors import economy_http_error
from superfan_api.db.session import get_session
from superfan_api.domain.economy.availability import check_reward_availability
from superfan_api.domain.economy.errors import PointsEconomyError
from superfan_api.models.rewards import Reward, RewardRedemption
from superfan_api.services.points import PointsService, RedemptionService


router = APIRouter(tags=["rewards"])


class RewardResponse(BaseModel):
    id: UUID
    clubId: UUID
    kind: str
    title: str
    description: Optional[str]
    pointsPrice: int
    inventory: Optional[int]
    windowStart: Optional[datetime]
    windowEnd: Optional[datetime]
    settleMode: str
    status: str
    minStatus: Optional[str]
    available: bool
    unavailableReasons: List[str]


class RedeemRequest(BaseModel):
    preserveStatus: bool = False
    ref: Optional[str] = Field(None, max_length=128, description="Idempotency key for the redemption")
    metadata: Optional[dict[str, Any]] = None


class RefundRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=255)


class RedemptionResponse(BaseModel):
    id: UUID
    rewardId: UUID
    clubId: UUID
    userId: UUID
    state: str
    pointsSpent: int
    spentPurchased: int
    spentEarned: int
    holdExpiresAt: Optional[datetime]
    confirmedAt: Optional[datetime]
    fulfilledAt: Optional[datetime]
    refundedAt: Optional[datetime]
    refundReason: Optional[str]
    ref: str
    metadata: Optional[dict[str, Any]]


def _redemption_response(redemption: RewardRedemption) -> RedemptionResponse:
    return RedemptionResponse(
        id=redemption.id,
        rewardId=redemption.reward_id,
        clubId=redemption.club_id,
        userId=redemption.user_id,
        state=redemption.state.value,
        pointsSpent=redemption.points_spent,
        spentPurchased=redemption.spent_purchased,
        spentEarned=redemption.spent_earned,
        holdExpiresAt=redemption.hold_expires_at,
        confirmedAt=redemption.confirmed_at,
        fulfilledAt=redemption.fulfilled_at,
        refundedAt=redemption.refunded_at,
        refundReason=redemption.refund_reason,
        ref=redemption.ref,
        metadata=redemption.metadata_json,
    )


@router.get("/clubs/{club_id}/rewards", response_model=List[RewardResponse])
async def list_rewards(
    club_id: UUID,
    db: AsyncSession = Depends(get_session),
) -> List[RewardResponse]:
    now = datetime.now(timezone.utc)
    stmt = select(Reward).where(Reward.club_id == club_id).order_by(Reward.points_price)
    rewards = (await db.execute(stmt)).scalars().all()

    responses: List[RewardResponse] = []
    for reward in rewards:
        availability = check_reward_availability(reward, now)
        responses.append(
            RewardResponse(
                id=reward.id,
                clubId=reward.club_id,
                kind=reward.kind.value,
                title=reward.title,
                description=reward.description,
                pointsPrice=reward.points_price,
                inventory=reward.inventory,
                windowStart=reward.window_start,
                windowEnd=reward.window_end,
                settleMode=reward.settle_mode.value,
                status=reward.status.value,
                minStatus=reward.min_status.value if reward.min_status else None,
                available=availability.available,
                unavailableReasons=availability.reasons,
            )
        )
    return responses


@router.post(
    "/clubs/{club_id}/rewards/{reward_id}/redeem",
    response_model=RedemptionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def redeem_reward(
    club_id: UUID,
    reward_id: UUID,
    payload: RedeemRequest,
    member_id: UUID = Depends(require_member_id),
    db: AsyncSession = Depends(get_session),
) -> RedemptionResponse:
    service = PointsService(db)
    try:
        redemption = await service.redeem_reward(
            member_id,
            club_id,
            reward_id,
            preserve_status=payload.preserveStatus,
            ref=payload.ref,
            metadata=payload.metadata,
        )
    except PointsEconomyError as exc:
        raise economy_http_error(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return _redemption_response(redemption)


@router.post(
    "/redemptions/{redemption_id}/confirm",
    response_model=RedemptionResponse,
    dependencies=[Depends(require_ledger_api_key)],
)
async def confirm_redemption(
    redemption_id: UUID,
    db: AsyncSession = Depends(get_session),
) -> RedemptionResponse:
    try:
        redemption = await RedemptionService(db).confirm(redemption_id)
    except PointsEconomyError as exc:
        raise economy_http_error(exc) from exc
    return _redemption_response(redemption)


@router.post(
    "/redemptions/{redemption_id}/fulfill",
    response_model=RedemptionResponse,
    dependencies=[Depends(require_ledger_api_key)],
)
async def fulfill_redemption(
    redemption_id: UUID,
    db: AsyncSession = Depends(get_session),
) -> RedemptionResponse:
    try:
        redemption = await RedemptionService(db).fulfill(redemption_id)
    except PointsEconomyError as exc:
        raise economy_http_error(exc) from exc
    return _redemption_response(redemption)


@router.post(
    "/redemptions/{redemption_id}/refund",
    response_model=RedemptionResponse,
    dependencies=[Depends(require_ledger_api_key)],
)
async def refund_redemption(
    redemption_id: UUID,
    payload: RefundRequest | None = None,
    db: AsyncSession = Depends(get_session),
) -> RedemptionResponse:
    reason = payload.reason if payload else None
    try:
        redemption = await RedemptionService(db).refund(redemption_id, reason=reason)
    except PointsEconomyError as exc:
        raise economy_http_error(exc) from exc
    return _redemption_response(redemption)
