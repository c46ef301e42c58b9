"""Member wallet, tap-in, spend and verified purchase endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from superfan_api.api.dependencies.security import require_ledger_api_key
from superfan_api.api.dependencies.session import require_member_id
from superfan_api.api.errors import economy_http_error
from superfan_api.db.session import get_session
from superfan_api.domain.economy.errors import PointsEconomyError
from superfan_api.domain.economy.spending import SpendingBreakdown, SpendingPower
from superfan_api.domain.economy.status import StatusProgress
from superfan_api.models.points import PointWallet
from superfan_api.services.points import PointsService


router = APIRouter(prefix="/points", tags=["points"])


class WalletResponse(BaseModel):
    id: Optional[UUID]
    userId: UUID
    clubId: UUID
    balancePts: int
    earnedPts: int
    purchasedPts: int
    spentPts: int
    escrowedPts: int
    statusPts: int
    lastActivityAt: Optional[datetime]


class StatusProgressResponse(BaseModel):
    current: str
    next: Optional[str]
    currentThreshold: int
    nextThreshold: Optional[int]
    pointsToNext: int
    progressPercentage: float


class SpendingPowerResponse(BaseModel):
    earnedLockedForStatus: int
    earnedAvailable: int
    purchasedAvailable: int
    escrowed: int
    totalSpendable: int


class TransactionResponse(BaseModel):
    id: UUID
    type: str
    pts: int
    source: str
    ref: Optional[str]
    affectsStatus: bool
    createdAt: Optional[datetime]
    metadata: Optional[dict[str, Any]]


class WalletBreakdownResponse(BaseModel):
    wallet: WalletResponse
    status: StatusProgressResponse
    spendingPower: SpendingPowerResponse
    protectedSpendingPower: SpendingPowerResponse
    usdValue: float
    recentTransactions: List[TransactionResponse]


class ClubBalanceResponse(BaseModel):
    clubId: UUID
    clubName: str
    balancePts: int
    earnedPts: int
    purchasedPts: int
    status: str


class GlobalBalanceResponse(BaseModel):
    totalBalance: int
    totalEarned: int
    totalPurchased: int
    totalSpent: int
    usdValue: float
    clubs: List[ClubBalanceResponse]


class TapInRequest(BaseModel):
    clubId: UUID
    source: str = Field(..., min_length=1, max_length=64)
    location: Optional[str] = Field(None, max_length=255)
    pointsOverride: Optional[int] = Field(None, description="Admin-configured point value from a QR code")
    ref: Optional[str] = Field(None, max_length=128, description="Idempotency key for the scan")
    metadata: Optional[dict[str, Any]] = None


class TapInResponse(BaseModel):
    wallet: WalletResponse
    source: str
    pointsEarned: int
    previousStatus: str
    currentStatus: str
    statusChanged: bool
    duplicate: bool


class SpendRequest(BaseModel):
    clubId: UUID
    points: int
    preserveStatus: bool = False
    ref: Optional[str] = Field(None, max_length=128)
    description: Optional[str] = Field(None, max_length=255)


class SpendBreakdownResponse(BaseModel):
    spendPurchased: int
    spendEarned: int
    total: int
    remainingSpendable: int


class SpendResponse(BaseModel):
    wallet: WalletResponse
    breakdown: Optional[SpendBreakdownResponse]
    duplicate: bool


class PurchaseRequest(BaseModel):
    userId: UUID
    clubId: UUID
    points: int
    bonusPoints: int = 0
    usdGrossCents: int
    unitSellCents: Optional[int] = None
    unitSettleCents: Optional[int] = None
    ref: str = Field(..., min_length=1, max_length=255, description="Payment session id used for idempotency")


class PurchaseSplitResponse(BaseModel):
    grossCents: int
    platformFeeCents: int
    reserveDeltaCents: int
    upfrontCents: int


class PurchaseResponse(BaseModel):
    wallet: WalletResponse
    pointsCredited: int
    split: Optional[PurchaseSplitResponse]
    duplicate: bool


class BundleResponse(BaseModel):
    id: str
    points: int
    bonusPoints: int
    totalPoints: int
    usdCents: int
    displayName: str


def _wallet_response(wallet: PointWallet) -> WalletResponse:
    return WalletResponse(
        id=wallet.id,
        userId=wallet.user_id,
        clubId=wallet.club_id,
        balancePts=wallet.balance_pts,
        earnedPts=wallet.earned_pts,
        purchasedPts=wallet.purchased_pts,
        spentPts=wallet.spent_pts,
        escrowedPts=wallet.escrowed_pts,
        statusPts=wallet.status_pts,
        lastActivityAt=wallet.last_activity_at,
    )


def _status_response(progress: StatusProgress) -> StatusProgressResponse:
    return StatusProgressResponse(
        current=progress.current.value,
        next=progress.next.value if progress.next else None,
        currentThreshold=progress.current_threshold,
        nextThreshold=progress.next_threshold,
        pointsToNext=progress.points_to_next,
        progressPercentage=round(progress.progress_percentage, 2),
    )


def _power_response(power: SpendingPower) -> SpendingPowerResponse:
    return SpendingPowerResponse(
        earnedLockedForStatus=power.earned_locked_for_status,
        earnedAvailable=power.earned_available,
        purchasedAvailable=power.purchased_available,
        escrowed=power.escrowed,
        totalSpendable=power.total_spendable,
    )


def _breakdown_response(breakdown: SpendingBreakdown | None) -> SpendBreakdownResponse | None:
    if breakdown is None:
        return None
    return SpendBreakdownResponse(
        spendPurchased=breakdown.spend_purchased,
        spendEarned=breakdown.spend_earned,
        total=breakdown.total,
        remainingSpendable=breakdown.remaining_spendable,
    )


@router.get("/clubs/{club_id}/wallet", response_model=WalletBreakdownResponse)
async def get_wallet(
    club_id: UUID,
    member_id: UUID = Depends(require_member_id),
    db: AsyncSession = Depends(get_session),
) -> WalletBreakdownResponse:
    service = PointsService(db)
    try:
        breakdown = await service.get_wallet_breakdown(member_id, club_id)
    except PointsEconomyError as exc:
        raise economy_http_error(exc) from exc

    return WalletBreakdownResponse(
        wallet=_wallet_response(breakdown.wallet),
        status=_status_response(breakdown.status),
        spendingPower=_power_response(breakdown.spending_power),
        protectedSpendingPower=_power_response(breakdown.protected_spending_power),
        usdValue=breakdown.usd_value,
        recentTransactions=[
            TransactionResponse(
                id=entry.id,
                type=entry.type.value,
                pts=entry.pts,
                source=entry.source.value,
                ref=entry.ref,
                affectsStatus=entry.affects_status,
                createdAt=entry.created_at,
                metadata=entry.metadata_json,
            )
            for entry in breakdown.recent_transactions
        ],
    )


@router.get("/global-balance", response_model=GlobalBalanceResponse)
async def get_global_balance(
    member_id: UUID = Depends(require_member_id),
    db: AsyncSession = Depends(get_session),
) -> GlobalBalanceResponse:
    summary = await PointsService(db).get_global_balance(member_id)
    return GlobalBalanceResponse(
        totalBalance=summary.total_balance,
        totalEarned=summary.total_earned,
        totalPurchased=summary.total_purchased,
        totalSpent=summary.total_spent,
        usdValue=summary.usd_value,
        clubs=[
            ClubBalanceResponse(
                clubId=club.club_id,
                clubName=club.club_name,
                balancePts=club.balance_pts,
                earnedPts=club.earned_pts,
                purchasedPts=club.purchased_pts,
                status=club.status.value,
            )
            for club in summary.clubs
        ],
    )


@router.post("/tap-ins", response_model=TapInResponse, status_code=status.HTTP_201_CREATED)
async def create_tap_in(
    payload: TapInRequest,
    response: Response,
    member_id: UUID = Depends(require_member_id),
    db: AsyncSession = Depends(get_session),
) -> TapInResponse:
    service = PointsService(db)
    try:
        result = await service.record_tap_in(
            member_id,
            payload.clubId,
            payload.source,
            points_override=payload.pointsOverride,
            location=payload.location,
            ref=payload.ref,
            metadata=payload.metadata,
        )
    except PointsEconomyError as exc:
        raise economy_http_error(exc) from exc

    if result.duplicate:
        response.status_code = status.HTTP_200_OK
    return TapInResponse(
        wallet=_wallet_response(result.wallet),
        source=result.source,
        pointsEarned=result.points_earned,
        previousStatus=result.previous_status.value,
        currentStatus=result.current_status.value,
        statusChanged=result.status_changed,
        duplicate=result.duplicate,
    )


@router.post("/spend", response_model=SpendResponse)
async def spend_points(
    payload: SpendRequest,
    member_id: UUID = Depends(require_member_id),
    db: AsyncSession = Depends(get_session),
) -> SpendResponse:
    service = PointsService(db)
    try:
        result = await service.spend_points(
            member_id,
            payload.clubId,
            payload.points,
            preserve_status=payload.preserveStatus,
            ref=payload.ref,
            description=payload.description,
        )
    except PointsEconomyError as exc:
        raise economy_http_error(exc) from exc

    return SpendResponse(
        wallet=_wallet_response(result.wallet),
        breakdown=_breakdown_response(result.breakdown),
        duplicate=result.duplicate,
    )


@router.post(
    "/purchases",
    response_model=PurchaseResponse,
    dependencies=[Depends(require_ledger_api_key)],
)
async def record_purchase(
    payload: PurchaseRequest,
    db: AsyncSession = Depends(get_session),
) -> PurchaseResponse:
    """Credit a purchase already verified by the payment collaborator."""

    service = PointsService(db)
    try:
        result = await service.record_purchase(
            payload.userId,
            payload.clubId,
            payload.points,
            payload.bonusPoints,
            payload.usdGrossCents,
            payload.unitSellCents,
            payload.unitSettleCents,
            payload.ref,
        )
    except PointsEconomyError as exc:
        raise economy_http_error(exc) from exc

    split = None
    if result.split is not None:
        split = PurchaseSplitResponse(
            grossCents=result.split.gross_cents,
            platformFeeCents=result.split.platform_fee_cents,
            reserveDeltaCents=result.split.reserve_delta_cents,
            upfrontCents=result.split.upfront_cents,
        )
    return PurchaseResponse(
        wallet=_wallet_response(result.wallet),
        pointsCredited=result.points_credited,
        split=split,
        duplicate=result.duplicate,
    )


@router.get("/bundles", response_model=List[BundleResponse])
async def list_bundles(db: AsyncSession = Depends(get_session)) -> List[BundleResponse]:
    return [
        BundleResponse(
            id=bundle.id,
            points=bundle.points,
            bonusPoints=bundle.bonus_points,
            totalPoints=bundle.total_points,
            usdCents=bundle.usd_cents,
            displayName=bundle.display_name,
        )
        for bundle in PointsService(db).list_purchase_bundles()
    ]
