"""Inbound operations of the points economy."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Sequence
from uuid import UUID, uuid4

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from superfan_api.core.settings import settings
from superfan_api.domain.economy.bundles import PURCHASE_BUNDLES, UNIFIED_PEG_CENTS_PER_POINT, PurchaseBundle
from superfan_api.domain.economy.errors import (
    ClubNotFoundError,
    DuplicateEventError,
    InsufficientPointsError,
    InvalidAmountError,
)
from superfan_api.domain.economy.formatting import points_to_usd, validate_points_amount
from superfan_api.domain.economy.guardrails import GuardrailBounds, GuardrailResult, validate_pricing_guardrails
from superfan_api.domain.economy.reserve import PurchaseSplit, build_purchase_split, derive_unit_sell_cents
from superfan_api.domain.economy.spending import (
    SpendingBreakdown,
    SpendingPower,
    calculate_spending_breakdown,
    calculate_spending_power,
)
from superfan_api.domain.economy.status import StatusProgress, StatusTier, calculate_status_progress, compute_status
from superfan_api.domain.economy.tap_in import points_for_source
from superfan_api.models.club import Club
from superfan_api.models.points import PointTransaction, PointTransactionType, PointWallet
from superfan_api.models.rewards import RewardRedemption
from superfan_api.models.tap_in import TapIn
from superfan_api.observability.economy import EconomyObservabilityStore, get_economy_store

from .ledger import WalletLedger
from .redemptions import RedemptionService
from .reserve_service import ReserveService


@dataclass(slots=True)
class TapInResult:
    wallet: PointWallet
    source: str
    points_earned: int
    previous_status: StatusTier
    current_status: StatusTier
    duplicate: bool = False

    @property
    def status_changed(self) -> bool:
        return self.previous_status is not self.current_status


@dataclass(slots=True)
class PurchaseResult:
    wallet: PointWallet
    points_credited: int
    split: PurchaseSplit | None
    duplicate: bool = False


@dataclass(slots=True)
class SpendResult:
    wallet: PointWallet
    breakdown: SpendingBreakdown | None
    duplicate: bool = False


@dataclass(slots=True)
class WalletBreakdown:
    wallet: PointWallet
    status: StatusProgress
    spending_power: SpendingPower
    protected_spending_power: SpendingPower
    usd_value: float
    recent_transactions: Sequence[PointTransaction] = field(default_factory=list)


@dataclass(slots=True)
class ClubBalance:
    club_id: UUID
    club_name: str
    balance_pts: int
    earned_pts: int
    purchased_pts: int
    status: StatusTier


@dataclass(slots=True)
class GlobalBalance:
    total_balance: int
    total_earned: int
    total_purchased: int
    total_spent: int
    usd_value: float
    clubs: list[ClubBalance] = field(default_factory=list)


class PointsService:
    """Entry point for tap-ins, purchases, spends and redemptions.

    Each public mutation is one database transaction: it either commits
    every row it touched or none of them.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        store: EconomyObservabilityStore | None = None,
        ledger: WalletLedger | None = None,
        reserve: ReserveService | None = None,
        redemptions: RedemptionService | None = None,
    ) -> None:
        self._db = session
        self._store = store or get_economy_store()
        self._ledger = ledger or WalletLedger(session, store=self._store)
        self._reserve = reserve or ReserveService(session)
        self._redemptions = redemptions or RedemptionService(session, ledger=self._ledger, store=self._store)

    @property
    def ledger(self) -> WalletLedger:
        return self._ledger

    @property
    def redemptions(self) -> RedemptionService:
        return self._redemptions

    async def _require_club(self, club_id: UUID, *, active_only: bool = False) -> Club:
        club = await self._db.get(Club, club_id)
        if club is None or (active_only and not club.is_active):
            raise ClubNotFoundError(f"Club {club_id} not found")
        return club

    async def record_tap_in(
        self,
        user_id: UUID,
        club_id: UUID,
        source: str,
        *,
        points_override: int | None = None,
        location: str | None = None,
        ref: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> TapInResult:
        """Credit earned points for a tap-in; a replayed ``ref`` credits nothing."""

        await self._require_club(club_id, active_only=True)
        points = self._resolve_tap_in_points(source, points_override, club_id)
        tap_ref = ref or f"tap_{uuid4().hex}"

        wallet = await self._ledger.get_or_create_point_wallet(user_id, club_id)
        wallet_id = wallet.id
        previous_status = compute_status(wallet.status_pts)

        self._db.add(
            TapIn(
                user_id=user_id,
                club_id=club_id,
                source=source,
                points_earned=points,
                location=location,
                ref=tap_ref,
                metadata_json=dict(metadata) if metadata else None,
            )
        )
        try:
            await self._db.flush()
            updated = await self._ledger.update_wallet_balance(
                wallet_id,
                points,
                PointTransactionType.BONUS,
                earned_delta=points,
                ref=tap_ref,
                metadata={"source": source, "location": location},
            )
        except (IntegrityError, DuplicateEventError):
            await self._db.rollback()
            self._store.record_duplicate("tap_in")
            logger.info("Ignored duplicate tap-in", ref=tap_ref, user_id=str(user_id), club_id=str(club_id))
            current = await self._ledger.get_wallet_by_id(wallet_id)
            return TapInResult(
                wallet=current,
                source=source,
                points_earned=0,
                previous_status=previous_status,
                current_status=compute_status(current.status_pts),
                duplicate=True,
            )

        await self._db.commit()
        current_status = compute_status(updated.status_pts)
        self._store.record_tap_in(source, points)
        logger.info(
            "Recorded tap-in",
            user_id=str(user_id),
            club_id=str(club_id),
            source=source,
            points=points,
            status=current_status.value,
            status_changed=current_status is not previous_status,
        )
        return TapInResult(
            wallet=updated,
            source=source,
            points_earned=points,
            previous_status=previous_status,
            current_status=current_status,
        )

    def _resolve_tap_in_points(self, source: str, points_override: int | None, club_id: UUID) -> int:
        if points_override is None:
            return points_for_source(source)

        requested = validate_points_amount(points_override)
        cap = settings.tap_in_override_max_points
        if requested > cap:
            logger.warning(
                "Capped tap-in point override",
                club_id=str(club_id),
                source=source,
                requested=requested,
                cap=cap,
            )
            return cap
        return requested

    async def record_purchase(
        self,
        user_id: UUID,
        club_id: UUID,
        points: int,
        bonus_points: int,
        usd_gross_cents: int,
        unit_sell_cents: int | None,
        unit_settle_cents: int | None,
        ref: str,
    ) -> PurchaseResult:
        """Credit a verified purchase and top up the club reserve."""

        if not ref:
            raise InvalidAmountError("Purchases require an idempotency reference")
        validate_points_amount(points)
        validate_points_amount(bonus_points)
        total_points = validate_points_amount(points + bonus_points)
        if points <= 0:
            raise InvalidAmountError("Purchases must credit at least one paid point", amount=points)
        if usd_gross_cents < 0:
            raise InvalidAmountError("Gross amount cannot be negative", amount=usd_gross_cents)

        await self._require_club(club_id)
        # Verified purchases settle at the unified peg unless the caller prices them.
        settle_cents = unit_settle_cents if unit_settle_cents is not None else UNIFIED_PEG_CENTS_PER_POINT
        sell_cents = unit_sell_cents if unit_sell_cents is not None else derive_unit_sell_cents(usd_gross_cents, points)
        split = build_purchase_split(usd_gross_cents, total_points, settle_cents)

        wallet = await self._ledger.get_or_create_point_wallet(user_id, club_id)
        wallet_id = wallet.id
        try:
            updated = await self._ledger.update_wallet_balance(
                wallet_id,
                total_points,
                PointTransactionType.PURCHASE,
                purchased_delta=total_points,
                ref=ref,
                unit_sell_cents=sell_cents,
                unit_settle_cents=settle_cents,
                usd_gross_cents=usd_gross_cents,
                metadata={
                    "points": points,
                    "bonus_points": bonus_points,
                    "platform_fee_cents": split.platform_fee_cents,
                    "reserve_delta_cents": split.reserve_delta_cents,
                    "upfront_cents": split.upfront_cents,
                },
            )
        except DuplicateEventError:
            current = await self._ledger.get_wallet_by_id(wallet_id)
            return PurchaseResult(wallet=current, points_credited=0, split=None, duplicate=True)

        await self._reserve.record_purchase_split(club_id, split)
        await self._db.commit()

        logger.info(
            "Recorded point purchase",
            user_id=str(user_id),
            club_id=str(club_id),
            points=points,
            bonus_points=bonus_points,
            usd_gross_cents=usd_gross_cents,
            ref=ref,
        )
        return PurchaseResult(wallet=updated, points_credited=total_points, split=split)

    async def spend_points(
        self,
        user_id: UUID,
        club_id: UUID,
        amount: int,
        *,
        preserve_status: bool = False,
        ref: str | None = None,
        description: str | None = None,
    ) -> SpendResult:
        amount = validate_points_amount(amount)
        if amount == 0:
            raise InvalidAmountError("Spend amount must be positive", amount=amount)
        wallet = await self._ledger.get_wallet(user_id, club_id)
        if wallet is None:
            raise InsufficientPointsError(needed=amount, available=0, status_protected=preserve_status)
        wallet_id = wallet.id
        if ref and await self._ledger.find_transaction(wallet_id, ref) is not None:
            # Replayed refs are answered before pricing against the reduced balance.
            return SpendResult(wallet=wallet, breakdown=None, duplicate=True)

        breakdown = calculate_spending_breakdown(
            amount,
            wallet.earned_pts,
            wallet.purchased_pts,
            wallet.escrowed_pts,
            compute_status(wallet.status_pts),
            preserve_status,
        )
        try:
            updated = await self._ledger.update_wallet_balance(
                wallet_id,
                -amount,
                PointTransactionType.SPEND,
                earned_delta=-breakdown.spend_earned,
                purchased_delta=-breakdown.spend_purchased,
                ref=ref,
                metadata={
                    "description": description,
                    "spend_purchased": breakdown.spend_purchased,
                    "spend_earned": breakdown.spend_earned,
                    "preserve_status": preserve_status,
                },
            )
        except DuplicateEventError:
            current = await self._ledger.get_wallet_by_id(wallet_id)
            return SpendResult(wallet=current, breakdown=None, duplicate=True)

        await self._db.commit()
        return SpendResult(wallet=updated, breakdown=breakdown)

    async def redeem_reward(
        self,
        user_id: UUID,
        club_id: UUID,
        reward_id: UUID,
        *,
        preserve_status: bool = False,
        ref: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        now: datetime | None = None,
    ) -> RewardRedemption:
        return await self._redemptions.redeem(
            user_id,
            club_id,
            reward_id,
            preserve_status=preserve_status,
            ref=ref,
            metadata=metadata,
            now=now,
        )

    async def get_wallet_breakdown(self, user_id: UUID, club_id: UUID, *, transaction_limit: int = 20) -> WalletBreakdown:
        """Read-only view; members without a wallet get an unsaved, empty one."""

        await self._require_club(club_id)
        wallet = await self._ledger.get_wallet(user_id, club_id)
        if wallet is None:
            wallet = PointWallet(
                user_id=user_id,
                club_id=club_id,
                balance_pts=0,
                earned_pts=0,
                purchased_pts=0,
                spent_pts=0,
                escrowed_pts=0,
            )
            recent: Sequence[PointTransaction] = []
        else:
            recent = await self._ledger.list_transactions(wallet.id, limit=transaction_limit)

        status = calculate_status_progress(wallet.status_pts)
        power_args = (wallet.earned_pts, wallet.purchased_pts, wallet.escrowed_pts, status.current)
        return WalletBreakdown(
            wallet=wallet,
            status=status,
            spending_power=calculate_spending_power(*power_args, False),
            protected_spending_power=calculate_spending_power(*power_args, True),
            usd_value=points_to_usd(wallet.balance_pts),
            recent_transactions=recent,
        )

    async def get_global_balance(self, user_id: UUID) -> GlobalBalance:
        """Aggregate a user's wallets across active clubs without merging them."""

        stmt = (
            select(PointWallet, Club.name)
            .join(Club, Club.id == PointWallet.club_id)
            .where(PointWallet.user_id == user_id, Club.is_active.is_(True))
            .order_by(PointWallet.balance_pts.desc())
            .execution_options(populate_existing=True)
        )
        rows = (await self._db.execute(stmt)).all()

        summary = GlobalBalance(total_balance=0, total_earned=0, total_purchased=0, total_spent=0, usd_value=0.0)
        for wallet, club_name in rows:
            summary.total_balance += wallet.balance_pts
            summary.total_earned += wallet.earned_pts
            summary.total_purchased += wallet.purchased_pts
            summary.total_spent += wallet.spent_pts
            if wallet.balance_pts > 0:
                summary.clubs.append(
                    ClubBalance(
                        club_id=wallet.club_id,
                        club_name=club_name,
                        balance_pts=wallet.balance_pts,
                        earned_pts=wallet.earned_pts,
                        purchased_pts=wallet.purchased_pts,
                        status=compute_status(wallet.status_pts),
                    )
                )
        summary.usd_value = points_to_usd(summary.total_balance)
        return summary

    async def validate_club_pricing(self, club_id: UUID, sell_cents: int, settle_cents: int) -> GuardrailResult:
        club = await self._require_club(club_id)
        return validate_pricing_guardrails(sell_cents, settle_cents, GuardrailBounds.from_club(club))

    async def update_club_pricing(self, club_id: UUID, sell_cents: int, settle_cents: int) -> Club:
        """Apply new prices only if every guardrail passes."""

        club = await self._require_club(club_id)
        result = validate_pricing_guardrails(sell_cents, settle_cents, GuardrailBounds.from_club(club))
        if not result.is_valid:
            self._store.record_guardrail_rejection(str(club_id))
            logger.warning(
                "Rejected club pricing update",
                club_id=str(club_id),
                sell_cents=sell_cents,
                settle_cents=settle_cents,
                errors=result.errors,
            )
            result.raise_for_errors()

        club.point_sell_cents = sell_cents
        club.point_settle_cents = settle_cents
        await self._db.commit()
        await self._db.refresh(club)
        logger.info("Updated club pricing", club_id=str(club_id), sell_cents=sell_cents, settle_cents=settle_cents)
        return club

    def list_purchase_bundles(self) -> list[PurchaseBundle]:
        return list(PURCHASE_BUNDLES)


__all__ = [
    "ClubBalance",
    "GlobalBalance",
    "PointsService",
    "PurchaseResult",
    "SpendResult",
    "TapInResult",
    "WalletBreakdown",
]
