"""Reward redemption orchestration: spend, hold, confirm, fulfill and refund."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Sequence
from uuid import UUID, uuid4

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from superfan_api.core.settings import settings
from superfan_api.domain.economy.availability import SOLD_OUT, check_reward_eligibility
from superfan_api.domain.economy.errors import (
    DuplicateEventError,
    InvalidRedemptionTransitionError,
    RedemptionHoldExpiredError,
    RedemptionNotFoundError,
    RewardNotFoundError,
    RewardUnavailableError,
)
from superfan_api.domain.economy.redemption_states import (
    assert_transition,
    calculate_hold_expiry,
    initial_state_for,
    is_hold_expired,
    parse_redemption_metadata,
)
from superfan_api.domain.economy.spending import calculate_spending_breakdown
from superfan_api.domain.economy.status import compute_status
from superfan_api.models.points import PointTransactionType
from superfan_api.models.rewards import RedemptionState, Reward, RewardKind, RewardRedemption
from superfan_api.observability.economy import EconomyObservabilityStore, get_economy_store

from .ledger import WalletLedger

HOLD_EXPIRED_REASON = "hold_expired"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RedemptionService:
    """Drive a redemption through HELD, CONFIRMED, FULFILLED and REFUNDED."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        ledger: WalletLedger | None = None,
        store: EconomyObservabilityStore | None = None,
        hold_hours: int | None = None,
    ) -> None:
        self._db = session
        self._store = store or get_economy_store()
        self._ledger = ledger or WalletLedger(session, store=self._store)
        self._hold_hours = hold_hours or settings.presale_hold_hours

    async def get_redemption(self, redemption_id: UUID) -> RewardRedemption:
        stmt = (
            select(RewardRedemption)
            .where(RewardRedemption.id == redemption_id)
            .execution_options(populate_existing=True)
        )
        redemption = (await self._db.execute(stmt)).scalar_one_or_none()
        if redemption is None:
            raise RedemptionNotFoundError(f"Redemption {redemption_id} not found")
        return redemption

    async def _get_by_ref(self, ref: str) -> RewardRedemption | None:
        stmt = (
            select(RewardRedemption)
            .where(RewardRedemption.ref == ref)
            .execution_options(populate_existing=True)
        )
        return (await self._db.execute(stmt)).scalar_one_or_none()

    async def redeem(
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
        """Spend points on a reward.

        Replaying the same ``ref`` returns the original redemption without
        charging again.
        """

        now = now or _utcnow()
        if ref:
            existing = await self._get_by_ref(ref)
            if existing is not None:
                if existing.user_id != user_id or existing.reward_id != reward_id:
                    raise DuplicateEventError(ref)
                self._store.record_duplicate("redemption")
                return existing

        reward = await self._db.get(Reward, reward_id, populate_existing=True)
        if reward is None or reward.club_id != club_id:
            raise RewardNotFoundError(f"Reward {reward_id} not found for club {club_id}")

        kind = RewardKind(reward.kind)
        price = reward.points_price
        tracks_inventory = reward.inventory is not None
        details = parse_redemption_metadata(kind, metadata)

        wallet = await self._ledger.get_or_create_point_wallet(user_id, club_id)
        wallet_id = wallet.id
        current_status = compute_status(wallet.status_pts)

        eligibility = check_reward_eligibility(reward, now, current_status)
        if not eligibility.available:
            logger.info(
                "Reward redemption blocked",
                reward_id=str(reward_id),
                user_id=str(user_id),
                reasons=eligibility.reasons,
            )
            raise RewardUnavailableError(eligibility.reasons)

        breakdown = calculate_spending_breakdown(
            price,
            wallet.earned_pts,
            wallet.purchased_pts,
            wallet.escrowed_pts,
            current_status,
            preserve_status,
        )

        if tracks_inventory:
            claimed = await self._db.execute(
                update(Reward)
                .where(Reward.id == reward_id, Reward.inventory > 0)
                .values(inventory=Reward.inventory - 1)
                .execution_options(synchronize_session=False)
            )
            if claimed.rowcount == 0:
                await self._db.rollback()
                raise RewardUnavailableError([SOLD_OUT])

        state = initial_state_for(kind)
        redemption_ref = ref or f"rdm_{uuid4().hex}"
        redemption = RewardRedemption(
            user_id=user_id,
            club_id=club_id,
            reward_id=reward_id,
            wallet_id=wallet_id,
            points_spent=price,
            spent_purchased=breakdown.spend_purchased,
            spent_earned=breakdown.spend_earned,
            state=state,
            hold_expires_at=calculate_hold_expiry(now, self._hold_hours) if state is RedemptionState.HELD else None,
            confirmed_at=now if state is RedemptionState.CONFIRMED else None,
            metadata_json=details.model_dump(mode="json"),
            ref=redemption_ref,
        )
        self._db.add(redemption)
        try:
            await self._db.flush()
        except IntegrityError:
            await self._db.rollback()
            logger.warning("Detected race when creating redemption", ref=redemption_ref)
            existing = await self._get_by_ref(redemption_ref)
            if existing is None:
                raise
            self._store.record_duplicate("redemption")
            return existing
        redemption_id = redemption.id

        await self._ledger.update_wallet_balance(
            wallet_id,
            -price,
            PointTransactionType.SPEND,
            earned_delta=-breakdown.spend_earned,
            purchased_delta=-breakdown.spend_purchased,
            ref=f"redeem:{redemption_ref}",
            metadata={
                "reward_id": str(reward_id),
                "redemption_id": str(redemption_id),
                "spend_purchased": breakdown.spend_purchased,
                "spend_earned": breakdown.spend_earned,
                "preserve_status": preserve_status,
            },
        )
        await self._db.commit()

        self._store.record_redemption(state.value)
        logger.info(
            "Redeemed reward",
            redemption_id=str(redemption_id),
            reward_id=str(reward_id),
            user_id=str(user_id),
            state=state.value,
            points_spent=price,
            spent_purchased=breakdown.spend_purchased,
            spent_earned=breakdown.spend_earned,
        )
        return await self.get_redemption(redemption_id)

    async def confirm(self, redemption_id: UUID, *, now: datetime | None = None) -> RewardRedemption:
        now = now or _utcnow()
        redemption = await self.get_redemption(redemption_id)
        if is_hold_expired(redemption, now):
            raise RedemptionHoldExpiredError(redemption.state.value, RedemptionState.CONFIRMED.value)
        return await self._transition(
            redemption,
            RedemptionState.CONFIRMED,
            confirmed_at=now,
            hold_expires_at=None,
        )

    async def fulfill(self, redemption_id: UUID, *, now: datetime | None = None) -> RewardRedemption:
        redemption = await self.get_redemption(redemption_id)
        return await self._transition(redemption, RedemptionState.FULFILLED, fulfilled_at=now or _utcnow())

    async def refund(
        self,
        redemption_id: UUID,
        *,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> RewardRedemption:
        """Return the exact purchased/earned split and one unit of finite inventory."""

        now = now or _utcnow()
        redemption = await self.get_redemption(redemption_id)
        current = RedemptionState(redemption.state)
        assert_transition(current, RedemptionState.REFUNDED)

        wallet_id = redemption.wallet_id
        reward_id = redemption.reward_id
        spent_purchased = redemption.spent_purchased
        spent_earned = redemption.spent_earned

        await self._apply_state(
            redemption_id,
            current,
            RedemptionState.REFUNDED,
            refunded_at=now,
            refund_reason=reason,
        )
        await self._ledger.update_wallet_balance(
            wallet_id,
            spent_purchased + spent_earned,
            PointTransactionType.REFUND,
            earned_delta=spent_earned,
            purchased_delta=spent_purchased,
            ref=f"refund:{redemption_id}",
            metadata={
                "redemption_id": str(redemption_id),
                "reward_id": str(reward_id),
                "reason": reason,
            },
        )
        await self._db.execute(
            update(Reward)
            .where(Reward.id == reward_id, Reward.inventory.is_not(None))
            .values(inventory=Reward.inventory + 1)
            .execution_options(synchronize_session=False)
        )
        await self._db.commit()

        self._store.record_redemption(RedemptionState.REFUNDED.value)
        logger.info(
            "Refunded redemption",
            redemption_id=str(redemption_id),
            previous_state=current.value,
            reason=reason,
            refunded_purchased=spent_purchased,
            refunded_earned=spent_earned,
        )
        return await self.get_redemption(redemption_id)

    async def release_expired_holds(
        self,
        now: datetime | None = None,
        *,
        limit: int = 100,
    ) -> Sequence[UUID]:
        """Refund HELD redemptions whose hold has lapsed."""

        now = now or _utcnow()
        stmt = (
            select(RewardRedemption.id)
            .where(
                RewardRedemption.state == RedemptionState.HELD,
                RewardRedemption.hold_expires_at.is_not(None),
                RewardRedemption.hold_expires_at <= now,
            )
            .order_by(RewardRedemption.hold_expires_at)
            .limit(limit)
        )
        candidate_ids = list((await self._db.execute(stmt)).scalars().all())

        released: list[UUID] = []
        for redemption_id in candidate_ids:
            try:
                await self.refund(redemption_id, reason=HOLD_EXPIRED_REASON, now=now)
            except InvalidRedemptionTransitionError:
                logger.info("Skipped hold release after concurrent transition", redemption_id=str(redemption_id))
                continue
            released.append(redemption_id)
        return released

    async def _transition(self, redemption: RewardRedemption, target: RedemptionState, **values: Any) -> RewardRedemption:
        current = RedemptionState(redemption.state)
        redemption_id = redemption.id
        assert_transition(current, target)
        await self._apply_state(redemption_id, current, target, **values)
        await self._db.commit()

        self._store.record_redemption(target.value)
        logger.info(
            "Redemption transitioned",
            redemption_id=str(redemption_id),
            previous_state=current.value,
            state=target.value,
        )
        return await self.get_redemption(redemption_id)

    async def _apply_state(
        self,
        redemption_id: UUID,
        current: RedemptionState,
        target: RedemptionState,
        **values: Any,
    ) -> None:
        # Conditional on the state we read so concurrent transitions cannot both win.
        result = await self._db.execute(
            update(RewardRedemption)
            .where(RewardRedemption.id == redemption_id, RewardRedemption.state == current)
            .values(state=target, updated_at=_utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self._db.rollback()
            latest = await self.get_redemption(redemption_id)
            raise InvalidRedemptionTransitionError(RedemptionState(latest.state).value, target.value)


__all__ = ["HOLD_EXPIRED_REASON", "RedemptionService"]
