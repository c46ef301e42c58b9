"""The only code path that mutates wallet balances."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Sequence
from uuid import UUID

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from superfan_api.domain.economy.errors import (
    DuplicateEventError,
    InsufficientPointsError,
    InvalidAmountError,
    WalletNotFoundError,
)
from superfan_api.models.points import (
    PointSource,
    PointTransaction,
    PointTransactionType,
    PointWallet,
)
from superfan_api.observability.economy import EconomyObservabilityStore, get_economy_store

_SOURCE_BY_TYPE: Mapping[PointTransactionType, PointSource] = {
    PointTransactionType.PURCHASE: PointSource.PURCHASED,
    PointTransactionType.BONUS: PointSource.EARNED,
    PointTransactionType.SPEND: PointSource.SPENT,
    PointTransactionType.REFUND: PointSource.REFUND,
}


class WalletLedger:
    """Apply balance deltas and append the matching transaction row.

    Mutations flush but never commit; the calling service commits once per
    logical operation. Any failure rolls back the whole session transaction.
    """

    def __init__(self, session: AsyncSession, *, store: EconomyObservabilityStore | None = None) -> None:
        self._db = session
        self._store = store or get_economy_store()

    async def get_wallet(self, user_id: UUID, club_id: UUID) -> PointWallet | None:
        stmt = (
            select(PointWallet)
            .where(PointWallet.user_id == user_id, PointWallet.club_id == club_id)
            .execution_options(populate_existing=True)
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_wallet_by_id(self, wallet_id: UUID) -> PointWallet | None:
        stmt = (
            select(PointWallet)
            .where(PointWallet.id == wallet_id)
            .execution_options(populate_existing=True)
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create_point_wallet(self, user_id: UUID, club_id: UUID) -> PointWallet:
        """Return the (user, club) wallet, creating it if needed.

        Concurrent creators race on the unique (user_id, club_id) constraint;
        the loser rolls back and reads the winner's row.
        """

        wallet = await self.get_wallet(user_id, club_id)
        if wallet is not None:
            return wallet

        wallet = PointWallet(user_id=user_id, club_id=club_id)
        self._db.add(wallet)
        try:
            await self._db.flush()
        except IntegrityError:
            await self._db.rollback()
            logger.warning(
                "Detected race when creating point wallet",
                user_id=str(user_id),
                club_id=str(club_id),
            )
            wallet = await self.get_wallet(user_id, club_id)
            if wallet is None:
                raise
            return wallet

        await self._db.commit()
        await self._db.refresh(wallet)
        logger.info(
            "Created point wallet",
            user_id=str(user_id),
            club_id=str(club_id),
            wallet_id=str(wallet.id),
        )
        return wallet

    async def update_wallet_balance(
        self,
        wallet_id: UUID,
        delta_points: int,
        transaction_type: PointTransactionType,
        *,
        earned_delta: int | None = None,
        purchased_delta: int | None = None,
        ref: str | None = None,
        unit_sell_cents: int | None = None,
        unit_settle_cents: int | None = None,
        usd_gross_cents: int | None = None,
        affects_status: bool | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> PointWallet:
        """Apply ``delta_points`` to the wallet and record one transaction.

        ``earned_delta`` and ``purchased_delta`` split the delta across the
        sub-ledgers and must sum to it. Credits default to the sub-ledger
        implied by the transaction type.
        """

        transaction_type = PointTransactionType(transaction_type)
        earned_delta, purchased_delta = self._resolve_split(
            delta_points, transaction_type, earned_delta, purchased_delta
        )
        if transaction_type in (PointTransactionType.SPEND, PointTransactionType.REFUND):
            spent_delta = -delta_points
        else:
            spent_delta = 0

        now = datetime.now(timezone.utc)
        guards = [PointWallet.id == wallet_id]
        for column, delta in (
            (PointWallet.balance_pts, delta_points),
            (PointWallet.earned_pts, earned_delta),
            (PointWallet.purchased_pts, purchased_delta),
            (PointWallet.spent_pts, spent_delta),
        ):
            if delta < 0:
                guards.append(column + delta >= 0)

        stmt = (
            update(PointWallet)
            .where(*guards)
            .values(
                balance_pts=PointWallet.balance_pts + delta_points,
                earned_pts=PointWallet.earned_pts + earned_delta,
                purchased_pts=PointWallet.purchased_pts + purchased_delta,
                spent_pts=PointWallet.spent_pts + spent_delta,
                last_activity_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._db.execute(stmt)
        if result.rowcount == 0:
            await self._db.rollback()
            await self._raise_rejected_update(wallet_id, delta_points)

        entry = PointTransaction(
            wallet_id=wallet_id,
            type=transaction_type,
            pts=abs(delta_points),
            unit_sell_cents=unit_sell_cents,
            unit_settle_cents=unit_settle_cents,
            usd_gross_cents=usd_gross_cents,
            ref=ref,
            source=_SOURCE_BY_TYPE[transaction_type],
            affects_status=earned_delta != 0 if affects_status is None else affects_status,
            metadata_json=dict(metadata) if metadata else None,
        )
        self._db.add(entry)
        try:
            await self._db.flush()
        except IntegrityError as error:
            await self._db.rollback()
            self._store.record_duplicate(transaction_type.value.lower())
            logger.info(
                "Ignored duplicate ledger event",
                wallet_id=str(wallet_id),
                ref=ref,
                transaction_type=transaction_type.value,
            )
            raise DuplicateEventError(ref or "") from error

        self._store.record_ledger_mutation(transaction_type.value, abs(delta_points))
        logger.info(
            "Recorded point transaction",
            wallet_id=str(wallet_id),
            transaction_type=transaction_type.value,
            delta_points=delta_points,
            earned_delta=earned_delta,
            purchased_delta=purchased_delta,
            ref=ref,
        )

        wallet = await self.get_wallet_by_id(wallet_id)
        if wallet is None:  # pragma: no cover - row was just updated
            raise WalletNotFoundError(wallet_id)
        return wallet

    async def find_transaction(self, wallet_id: UUID, ref: str) -> PointTransaction | None:
        stmt = select(PointTransaction).where(PointTransaction.wallet_id == wallet_id, PointTransaction.ref == ref)
        return (await self._db.execute(stmt)).scalar_one_or_none()

    async def list_transactions(self, wallet_id: UUID, *, limit: int = 20) -> Sequence[PointTransaction]:
        stmt = (
            select(PointTransaction)
            .where(PointTransaction.wallet_id == wallet_id)
            .order_by(PointTransaction.created_at.desc())
            .limit(limit)
        )
        result = await self._db.execute(stmt)
        return result.scalars().all()

    @staticmethod
    def _resolve_split(
        delta_points: int,
        transaction_type: PointTransactionType,
        earned_delta: int | None,
        purchased_delta: int | None,
    ) -> tuple[int, int]:
        if earned_delta is None and purchased_delta is None:
            if transaction_type is PointTransactionType.PURCHASE:
                return 0, delta_points
            if transaction_type is PointTransactionType.BONUS:
                return delta_points, 0
            raise InvalidAmountError(
                f"{transaction_type.value} transactions require an earned/purchased split",
                amount=delta_points,
            )

        earned = earned_delta or 0
        purchased = purchased_delta or 0
        if earned + purchased != delta_points:
            raise InvalidAmountError(
                f"Split {earned} earned + {purchased} purchased does not match delta {delta_points}",
                amount=delta_points,
            )
        return earned, purchased

    async def _raise_rejected_update(self, wallet_id: UUID, delta_points: int) -> None:
        wallet = await self.get_wallet_by_id(wallet_id)
        if wallet is None:
            logger.error("Ledger mutation targeted unknown wallet", wallet_id=str(wallet_id))
            raise WalletNotFoundError(wallet_id)

        logger.info(
            "Rejected ledger mutation that would overdraw wallet",
            wallet_id=str(wallet_id),
            delta_points=delta_points,
            balance_pts=wallet.balance_pts,
        )
        raise InsufficientPointsError(needed=abs(delta_points), available=wallet.balance_pts)


__all__ = ["WalletLedger"]
