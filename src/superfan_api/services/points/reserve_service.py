"""Persist reserve top-ups and weekly upfront totals for clubs."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from uuid import UUID, uuid4

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from superfan_api.domain.economy.errors import ClubNotFoundError
from superfan_api.domain.economy.reserve import (
    PurchaseSplit,
    calculate_coverage_ratio,
    calculate_reserve_target,
)
from superfan_api.models.club import Club, ClubReserve, WeeklyUpfrontStat
from superfan_api.models.points import PointWallet


def week_start_for(moment: dt.datetime) -> dt.date:
    """Monday of the UTC week containing ``moment``."""

    if moment.tzinfo is not None:
        moment = moment.astimezone(dt.timezone.utc)
    day = moment.date()
    return day - dt.timedelta(days=day.weekday())


@dataclass(slots=True)
class WeeklyUpfrontSnapshot:
    week_start: dt.date
    gross_cents: int
    platform_fee_cents: int
    reserve_delta_cents: int
    upfront_cents: int


@dataclass(slots=True)
class ReserveSnapshot:
    club_id: UUID
    outstanding_points: int
    settle_cents_per_point: int
    reserve_target_cents: int
    reserve_held_cents: int
    coverage_ratio: float
    current_week: WeeklyUpfrontSnapshot


class ReserveService:
    def __init__(self, session: AsyncSession) -> None:
        self._db = session

    def _insert(self, table):
        dialect = self._db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(table)
        if dialect == "sqlite":
            return sqlite.insert(table)
        raise NotImplementedError(f"Reserve upserts are not supported on {dialect}")

    async def record_purchase_split(
        self,
        club_id: UUID,
        split: PurchaseSplit,
        *,
        occurred_at: dt.datetime | None = None,
    ) -> None:
        """Add one sale to the club reserve and its weekly upfront row.

        Both rows are insert-or-increment so concurrent purchases accumulate.
        """

        now = occurred_at or dt.datetime.now(dt.timezone.utc)

        reserve_stmt = self._insert(ClubReserve).values(
            club_id=club_id,
            reserve_cents=split.reserve_delta_cents,
            updated_at=now,
        )
        reserve_stmt = reserve_stmt.on_conflict_do_update(
            index_elements=[ClubReserve.club_id],
            set_={
                "reserve_cents": ClubReserve.reserve_cents + reserve_stmt.excluded.reserve_cents,
                "updated_at": reserve_stmt.excluded.updated_at,
            },
        )
        await self._db.execute(reserve_stmt)

        week_start = week_start_for(now)
        weekly_stmt = self._insert(WeeklyUpfrontStat).values(
            id=uuid4(),
            club_id=club_id,
            week_start=week_start,
            gross_cents=split.gross_cents,
            platform_fee_cents=split.platform_fee_cents,
            reserve_delta_cents=split.reserve_delta_cents,
            upfront_cents=split.upfront_cents,
            updated_at=now,
        )
        excluded = weekly_stmt.excluded
        weekly_stmt = weekly_stmt.on_conflict_do_update(
            index_elements=[WeeklyUpfrontStat.club_id, WeeklyUpfrontStat.week_start],
            set_={
                "gross_cents": WeeklyUpfrontStat.gross_cents + excluded.gross_cents,
                "platform_fee_cents": WeeklyUpfrontStat.platform_fee_cents + excluded.platform_fee_cents,
                "reserve_delta_cents": WeeklyUpfrontStat.reserve_delta_cents + excluded.reserve_delta_cents,
                "upfront_cents": WeeklyUpfrontStat.upfront_cents + excluded.upfront_cents,
                "updated_at": excluded.updated_at,
            },
        )
        await self._db.execute(weekly_stmt)

        logger.info(
            "Recorded reserve top-up",
            club_id=str(club_id),
            week_start=week_start.isoformat(),
            gross_cents=split.gross_cents,
            reserve_delta_cents=split.reserve_delta_cents,
            upfront_cents=split.upfront_cents,
        )

    async def get_reserve_snapshot(self, club_id: UUID, *, now: dt.datetime | None = None) -> ReserveSnapshot:
        club = await self._db.get(Club, club_id)
        if club is None:
            raise ClubNotFoundError(f"Club {club_id} not found")

        outstanding = await self._db.scalar(
            select(func.coalesce(func.sum(PointWallet.balance_pts), 0)).where(PointWallet.club_id == club_id)
        )
        held = await self._db.scalar(select(ClubReserve.reserve_cents).where(ClubReserve.club_id == club_id))

        week_start = week_start_for(now or dt.datetime.now(dt.timezone.utc))
        weekly = await self._db.scalar(
            select(WeeklyUpfrontStat)
            .where(WeeklyUpfrontStat.club_id == club_id, WeeklyUpfrontStat.week_start == week_start)
            .execution_options(populate_existing=True)
        )

        target = calculate_reserve_target(int(outstanding or 0), club.point_settle_cents)
        return ReserveSnapshot(
            club_id=club_id,
            outstanding_points=int(outstanding or 0),
            settle_cents_per_point=club.point_settle_cents,
            reserve_target_cents=target,
            reserve_held_cents=int(held or 0),
            coverage_ratio=calculate_coverage_ratio(target),
            current_week=WeeklyUpfrontSnapshot(
                week_start=week_start,
                gross_cents=weekly.gross_cents if weekly else 0,
                platform_fee_cents=weekly.platform_fee_cents if weekly else 0,
                reserve_delta_cents=weekly.reserve_delta_cents if weekly else 0,
                upfront_cents=weekly.upfront_cents if weekly else 0,
            ),
        )


__all__ = ["ReserveService", "ReserveSnapshot", "WeeklyUpfrontSnapshot", "week_start_for"]
