"""Release presale holds whose confirmation window has lapsed."""

from __future__ import annotations

import datetime as dt
from typing import Any, Awaitable, Callable, Dict

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from superfan_api.services.points import RedemptionService

SessionFactory = Callable[[], AsyncSession] | Callable[[], Awaitable[AsyncSession]]


async def release_expired_redemption_holds(
    *,
    session_factory: SessionFactory,
    now: dt.datetime | None = None,
    limit: int = 100,
) -> Dict[str, Any]:
    """Refund expired HELD redemptions and return a sweep summary."""

    maybe_session = session_factory()
    session: AsyncSession
    if isinstance(maybe_session, AsyncSession):
        session = maybe_session
    else:
        session = await maybe_session

    reference = now or dt.datetime.now(dt.timezone.utc)
    async with session as managed_session:
        released = await RedemptionService(managed_session).release_expired_holds(reference, limit=limit)

    summary = {
        "released": len(released),
        "redemption_ids": [str(redemption_id) for redemption_id in released],
        "reference_time": reference.isoformat(),
    }
    logger.bind(summary=summary).info("Redemption hold sweep completed")
    return summary


__all__ = ["SessionFactory", "release_expired_redemption_holds"]
