"""In-process worker that periodically releases expired redemption holds."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict

from loguru import logger

from superfan_api.core.settings import settings
from superfan_api.jobs.redemption_holds import SessionFactory, release_expired_redemption_holds


@dataclass
class HoldReleaseMetrics:
    runs: int = 0
    released_total: int = 0
    last_success_at: datetime | None = None
    last_error: str | None = None
    last_error_at: datetime | None = None


class RedemptionHoldReleaseWorker:
    """Sweep expired HELD redemptions back to REFUNDED on an interval."""

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        interval_seconds: int | None = None,
        batch_size: int | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.interval_seconds = interval_seconds or settings.hold_release_interval_seconds
        self.batch_size = batch_size or settings.hold_release_batch_size
        self.metrics = HoldReleaseMetrics()
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None
        self.is_running: bool = False

    def start(self) -> None:
        if self._task and not self._task.done():
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop())
        self.is_running = True
        logger.info(
            "Redemption hold release worker started",
            interval_seconds=self.interval_seconds,
            batch_size=self.batch_size,
        )

    async def stop(self) -> None:
        if not self._task:
            return
        self._stop_event.set()
        await self._task
        self._task = None
        self.is_running = False
        logger.info("Redemption hold release worker stopped")

    async def run_once(self) -> Dict[str, Any]:
        self.metrics.runs += 1
        try:
            summary = await release_expired_redemption_holds(
                session_factory=self._session_factory,
                limit=self.batch_size,
            )
        except Exception as exc:
            self.metrics.last_error = str(exc)
            self.metrics.last_error_at = datetime.now(timezone.utc)
            raise

        self.metrics.released_total += summary["released"]
        self.metrics.last_success_at = datetime.now(timezone.utc)
        self.metrics.last_error = None
        return summary

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.run_once()
            except Exception as exc:  # pragma: no cover
                logger.exception("Redemption hold release iteration failed", error=str(exc))
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue


__all__ = ["HoldReleaseMetrics", "RedemptionHoldReleaseWorker"]
