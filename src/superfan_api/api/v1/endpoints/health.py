from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Literal

from fastapi import APIRouter, Depends, Request
from loguru import logger
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from superfan_api.core.settings import settings
from superfan_api.db.session import get_session


router = APIRouter()


class ComponentStatus(BaseModel):
    status: Literal["ready", "starting", "disabled", "error"]
    detail: str | None = Field(default=None, description="Human readable status detail")
    last_error_at: str | None = Field(default=None, description="ISO timestamp of most recent error")
    last_success_at: str | None = Field(default=None, description="ISO timestamp of most recent success")


class ReadinessPayload(BaseModel):
    status: Literal["ready", "degraded", "error"]
    components: Dict[str, ComponentStatus]


@router.get("/healthz", summary="Service health check")
async def service_health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz", summary="Service readiness", response_model=ReadinessPayload)
async def service_readiness(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> ReadinessPayload:
    components: Dict[str, ComponentStatus] = {}
    overall: Literal["ready", "degraded", "error"] = "ready"

    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.exception("Database readiness probe failed", error=str(exc))
        components["database"] = ComponentStatus(
            status="error",
            detail="Database unreachable",
            last_error_at=datetime.now(timezone.utc).isoformat(),
        )
        overall = "error"
    else:
        components["database"] = ComponentStatus(status="ready")

    worker = getattr(request.app.state, "hold_release_worker", None)
    if settings.hold_release_worker_enabled and worker is not None:
        metrics = worker.metrics
        if metrics.last_error:
            components["hold_release_worker"] = ComponentStatus(
                status="error",
                detail=metrics.last_error,
                last_error_at=metrics.last_error_at.isoformat() if metrics.last_error_at else None,
                last_success_at=metrics.last_success_at.isoformat() if metrics.last_success_at else None,
            )
            overall = "error"
        elif not worker.is_running:
            components["hold_release_worker"] = ComponentStatus(
                status="starting",
                detail="Hold release worker not running",
            )
            if overall != "error":
                overall = "degraded"
        else:
            components["hold_release_worker"] = ComponentStatus(
                status="ready",
                last_success_at=metrics.last_success_at.isoformat() if metrics.last_success_at else None,
            )
    else:
        components["hold_release_worker"] = ComponentStatus(
            status="disabled",
            detail="Hold release worker disabled via settings",
        )

    return ReadinessPayload(status=overall, components=components)
