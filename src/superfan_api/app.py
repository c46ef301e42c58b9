from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from superfan_api import __version__
from superfan_api.core.settings import settings
from superfan_api.db.session import async_session
from .api.routes import api_router
from .api.v1.endpoints import health
from .core.logging import configure_logging
from .observability.tracing import configure_tracing
from .workers import RedemptionHoldReleaseWorker


APP_VERSION = __version__
SERVICE_NAME = "superfan-api"


def _session_factory():
    return async_session()


@asynccontextmanager
async def lifespan(app: FastAPI):
    hold_worker = RedemptionHoldReleaseWorker(
        session_factory=_session_factory,
        interval_seconds=settings.hold_release_interval_seconds,
        batch_size=settings.hold_release_batch_size,
    )
    app.state.hold_release_worker = hold_worker

    hold_worker_enabled = settings.hold_release_worker_enabled
    if hold_worker_enabled:
        hold_worker.start()
    else:
        logger.info(
            "Redemption hold release worker disabled",
            reason="hold_release_worker_enabled is false",
        )

    try:
        yield
    finally:
        if hold_worker_enabled and hold_worker.is_running:
            await hold_worker.stop()


def create_app() -> FastAPI:
    """Application factory for the superfan points API."""
    configure_logging(
        service_name=SERVICE_NAME,
        environment=settings.environment,
        version=APP_VERSION,
    )

    app = FastAPI(
        title="Superfan Points API",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    configure_tracing(
        app,
        service_name=SERVICE_NAME,
        service_version=APP_VERSION,
        environment=settings.environment,
    )

    app.include_router(api_router)
    # Probes are also served unprefixed for orchestrators.
    app.include_router(health.router, tags=["Health"], include_in_schema=False)

    return app
