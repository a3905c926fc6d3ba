"""ackflow — FastAPI application factory."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ackflow.adapters.persistence.database import engine
from ackflow.config import settings
from ackflow.infrastructure.api.errors import install_error_handlers
from ackflow.infrastructure.api.routes_assignments import router as assignments_router
from ackflow.infrastructure.api.routes_audit import router as audit_router
from ackflow.infrastructure.api.routes_compliance import router as compliance_router
from ackflow.infrastructure.api.routes_health import router as health_router
from ackflow.infrastructure.api.routes_reminders import router as reminders_router
from ackflow.infrastructure.scheduler_runner import run_periodically

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    try:
        async with engine.begin():
            pass  # Connection pool warmed up
        logger.info("Database connection established")
    except Exception as e:
        logger.warning("Database not available on startup: %s", e)

    stop = asyncio.Event()
    scheduler_task = None
    if settings.scheduler_enabled:
        scheduler_task = asyncio.create_task(
            run_periodically(settings.scheduler_interval_seconds, stop)
        )
    yield
    if scheduler_task is not None:
        stop.set()
        await scheduler_task
    await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="ackflow — SOP acknowledgment tracking",
        description="Assignment lifecycle, reminders, escalation and compliance reporting",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)

    app.include_router(health_router, prefix="/api")
    app.include_router(assignments_router, prefix="/api")
    app.include_router(compliance_router, prefix="/api")
    app.include_router(reminders_router, prefix="/api")
    app.include_router(audit_router, prefix="/api")

    return app


app = create_app()
