"""Health check endpoint."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ackflow.adapters.persistence.database import get_session
from ackflow.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(session: AsyncSession = Depends(get_session)):
    """Database reachability plus the scheduler and notification setup."""
    database = "connected"
    try:
        await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError, RuntimeError) as e:
        logger.warning("Health check could not reach the database: %s", e)
        database = f"error: {e}"

    return {
        "service": "ackflow",
        "status": "ok" if database == "connected" else "degraded",
        "database": database,
        "scheduler_enabled": settings.scheduler_enabled,
        "notifications": "webhook" if settings.notification_webhook_url else "log",
    }
