"""Background loop that runs a reminder scheduler tick every interval."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from ackflow.adapters.persistence.database import async_session_factory
from ackflow.application.use_cases.reminder_scheduler import TickReport
from ackflow.infrastructure.api.dependencies import build_scheduler

logger = logging.getLogger(__name__)

TickFn = Callable[[], Awaitable[TickReport]]


async def run_tick() -> TickReport:
    """One tick in its own session."""
    async with async_session_factory() as session:
        return await build_scheduler(session).tick()


async def run_periodically(
    interval_seconds: float,
    stop: asyncio.Event,
    tick: TickFn = run_tick,
) -> None:
    """Tick until ``stop`` is set. A failed tick is logged and retried next interval."""
    logger.info("Reminder scheduler started (interval=%ss)", interval_seconds)
    while not stop.is_set():
        try:
            await tick()
        except Exception:
            logger.exception("Reminder scheduler tick failed")
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            pass
    logger.info("Reminder scheduler stopped")
