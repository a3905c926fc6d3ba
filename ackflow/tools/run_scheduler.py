"""Run the reminder scheduler outside the API process.

Usage:
    python -m ackflow.tools.run_scheduler           # loop every SCHEDULER_INTERVAL_SECONDS
    python -m ackflow.tools.run_scheduler --once    # single tick, print the report
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal

from ackflow.adapters.persistence.database import engine
from ackflow.config import settings
from ackflow.infrastructure.scheduler_runner import run_periodically, run_tick

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


async def _run(once: bool, interval: float) -> None:
    try:
        if once:
            report = await run_tick()
            print(json.dumps(report.to_dict(), indent=2))
            return

        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)
        await run_periodically(interval, stop)
    finally:
        await engine.dispose()


def main():
    parser = argparse.ArgumentParser(description="Run the ackflow reminder scheduler")
    parser.add_argument("--once", action="store_true", help="Run a single tick and exit")
    parser.add_argument(
        "--interval", type=float, default=settings.scheduler_interval_seconds,
        help="Seconds between ticks (default: SCHEDULER_INTERVAL_SECONDS)",
    )
    args = parser.parse_args()
    asyncio.run(_run(args.once, args.interval))


if __name__ == "__main__":
    main()
