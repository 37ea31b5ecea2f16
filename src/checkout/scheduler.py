"""Periodic jobs for the worker process.

The expiry sweep runs as an APScheduler interval job on the worker's
event loop. ``sweep_once`` is synchronous, so the scheduler hands it to
its thread pool executor; a pass that raises is logged by APScheduler
and the next interval runs as usual.
"""

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from checkout.sweeper import ExpirySweeper

logger = structlog.get_logger(__name__)

EXPIRY_SWEEP_JOB_ID = "expiry-sweep"


def init_scheduler(sweeper: ExpirySweeper, interval_seconds=None) -> AsyncIOScheduler:
    """Build a scheduler with the expiry sweep registered. The caller starts it."""
    seconds = float(interval_seconds if interval_seconds is not None else sweeper.interval_seconds)

    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        sweeper.sweep_once,
        "interval",
        seconds=seconds,
        id=EXPIRY_SWEEP_JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    logger.info("Expiry sweep scheduled", interval_seconds=seconds)
    return scheduler
