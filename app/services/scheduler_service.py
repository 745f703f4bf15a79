"""
APScheduler service for periodic background work.

The execution index is refreshed on a fixed interval in addition to the
on-demand syncs triggered by requests. Both paths share one SyncState, so
the cooldown and single-flight guard apply across them.
"""

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.settings import settings

structured_logger = structlog.stdlib.get_logger(__name__)

EXECUTION_SYNC_JOB_ID = "execution_sync"


async def run_execution_sync() -> None:
    """
    Scheduled entry point for the execution sync.

    Credentials are resolved lazily so a missing configuration only disables
    this job instead of breaking scheduler start-up.
    """
    from app.exceptions import ConfigurationError
    from app.factories import execution_sync_engine_factory

    try:
        engine = execution_sync_engine_factory()
    except ConfigurationError as exc:
        structured_logger.warning(
            "Execution sync not configured, skipping scheduled run",
            error=str(exc),
        )
        return

    await engine.sync()


def get_scheduler() -> AsyncIOScheduler:
    """
    Create and configure an AsyncIOScheduler.

    The scheduler is configured with:
    - In-memory job store (the only job is re-registered on every start)
    - Runs in the asyncio event loop (native async support)
    - UTC timezone for all scheduled jobs

    Returns:
        AsyncIOScheduler: Configured scheduler instance
    """
    job_defaults = {
        "coalesce": True,  # Combine multiple missed executions into one
        "max_instances": 1,  # Only one instance of each job can run at a time
        "misfire_grace_time": 30,  # Jobs can start up to 30 seconds late
    }

    scheduler = AsyncIOScheduler(
        job_defaults=job_defaults,
        timezone="UTC",
    )

    scheduler.add_job(
        run_execution_sync,
        trigger=IntervalTrigger(seconds=settings.EXECUTION_SYNC_INTERVAL_SECONDS),
        id=EXECUTION_SYNC_JOB_ID,
        replace_existing=True,
    )

    structured_logger.info(
        "AsyncIOScheduler configured",
        job_id=EXECUTION_SYNC_JOB_ID,
        interval_seconds=settings.EXECUTION_SYNC_INTERVAL_SECONDS,
        timezone="UTC",
    )

    return scheduler
