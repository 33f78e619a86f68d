"""In-process schedule for the retention job.

Runs `run_retention_job` on a fixed interval with APScheduler's asyncio
scheduler. Disable with RETENTION_SCHEDULER_ENABLED=false when an external
cron calls POST /internal/cleanup-applications instead.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.config import settings
from src.retention.purge import run_retention_job

logger = logging.getLogger(__name__)

PURGE_JOB_ID = "purge_expired_applications"


def create_retention_scheduler(interval_hours: int | None = None) -> AsyncIOScheduler:
    """Build (but do not start) a scheduler carrying the purge job."""
    hours = interval_hours or settings.retention.purge_interval_hours
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        run_retention_job,
        trigger=IntervalTrigger(hours=hours),
        id=PURGE_JOB_ID,
        name="Purge expired adoption applications",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info("Retention job scheduled every %d hours", hours)
    return scheduler
