"""Application retention — purge decided applications past their deletion date.

Approve and reject stamp `deletion_scheduled_at = decision time + retention
window`. This job deletes every application whose stamp has passed; their
messages go with them (ON DELETE CASCADE). The history ledger is untouched.

Runs from the in-process scheduler (src/retention/scheduler.py) and from the
internal cleanup endpoint called by an external cron. Idempotent: a run with
no candidates deletes nothing and reports 0.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.engine import async_session_factory
from src.models.application import Application
from src.realtime.events import emit
from src.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)


@dataclass
class PurgeResult:
    """Outcome of one retention run, shaped for the cleanup endpoint."""

    success: bool = False
    deleted_count: int = 0
    error: str | None = None

    @property
    def message(self) -> str:
        if self.deleted_count == 0:
            return "No applications to delete"
        return f"Deleted {self.deleted_count} applications"

    def to_response(self) -> dict[str, object]:
        if not self.success:
            return {"success": False, "error": self.error or "Unknown error occurred"}
        return {"success": True, "message": self.message, "deletedCount": self.deleted_count}


async def purge_expired_applications(db: AsyncSession, now: datetime | None = None) -> int:
    """Delete applications whose deletion_scheduled_at is at or before `now`.

    The delete re-checks the deadline, so an application re-decided between
    the read and the delete (which moves its deadline forward) survives.
    Does not commit.
    """
    now = now or datetime.now(UTC)

    result = await db.execute(
        select(Application.id).where(
            Application.deletion_scheduled_at.isnot(None),
            Application.deletion_scheduled_at <= now,
        )
    )
    candidate_ids = [row[0] for row in result.all()]
    logger.info("Found %d applications to delete", len(candidate_ids))

    if not candidate_ids:
        return 0

    del_result = await db.execute(
        delete(Application).where(
            Application.id.in_(candidate_ids),
            Application.deletion_scheduled_at <= now,
        )
    )
    count = del_result.rowcount  # type: ignore[attr-defined]
    if count < len(candidate_ids):
        logger.warning(
            "Skipped %d applications re-scheduled during purge",
            len(candidate_ids) - count,
        )
    logger.info("Deleted %d expired applications (cutoff=%s)", count, now.isoformat())
    return count


async def run_retention_job(now: datetime | None = None) -> PurgeResult:
    """Open a session, purge, commit, and report.

    Never raises: failures are logged and returned as an unsuccessful result.
    """
    outcome = PurgeResult()
    logger.info("Starting application cleanup job")

    try:
        async with async_session_factory() as db:
            outcome.deleted_count = await purge_expired_applications(db, now)
            await db.commit()
    except Exception as exc:
        logger.exception("Application cleanup job failed")
        outcome.error = str(exc) or exc.__class__.__name__
        await emit(SystemEvent(
            event_type=EventType.SYSTEM_ERROR,
            actor_id="system",
            actor_role="system",
            data={"action": "application_cleanup", "error": outcome.error},
            source_module="retention.purge",
        ))
        return outcome

    outcome.success = True
    await emit(SystemEvent(
        event_type=EventType.SYSTEM_MAINTENANCE,
        actor_id="system",
        actor_role="system",
        data={"action": "application_cleanup", "deleted_count": outcome.deleted_count},
        source_module="retention.purge",
    ))
    logger.info("Cleanup job complete: %s", outcome.message)
    return outcome
