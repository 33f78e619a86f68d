"""Internal routes for privileged, non-interactive callers.

POST /internal/cleanup-applications is hit by an external daily cron with
`Authorization: Bearer <CRON_SECRET>`.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Header
from fastapi.responses import JSONResponse

from src.errors import SchedulerAuthFailure
from src.realtime.events import emit
from src.retention.purge import run_retention_job
from src.schemas.events import EventType, SystemEvent
from src.security.auth import verify_cron_secret

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal", tags=["internal"], include_in_schema=False)


@router.post("/cleanup-applications")
async def cleanup_applications(
    authorization: str | None = Header(default=None),
) -> JSONResponse:
    """Purge applications past deletion_scheduled_at.

    200 {success, message, deletedCount} | 401 {error} | 500 {success, error}
    """
    try:
        verify_cron_secret(authorization)
    except SchedulerAuthFailure:
        logger.error("Unauthorized access attempt to cleanup endpoint")
        await emit(SystemEvent(
            event_type=EventType.CLEANUP_UNAUTHORIZED,
            actor_role="unknown",
            source_module="api.internal",
        ))
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    outcome = await run_retention_job()
    return JSONResponse(
        status_code=200 if outcome.success else 500,
        content=outcome.to_response(),
    )
