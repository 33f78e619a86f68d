"""Audit log subscriber — persists every SystemEvent to the audit_log table.

Registered as a global subscriber. Lifecycle events carry from_status and
to_status, so the table is also the trail of approve/reject toggles.

Never raises — failures are logged but never propagate to the event system.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from src.db.engine import async_session_factory
from src.models.audit import AuditLog
from src.schemas.events import SystemEvent

logger = logging.getLogger(__name__)


async def audit_on_event(event: SystemEvent) -> None:
    """Write a SystemEvent to the audit_log table."""
    try:
        async with async_session_factory() as db:
            db.add(AuditLog(
                event_type=event.event_type.value,
                application_id=event.application_id,
                actor_id=event.actor_id,
                actor_role=event.actor_role,
                data=event.data,
            ))
            await db.commit()
    except SQLAlchemyError:
        logger.exception(
            "Failed to persist audit event: %s (application=%s)",
            event.event_type.value,
            event.application_id,
        )
