"""SystemEvent schema — the event type that flows through the whole service.

Every lifecycle transition, message, and purge emits a SystemEvent.
Subscribers (the audit logger, realtime bridges) consume them asynchronously.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """All event types emitted by the system."""

    # Application lifecycle
    APPLICATION_SUBMITTED = "application.submitted"
    APPLICATION_APPROVED = "application.approved"
    APPLICATION_REJECTED = "application.rejected"
    APPLICATION_IGNORED = "application.ignored"
    APPLICATION_WITHDRAWN = "application.withdrawn"

    # Pets
    PET_STATUS_CHANGED = "pet.status_changed"

    # Messaging
    MESSAGE_SENT = "message.sent"

    # Security
    STEP_UP_FAILED = "security.step_up_failed"
    CLEANUP_UNAUTHORIZED = "security.cleanup_unauthorized"

    # System
    SYSTEM_STARTUP = "system.startup"
    SYSTEM_SHUTDOWN = "system.shutdown"
    SYSTEM_ERROR = "system.error"
    SYSTEM_MAINTENANCE = "system.maintenance"


class SystemEvent(BaseModel):
    """Core event that flows through the service.

    Immutable once created. Consumed by:
    - audit_on_event → writes to audit_log table
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Context (optional, not every event has an application)
    application_id: uuid.UUID | None = None
    actor_id: str | None = None
    actor_role: str | None = None

    # Flexible payload
    data: dict[str, Any] = Field(default_factory=dict)

    # Metadata
    source_module: str | None = Field(default=None, description="Module that emitted this event")

    model_config = {"frozen": True}
