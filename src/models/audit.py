"""AuditLog model — immutable audit trail for every system event.

Every lifecycle transition, message, and purge emits a SystemEvent which is
persisted here. Transition events record from_status/to_status, so the table
doubles as the history of approve/reject toggles. Append-only.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, CreatedAtMixin


class AuditLog(CreatedAtMixin, Base):
    """Immutable audit trail entry."""

    __tablename__ = "audit_log"

    # Event classification
    event_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # Context (nullable: not every event relates to an application or actor)
    application_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), index=True)
    actor_id: Mapped[str | None] = mapped_column(String(100), comment="Profile ID or 'system'")
    actor_role: Mapped[str | None] = mapped_column(String(50), comment="adopter, shelter, system")

    # Event data, flexible JSONB payload
    data: Mapped[dict[str, Any] | None] = mapped_column(JSONB)

    def __repr__(self) -> str:
        return f"<AuditLog event={self.event_type} application={self.application_id}>"
