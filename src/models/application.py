"""Application model — one adoption request from one adopter for one pet.

Column names and nullability are shared with the history denormalization
step and must not drift. The decision columns (approved_at, rejected_at,
rejection_reason, deletion_scheduled_at) are derived from the lifecycle
state; see src/lifecycle/states.py.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin
from src.models.enums import ApplicationStatus


class Application(TimestampMixin, Base):
    """An adoption application and its decision state."""

    __tablename__ = "applications"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'ignored')",
            name="ck_applications_status",
        ),
        CheckConstraint(
            "approved_at IS NULL OR rejected_at IS NULL",
            name="ck_applications_single_decision",
        ),
        CheckConstraint(
            "rejection_reason IS NULL OR rejected_at IS NOT NULL",
            name="ck_applications_reason_requires_rejection",
        ),
        CheckConstraint(
            "(deletion_scheduled_at IS NOT NULL) = (status IN ('approved', 'rejected'))",
            name="ck_applications_deletion_schedule",
        ),
        Index(
            "uq_applications_pending_adopter_pet",
            "adopter_id",
            "pet_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
        ),
    )

    # Foreign keys (shelter_id duplicates the pet's owner for direct filtering)
    adopter_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False, index=True
    )
    shelter_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False, index=True
    )
    pet_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("pets.id"), nullable=False, index=True
    )

    status: Mapped[str] = mapped_column(
        String(20), default=ApplicationStatus.PENDING.value, nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False, comment="Adopter's note to the shelter")

    # Decision
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejection_reason: Mapped[str | None] = mapped_column(Text)

    # Retention
    deletion_scheduled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), index=True
    )

    def __repr__(self) -> str:
        return f"<Application id={self.id} pet={self.pet_id} status={self.status}>"
