"""ApplicationHistory model — denormalized ledger of decided applications.

Names are copied at write time so the row outlives the application, pet,
and profile rows it was built from. application_id is deliberately not a
foreign key.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin


class ApplicationHistory(TimestampMixin, Base):
    """Outcome of one application, one row per application id."""

    __tablename__ = "application_history"

    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, unique=True
    )
    pet_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    adopter_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    shelter_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)

    # Denormalized names
    pet_name: Mapped[str] = mapped_column(String(100), nullable=False)
    adopter_name: Mapped[str] = mapped_column(String(200), nullable=False)
    shelter_name: Mapped[str] = mapped_column(String(200), nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    applied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejection_reason: Mapped[str | None] = mapped_column(Text)

    def __repr__(self) -> str:
        return f"<ApplicationHistory application={self.application_id} status={self.status}>"
