"""Pet model — listing-level fields needed by the application lifecycle.

Everything else about a listing (photos, description, favorites) lives
outside this service.
"""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin
from src.models.enums import PetStatus


class Pet(TimestampMixin, Base):
    """A pet listed by a shelter."""

    __tablename__ = "pets"

    shelter_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    species: Mapped[str | None] = mapped_column(String(50))
    status: Mapped[str] = mapped_column(
        String(20), default=PetStatus.AVAILABLE.value, nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<Pet id={self.id} name={self.name} status={self.status}>"
