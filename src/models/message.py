"""Message model — one chat line in an application's channel."""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Index, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, CreatedAtMixin


class Message(CreatedAtMixin, Base):
    """A message between the adopter and shelter of one application.

    Never updated. Removed by the database when the parent application is
    withdrawn or purged.
    """

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_application_created", "application_id", "created_at"),
    )

    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        preview = self.message[:50] if self.message else ""
        return f"<Message id={self.id} sender={self.sender_id} preview='{preview}...'>"
