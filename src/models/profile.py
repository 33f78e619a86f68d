"""Profile model — an adopter, shelter, or admin account."""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin
from src.models.enums import ProfileRole


class Profile(TimestampMixin, Base):
    """A marketplace participant. Shelters own pets; adopters submit applications."""

    __tablename__ = "profiles"

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default=ProfileRole.ADOPTER.value, nullable=False)
    shelter_name: Mapped[str | None] = mapped_column(String(200))

    # bcrypt hash, used for sign-in and step-up re-authentication
    password_hash: Mapped[str] = mapped_column(String(100), nullable=False)

    @property
    def display_name(self) -> str:
        """Shelter name for shelters that set one, otherwise the person's name."""
        return self.shelter_name or self.full_name

    def __repr__(self) -> str:
        return f"<Profile id={self.id} role={self.role}>"
