"""SQLAlchemy ORM models for Shelterlink.

Import all models here so Alembic and Base.metadata.create_all() discover them.
"""

from __future__ import annotations

from src.models.application import Application
from src.models.audit import AuditLog
from src.models.base import Base
from src.models.enums import ApplicationStatus, PetStatus, ProfileRole
from src.models.history import ApplicationHistory
from src.models.message import Message
from src.models.pet import Pet
from src.models.profile import Profile

__all__ = [
    # Base
    "Base",
    # Models
    "Profile",
    "Pet",
    "Application",
    "Message",
    "ApplicationHistory",
    "AuditLog",
    # Enums
    "ApplicationStatus",
    "PetStatus",
    "ProfileRole",
]
