"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use str mixin for JSON serialization; columns store the `.value`.
"""

from __future__ import annotations

from enum import Enum


class ProfileRole(str, Enum):
    """Who a profile acts as in the marketplace."""

    ADOPTER = "adopter"
    SHELTER = "shelter"
    ADMIN = "admin"


class PetStatus(str, Enum):
    """Listing status of a pet."""

    AVAILABLE = "available"
    ADOPTED = "adopted"


class ApplicationStatus(str, Enum):
    """Adoption application lifecycle states."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    IGNORED = "ignored"  # soft-hide, no further transitions


# Statuses that carry a deletion_scheduled_at and a history entry
DECIDED_STATUSES: frozenset[ApplicationStatus] = frozenset({
    ApplicationStatus.APPROVED,
    ApplicationStatus.REJECTED,
})
