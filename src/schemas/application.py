"""Request and response models for adoption applications."""

from __future__ import annotations

import math
import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field


def days_until(deadline: datetime | None, now: datetime | None = None) -> int | None:
    """Whole days left before `deadline`, rounded up and never negative.

    Returns None when nothing is scheduled.
    """
    if deadline is None:
        return None
    now = now or datetime.now(UTC)
    remaining = (deadline - now).total_seconds() / 86400
    return max(0, math.ceil(remaining))


class ApplicationCreate(BaseModel):
    """Adopter submits an application for a pet."""

    pet_id: uuid.UUID
    message: str = Field(max_length=5000, description="Note to the shelter; must not be blank")


class RejectRequest(BaseModel):
    """Shelter rejects an application.

    `password` is required only when revoking an approval.
    """

    reason: str = Field(max_length=2000)
    password: str | None = Field(default=None, description="Step-up re-authentication")


class ApplicationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    adopter_id: uuid.UUID
    shelter_id: uuid.UUID
    pet_id: uuid.UUID
    status: str
    message: str
    created_at: datetime | None = None
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    deletion_scheduled_at: datetime | None = None
    updated_at: datetime | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def days_until_deletion(self) -> int | None:
        return days_until(self.deletion_scheduled_at)


class PetStatusRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    status: str
