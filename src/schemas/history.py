"""History ledger read model."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class HistoryEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    application_id: uuid.UUID
    pet_id: uuid.UUID
    adopter_id: uuid.UUID
    shelter_id: uuid.UUID
    pet_name: str
    adopter_name: str
    shelter_name: str
    status: str
    message: str
    applied_at: datetime
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    created_at: datetime | None = None
