"""Chat message schemas, shared by the HTTP API and the Redis channel payload."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class MessageCreate(BaseModel):
    message: str = Field(max_length=5000)


class MessageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    application_id: uuid.UUID
    sender_id: uuid.UUID
    message: str
    created_at: datetime


class ChatContact(BaseModel):
    """A counterparty the caller can chat with, and one application to chat on."""

    id: uuid.UUID
    name: str
    application_id: uuid.UUID
