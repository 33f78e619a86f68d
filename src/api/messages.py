"""Chat routes — message log, send, live stream, contact list."""
# ruff: noqa: B008

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import require_party
from src.db.engine import get_session
from src.messaging.service import messaging_service
from src.models.enums import ProfileRole
from src.models.profile import Profile
from src.realtime.channels import open_subscription
from src.schemas.message import ChatContact, MessageCreate, MessageRead

logger = logging.getLogger(__name__)

router = APIRouter(tags=["messages"])


@router.get("/applications/{application_id}/messages", response_model=list[MessageRead])
async def list_messages(
    application_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    profile: Profile = Depends(require_party),
) -> list[MessageRead]:
    messages = await messaging_service.list_messages(db, application_id, user_id=profile.id)
    return [MessageRead.model_validate(m) for m in messages]


@router.post(
    "/applications/{application_id}/messages",
    response_model=MessageRead,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    application_id: uuid.UUID,
    payload: MessageCreate,
    db: AsyncSession = Depends(get_session),
    profile: Profile = Depends(require_party),
) -> MessageRead:
    message = await messaging_service.send(
        db, application_id, sender_id=profile.id, text=payload.message
    )
    return MessageRead.model_validate(message)


async def _sse_frames(application_id: uuid.UUID) -> AsyncIterator[str]:
    """Render each new message as a Server-Sent Events frame.

    The Redis subscription is opened on first iteration and closed when the
    stream ends, so a client that disconnects early never holds a channel.
    """
    try:
        subscription = await open_subscription(application_id)
    except RedisError:
        logger.exception("Could not open message stream for %s", application_id)
        return

    async with subscription:
        async for message in subscription:
            yield f"event: message\ndata: {message.model_dump_json()}\n\n"


@router.get("/applications/{application_id}/messages/stream")
async def stream_messages(
    application_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    profile: Profile = Depends(require_party),
) -> StreamingResponse:
    """Live feed of messages sent after the stream opens (text/event-stream)."""
    await messaging_service.ensure_party(db, application_id, user_id=profile.id)
    return StreamingResponse(
        _sse_frames(application_id),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/chats", response_model=list[ChatContact])
async def list_chat_contacts(
    db: AsyncSession = Depends(get_session),
    profile: Profile = Depends(require_party),
) -> list[ChatContact]:
    return await messaging_service.list_contacts(
        db, user_id=profile.id, role=ProfileRole(profile.role)
    )
