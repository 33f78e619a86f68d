"""Messaging service — the adopter/shelter chat attached to an application.

Only the two parties of an application may read, send, or subscribe.
Messages are ordered by (created_at, id) and never edited.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.errors import AuthorizationError, NotFound, ValidationError, upstream_guard
from src.models.application import Application
from src.models.enums import ProfileRole
from src.models.message import Message
from src.models.profile import Profile
from src.realtime.channels import MessageSubscription, open_subscription, publish_message
from src.realtime.events import emit
from src.schemas.events import EventType, SystemEvent
from src.schemas.message import ChatContact, MessageRead

logger = logging.getLogger(__name__)


class MessagingService:
    """Chat channel operations, scoped to one application at a time."""

    async def list_messages(
        self,
        db: AsyncSession,
        application_id: uuid.UUID,
        *,
        user_id: uuid.UUID,
    ) -> list[Message]:
        """All messages of an application, oldest first."""
        await self._load_for_party(db, application_id, user_id)

        async with upstream_guard(None, "list messages"):
            result = await db.execute(
                select(Message)
                .where(Message.application_id == application_id)
                .order_by(Message.created_at.asc(), Message.id.asc())
            )
            return list(result.scalars().all())

    async def send(
        self,
        db: AsyncSession,
        application_id: uuid.UUID,
        *,
        sender_id: uuid.UUID,
        text: str,
    ) -> Message:
        """Store a message and push it to live subscribers.

        Raises:
            ValidationError: text is blank after trimming.
            AuthorizationError: sender is not a party to the application.
        """
        text = (text or "").strip()
        if not text:
            msg = "Message cannot be empty"
            raise ValidationError(msg)

        application = await self._load_for_party(db, application_id, sender_id)

        message = Message(
            id=uuid.uuid4(),
            application_id=application_id,
            sender_id=sender_id,
            message=text,
            created_at=datetime.now(UTC),
        )
        async with upstream_guard(db, "send message"):
            db.add(message)
            await db.commit()

        payload = MessageRead.model_validate(message)
        try:
            await publish_message(payload)
        except RedisError:
            # Stored copy is authoritative; subscribers catch up on next list
            logger.exception("Failed to publish message %s", message.id)

        await emit(SystemEvent(
            event_type=EventType.MESSAGE_SENT,
            application_id=application_id,
            actor_id=str(sender_id),
            actor_role=self._role_in(application, sender_id).value,
            data={"message_id": str(message.id), "length": len(text)},
            source_module="messaging.service",
        ))
        logger.info("Message sent: id=%s application=%s sender=%s", message.id, application_id, sender_id)
        return message

    async def subscribe(
        self,
        db: AsyncSession,
        application_id: uuid.UUID,
        *,
        user_id: uuid.UUID,
    ) -> MessageSubscription:
        """Open a live feed of new messages for a party of the application."""
        await self.ensure_party(db, application_id, user_id=user_id)
        async with upstream_guard(None, "subscribe to messages"):
            return await open_subscription(application_id)

    async def ensure_party(
        self,
        db: AsyncSession,
        application_id: uuid.UUID,
        *,
        user_id: uuid.UUID,
    ) -> None:
        """Raise unless `user_id` is the adopter or shelter of the application."""
        await self._load_for_party(db, application_id, user_id)

    async def list_contacts(
        self,
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        role: ProfileRole,
    ) -> list[ChatContact]:
        """Distinct counterparties across the user's applications.

        Shelters see adopters who applied to them; adopters see the shelters
        they applied to. Each contact carries one application id to chat on.
        """
        if role is ProfileRole.SHELTER:
            own_column, other_column = Application.shelter_id, Application.adopter_id
        elif role is ProfileRole.ADOPTER:
            own_column, other_column = Application.adopter_id, Application.shelter_id
        else:
            msg = "Chats are available to shelters and adopters only"
            raise ValidationError(msg)

        async with upstream_guard(None, "list chat contacts"):
            result = await db.execute(
                select(Application.id, Profile)
                .join(Profile, Profile.id == other_column)
                .where(own_column == user_id)
                .order_by(Application.created_at.desc())
            )
            rows = result.all()

        contacts: dict[uuid.UUID, ChatContact] = {}
        for application_id, profile in rows:
            if profile.id in contacts:
                continue
            name = profile.display_name if role is ProfileRole.ADOPTER else profile.full_name
            contacts[profile.id] = ChatContact(id=profile.id, name=name, application_id=application_id)
        return list(contacts.values())

    # ── Helpers ──────────────────────────────────────────────────────

    async def _load_for_party(
        self,
        db: AsyncSession,
        application_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Application:
        async with upstream_guard(None, "load application"):
            application = await db.get(Application, application_id)
        if application is None:
            msg = "Application not found"
            raise NotFound(msg)
        if user_id not in (application.adopter_id, application.shelter_id):
            logger.warning("Chat access denied: application=%s user=%s", application_id, user_id)
            msg = "Only the adopter and shelter on this application can use its chat"
            raise AuthorizationError(msg)
        return application

    @staticmethod
    def _role_in(application: Application, user_id: uuid.UUID) -> ProfileRole:
        return ProfileRole.ADOPTER if user_id == application.adopter_id else ProfileRole.SHELTER


messaging_service = MessagingService()
