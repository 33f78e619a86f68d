"""Per-application message channels over Redis pub/sub.

Each application has one channel, `messages:<application_id>`. Sending a chat
message publishes it there after the database commit; open chat views hold a
MessageSubscription and receive each new message as it arrives.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator
from types import TracebackType

from redis.asyncio.client import PubSub

from src.db.engine import redis_client
from src.schemas.message import MessageRead

logger = logging.getLogger(__name__)

# How long a single poll waits before checking for cancellation
_POLL_TIMEOUT_SECONDS = 1.0


def channel_for(application_id: uuid.UUID) -> str:
    return f"messages:{application_id}"


async def publish_message(message: MessageRead) -> int:
    """Publish a stored message to its application's channel.

    Returns the number of subscribers that received it.
    """
    receivers = await redis_client.publish(
        channel_for(message.application_id),
        message.model_dump_json(),
    )
    logger.debug("Published message %s to %d subscribers", message.id, receivers)
    return receivers


class MessageSubscription:
    """Live feed of new messages for one application.

    Iterate with `async for`; stop with `aclose()` (safe to call more than
    once) or by leaving the `async with` block.
    """

    def __init__(self, application_id: uuid.UUID, pubsub: PubSub) -> None:
        self.application_id = application_id
        self.channel = channel_for(application_id)
        self._pubsub = pubsub
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> MessageSubscription:
        await self._pubsub.subscribe(self.channel)
        logger.info("Subscribed to %s", self.channel)
        return self

    def __aiter__(self) -> AsyncIterator[MessageRead]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[MessageRead]:
        while not self._closed:
            raw = await self._pubsub.get_message(
                ignore_subscribe_messages=True,
                timeout=_POLL_TIMEOUT_SECONDS,
            )
            if raw is None or raw.get("type") != "message":
                # get_message returns immediately when the connection has nothing buffered
                await asyncio.sleep(0)
                continue
            try:
                message = MessageRead.model_validate_json(raw["data"])
            except ValueError:
                logger.warning("Dropping malformed payload on %s", self.channel)
                continue
            if message.application_id != self.application_id:
                continue
            yield message

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._pubsub.unsubscribe(self.channel)
        finally:
            await self._pubsub.aclose()
        logger.info("Unsubscribed from %s", self.channel)

    async def __aenter__(self) -> MessageSubscription:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


async def open_subscription(application_id: uuid.UUID) -> MessageSubscription:
    """Subscribe to an application's channel."""
    subscription = MessageSubscription(application_id, redis_client.pubsub())
    return await subscription.start()
