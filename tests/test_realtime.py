"""Tests for src/realtime — Redis message channels and the event bus."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.realtime import events
from src.realtime.channels import MessageSubscription, channel_for, publish_message
from src.schemas.events import EventType, SystemEvent
from src.schemas.message import MessageRead

APP_ID = uuid.uuid4()


def _message(application_id=APP_ID, text="Hello"):
    return MessageRead(
        id=uuid.uuid4(),
        application_id=application_id,
        sender_id=uuid.uuid4(),
        message=text,
        created_at=datetime(2026, 3, 1, 10, 0, tzinfo=UTC),
    )


class FakePubSub:
    """Replays a fixed list of raw Redis messages, then reports silence."""

    def __init__(self, raw_messages):
        self._raw = list(raw_messages)
        self.subscribe = AsyncMock()
        self.unsubscribe = AsyncMock()
        self.aclose = AsyncMock()

    async def get_message(self, ignore_subscribe_messages=False, timeout=0.0):
        if self._raw:
            return self._raw.pop(0)
        return None


def _raw(message):
    return {"type": "message", "channel": channel_for(message.application_id), "data": message.model_dump_json()}


class TestPublish:
    @pytest.mark.asyncio
    async def test_publishes_to_application_channel(self):
        message = _message()
        with patch("src.realtime.channels.redis_client") as client:
            client.publish = AsyncMock(return_value=2)
            receivers = await publish_message(message)

        assert receivers == 2
        channel, payload = client.publish.await_args.args
        assert channel == f"messages:{APP_ID}"
        assert MessageRead.model_validate_json(payload) == message


class TestMessageSubscription:
    """Tests for MessageSubscription."""

    @pytest.mark.asyncio
    async def test_start_subscribes(self):
        pubsub = FakePubSub([])
        subscription = await MessageSubscription(APP_ID, pubsub).start()
        pubsub.subscribe.assert_awaited_once_with(f"messages:{APP_ID}")
        assert not subscription.closed

    @pytest.mark.asyncio
    async def test_yields_messages_in_order(self):
        first, second = _message(text="one"), _message(text="two")
        pubsub = FakePubSub([_raw(first), _raw(second)])
        subscription = MessageSubscription(APP_ID, pubsub)

        received = []
        async for message in subscription:
            received.append(message)
            if len(received) == 2:
                await subscription.aclose()

        assert [m.message for m in received] == ["one", "two"]

    @pytest.mark.asyncio
    async def test_skips_malformed_and_foreign_payloads(self):
        wanted = _message(text="mine")
        foreign = _message(application_id=uuid.uuid4(), text="theirs")
        pubsub = FakePubSub([
            {"type": "message", "data": "not json"},
            _raw(foreign),
            {"type": "subscribe", "data": 1},
            _raw(wanted),
        ])
        subscription = MessageSubscription(APP_ID, pubsub)

        received = []
        async for message in subscription:
            received.append(message)
            await subscription.aclose()

        assert [m.message for m in received] == ["mine"]

    @pytest.mark.asyncio
    async def test_aclose_is_idempotent(self):
        pubsub = FakePubSub([])
        subscription = MessageSubscription(APP_ID, pubsub)

        await subscription.aclose()
        await subscription.aclose()

        assert subscription.closed
        pubsub.unsubscribe.assert_awaited_once()
        pubsub.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_context_manager_closes(self):
        pubsub = FakePubSub([])
        async with MessageSubscription(APP_ID, pubsub) as subscription:
            assert not subscription.closed
        assert subscription.closed
        pubsub.unsubscribe.assert_awaited_once_with(f"messages:{APP_ID}")


@pytest.fixture
def clean_bus():
    """Isolate the module-level subscriber lists between tests."""
    with (
        patch.object(events, "_global_handlers", []),
        patch.object(events, "_typed_handlers", {}),
    ):
        yield


class TestEventBus:
    """Tests for src/realtime/events.py."""

    @staticmethod
    def _recorder():
        received = []

        async def handler(event):
            received.append(event.event_type)

        return handler, received

    @pytest.mark.asyncio
    async def test_dispatch_reaches_global_and_typed(self, clean_bus):
        everything, all_seen = self._recorder()
        approvals, approvals_seen = self._recorder()
        events.subscribe(everything)
        events.subscribe(approvals, [EventType.APPLICATION_APPROVED])

        await events.dispatch(SystemEvent(event_type=EventType.APPLICATION_APPROVED))
        await events.dispatch(SystemEvent(event_type=EventType.MESSAGE_SENT))

        assert all_seen == [EventType.APPLICATION_APPROVED, EventType.MESSAGE_SENT]
        assert approvals_seen == [EventType.APPLICATION_APPROVED]

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_others(self, clean_bus):
        async def broken(event):
            raise RuntimeError("boom")

        healthy, seen = self._recorder()
        events.subscribe(broken)
        events.subscribe(healthy)

        await events.dispatch(SystemEvent(event_type=EventType.SYSTEM_ERROR))

        assert seen == [EventType.SYSTEM_ERROR]

    @pytest.mark.asyncio
    async def test_unsubscribe(self, clean_bus):
        handler, seen = self._recorder()
        events.subscribe(handler)
        events.unsubscribe(handler)

        await events.dispatch(SystemEvent(event_type=EventType.SYSTEM_STARTUP))

        assert seen == []

    @pytest.mark.asyncio
    async def test_emit_delivers_through_worker(self, clean_bus):
        collector, seen = self._recorder()
        events.subscribe(collector)
        await events.start_event_system()
        try:
            await events.emit(SystemEvent(event_type=EventType.APPLICATION_SUBMITTED))
        finally:
            await events.stop_event_system()

        assert seen == [EventType.APPLICATION_SUBMITTED]


class TestAuditSubscriber:
    @pytest.mark.asyncio
    async def test_writes_row(self):
        from src.security.audit import audit_on_event

        db = AsyncMock()
        db.add = MagicMock()
        factory = MagicMock()
        factory.return_value.__aenter__ = AsyncMock(return_value=db)
        factory.return_value.__aexit__ = AsyncMock(return_value=False)

        event = SystemEvent(
            event_type=EventType.APPLICATION_REJECTED,
            application_id=APP_ID,
            actor_id="shelter-1",
            actor_role="shelter",
            data={"from_status": "approved", "to_status": "rejected"},
        )
        with patch("src.security.audit.async_session_factory", factory):
            await audit_on_event(event)

        row = db.add.call_args.args[0]
        assert row.event_type == "application.rejected"
        assert row.data["from_status"] == "approved"
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_database_error_swallowed(self):
        from sqlalchemy.exc import OperationalError

        from src.security.audit import audit_on_event

        factory = MagicMock()
        factory.return_value.__aenter__ = AsyncMock(
            side_effect=OperationalError("INSERT", {}, Exception("down"))
        )
        factory.return_value.__aexit__ = AsyncMock(return_value=False)

        with patch("src.security.audit.async_session_factory", factory):
            await audit_on_event(SystemEvent(event_type=EventType.SYSTEM_ERROR))
