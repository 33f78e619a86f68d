"""In-process event bus for SystemEvents.

Services call `emit()` after a unit of work commits; subscribers registered at
startup (the audit logger) receive the events from a background worker, so a
slow subscriber never holds up a request.

Usage:
    from src.realtime.events import emit

    await emit(SystemEvent(
        event_type=EventType.APPLICATION_APPROVED,
        application_id=application.id,
        data={"from_status": "pending", "to_status": "approved"},
    ))

    # At startup:
    from src.realtime.events import subscribe

    subscribe(audit_on_event)  # async def audit_on_event(event: SystemEvent) -> None
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from src.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[SystemEvent], Coroutine[Any, Any, None]]

# ── Internal state ───────────────────────────────────────────────────

_global_handlers: list[EventHandler] = []
_typed_handlers: dict[EventType, list[EventHandler]] = {}
_queue: asyncio.Queue[SystemEvent] | None = None
_worker_task: asyncio.Task[None] | None = None


# ── Public API ───────────────────────────────────────────────────────


def subscribe(handler: EventHandler, event_types: list[EventType] | None = None) -> None:
    """Register a handler for every event, or only for `event_types`."""
    if event_types is None:
        _global_handlers.append(handler)
        logger.info("Registered global event subscriber: %s", handler.__name__)
        return

    for event_type in event_types:
        _typed_handlers.setdefault(event_type, []).append(handler)
    logger.info(
        "Registered event subscriber %s for types: %s",
        handler.__name__,
        [t.value for t in event_types],
    )


def unsubscribe(handler: EventHandler) -> None:
    """Remove a handler from every registration. Unknown handlers are ignored."""
    if handler in _global_handlers:
        _global_handlers.remove(handler)
    for handlers in _typed_handlers.values():
        if handler in handlers:
            handlers.remove(handler)


async def emit(event: SystemEvent) -> None:
    """Queue an event for delivery to subscribers."""
    global _queue
    if _queue is None:
        _queue = asyncio.Queue()
        _ensure_worker()

    await _queue.put(event)
    logger.debug("Event emitted: %s (application=%s)", event.event_type.value, event.application_id)


# ── Background worker ────────────────────────────────────────────────


def _ensure_worker() -> None:
    global _worker_task
    if _worker_task is None or _worker_task.done():
        _worker_task = asyncio.create_task(_drain())
        logger.info("Event worker started")


async def _drain() -> None:
    """Deliver queued events until cancelled."""
    if _queue is None:
        return

    while True:
        try:
            event = await _queue.get()
        except asyncio.CancelledError:
            logger.info("Event worker shutting down")
            break
        try:
            await dispatch(event)
        except Exception:
            logger.exception("Error dispatching %s", event.event_type.value)
        finally:
            _queue.task_done()


async def dispatch(event: SystemEvent) -> None:
    """Deliver one event to all matching handlers concurrently.

    A failing handler is logged and does not affect the others.
    """
    handlers = list(_global_handlers) + list(_typed_handlers.get(event.event_type, []))
    if not handlers:
        return

    results = await asyncio.gather(
        *[handler(event) for handler in handlers],
        return_exceptions=True,
    )
    for handler, result in zip(handlers, results):
        if isinstance(result, Exception):
            logger.error(
                "Handler %s failed for %s: %s",
                handler.__name__,
                event.event_type.value,
                result,
            )


# ── Lifecycle ────────────────────────────────────────────────────────


async def start_event_system() -> None:
    """Create the queue and worker. Call during FastAPI lifespan startup."""
    global _queue
    _queue = asyncio.Queue()
    _ensure_worker()
    logger.info(
        "Event system started with %d global + %d typed subscribers",
        len(_global_handlers),
        sum(len(v) for v in _typed_handlers.values()),
    )


async def stop_event_system() -> None:
    """Flush pending events and stop the worker. Call during lifespan shutdown."""
    global _worker_task, _queue

    if _queue is not None:
        await _queue.join()

    if _worker_task is not None and not _worker_task.done():
        _worker_task.cancel()
        try:
            await _worker_task
        except asyncio.CancelledError:
            pass

    _worker_task = None
    _queue = None
    logger.info("Event system stopped")
