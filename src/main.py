"""FastAPI application entry point — wires everything together.

Usage:
    python -m src.main

Starts the HTTP API plus the in-process retention scheduler.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from src.api import applications, history, internal, messages, pets
from src.api.errors import register_exception_handlers
from src.config import settings
from src.db.engine import db_lifespan
from src.realtime.events import emit, start_event_system, stop_event_system, subscribe, unsubscribe
from src.retention.scheduler import create_retention_scheduler
from src.schemas.events import EventType, SystemEvent
from src.security.audit import audit_on_event

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)

# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    logger.info("Starting Shelterlink (env=%s)", settings.environment)

    # 1. Database + Redis
    async with db_lifespan():
        logger.info("Database initialized")

        # 2. Event system with the audit trail as a global subscriber
        subscribe(audit_on_event)
        await start_event_system()
        await emit(SystemEvent(
            event_type=EventType.SYSTEM_STARTUP,
            actor_id="system",
            actor_role="system",
            data={"environment": settings.environment},
            source_module="main",
        ))

        # 3. Retention job
        scheduler = None
        if settings.retention.scheduler_enabled:
            scheduler = create_retention_scheduler()
            scheduler.start()
            logger.info("Retention scheduler started")
        else:
            logger.warning("RETENTION_SCHEDULER_ENABLED is false, relying on external cron")

        try:
            yield
        finally:
            logger.info("Shutting down Shelterlink...")

            if scheduler is not None:
                scheduler.shutdown(wait=False)
                logger.info("Retention scheduler stopped")

            await emit(SystemEvent(
                event_type=EventType.SYSTEM_SHUTDOWN,
                actor_id="system",
                actor_role="system",
                source_module="main",
            ))
            await stop_event_system()
            unsubscribe(audit_on_event)

    logger.info("Shelterlink shutdown complete")


# ── FastAPI app ──────────────────────────────────────────────────────

app = FastAPI(
    title="Shelterlink API",
    description="Adoption applications, shelter/adopter chat, and decision history",
    version="0.1.0",
    lifespan=lifespan,
)

register_exception_handlers(app)
app.include_router(applications.router)
app.include_router(messages.router)
app.include_router(history.router)
app.include_router(pets.router)
app.include_router(internal.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "environment": settings.environment}


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
