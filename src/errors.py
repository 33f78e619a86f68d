"""Error taxonomy for the adoption core.

Services raise these; the API layer maps them to HTTP responses through
`status_code` and `code`. Gateway failures (SQLAlchemy, Redis) never leave a
service raw: `upstream_guard` logs them, rolls back, and re-raises them as
UpstreamFailure.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class AdoptionError(Exception):
    """Base class for every user-facing failure."""

    status_code: int = 400
    code: str = "adoption_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AdoptionError):
    """A required field is missing or blank. Nothing was attempted."""

    status_code = 422
    code = "validation_error"


class AuthorizationError(AdoptionError):
    """Wrong party acting, or step-up re-authentication failed."""

    status_code = 403
    code = "authorization_error"


class InvalidState(AdoptionError):
    """The requested transition is not legal from the current state."""

    status_code = 409
    code = "invalid_state"


class DuplicateApplication(InvalidState):
    code = "duplicate_application"


class NotFound(AdoptionError):
    status_code = 404
    code = "not_found"


class UpstreamFailure(AdoptionError):
    """Database or Redis call failed. The caller may retry."""

    status_code = 503
    code = "upstream_failure"


class SchedulerAuthFailure(AdoptionError):
    """Cleanup endpoint called without the configured cron secret."""

    status_code = 401
    code = "unauthorized"


@contextlib.asynccontextmanager
async def upstream_guard(db: AsyncSession | None, operation: str) -> AsyncIterator[None]:
    """Convert gateway errors raised inside the block into UpstreamFailure.

    Rolls back `db` (when given) so the failed unit of work leaves no
    partial writes behind.
    """
    try:
        yield
    except (SQLAlchemyError, RedisError) as exc:
        logger.exception("Upstream failure during %s", operation)
        if db is not None:
            try:
                await db.rollback()
            except SQLAlchemyError:
                logger.exception("Rollback failed after %s", operation)
        msg = "Something went wrong talking to the database. Please try again."
        raise UpstreamFailure(msg) from exc
