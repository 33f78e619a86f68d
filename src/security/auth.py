"""Caller identity, step-up re-authentication, and cron-secret checks.

Profiles sign in with HTTP Basic (email + password) checked against a bcrypt
hash. The same hash backs step-up re-authentication before a shelter revokes
an approval. The cleanup endpoint uses a shared Bearer secret compared in
constant time.
"""
# ruff: noqa: B008

from __future__ import annotations

import logging
import secrets
import uuid

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.db.engine import get_session
from src.errors import AuthorizationError, NotFound, SchedulerAuthFailure, upstream_guard
from src.models.profile import Profile

logger = logging.getLogger(__name__)

security = HTTPBasic()


# ── Password hashing ─────────────────────────────────────────────────


def hash_password(password: str) -> str:
    """Hash a password with bcrypt using the configured work factor."""
    salt = bcrypt.gensalt(rounds=settings.security.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a password against a bcrypt hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


# ── Request identity ─────────────────────────────────────────────────


async def get_current_profile(
    credentials: HTTPBasicCredentials = Depends(security),
    db: AsyncSession = Depends(get_session),
) -> Profile:
    """FastAPI dependency — resolve HTTP Basic credentials to a Profile.

    Raises 401 on unknown email or wrong password.
    """
    async with upstream_guard(None, "sign-in"):
        result = await db.execute(
            select(Profile).where(Profile.email == credentials.username.strip().lower())
        )
        profile = result.scalar_one_or_none()

    if profile is None or not verify_password(credentials.password, profile.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return profile


async def reauthenticate(db: AsyncSession, profile_id: uuid.UUID, password: str | None) -> None:
    """Re-verify the acting profile's password before a sensitive action.

    Raises AuthorizationError when the password is missing or wrong.
    """
    if not password:
        msg = "Please confirm your password to revoke an approval"
        raise AuthorizationError(msg)

    async with upstream_guard(None, "re-authentication"):
        profile = await db.get(Profile, profile_id)
    if profile is None:
        msg = "Profile not found"
        raise NotFound(msg)

    if not verify_password(password, profile.password_hash):
        logger.warning("Step-up re-authentication failed for profile %s", profile_id)
        msg = "Incorrect password"
        raise AuthorizationError(msg)


# ── Cron secret ──────────────────────────────────────────────────────


def verify_cron_secret(authorization: str | None) -> None:
    """Check an `Authorization: Bearer <secret>` header against CRON_SECRET.

    An unset secret rejects every call.
    """
    expected = settings.security.cron_secret
    scheme, _, token = (authorization or "").partition(" ")
    if not expected or scheme.lower() != "bearer" or not token:
        raise SchedulerAuthFailure("Unauthorized")

    if not secrets.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        raise SchedulerAuthFailure("Unauthorized")
