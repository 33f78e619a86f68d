"""Shared FastAPI dependencies for the public routers."""
# ruff: noqa: B008

from __future__ import annotations

from collections.abc import Awaitable, Callable

from fastapi import Depends

from src.errors import AuthorizationError
from src.models.enums import ProfileRole
from src.models.profile import Profile
from src.security.auth import get_current_profile


def require_role(*roles: ProfileRole) -> Callable[..., Awaitable[Profile]]:
    """Dependency factory — the caller must hold one of `roles`."""
    allowed = {role.value for role in roles}

    async def _dependency(profile: Profile = Depends(get_current_profile)) -> Profile:
        if profile.role not in allowed:
            msg = f"This action is available to {', '.join(sorted(allowed))} accounts only"
            raise AuthorizationError(msg)
        return profile

    return _dependency


require_adopter = require_role(ProfileRole.ADOPTER)
require_shelter = require_role(ProfileRole.SHELTER)
require_party = require_role(ProfileRole.ADOPTER, ProfileRole.SHELTER)
