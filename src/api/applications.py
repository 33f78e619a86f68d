"""Application routes — submit, list, decide, withdraw.

Adopters submit and withdraw; shelters approve, reject, and ignore. Both
parties can read an application they are on.
"""
# ruff: noqa: B008

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import require_adopter, require_party, require_shelter
from src.db.engine import get_session
from src.lifecycle.service import application_lifecycle
from src.models.enums import ApplicationStatus, ProfileRole
from src.models.profile import Profile
from src.schemas.application import ApplicationCreate, ApplicationRead, RejectRequest

router = APIRouter(prefix="/applications", tags=["applications"])


@router.post("", response_model=ApplicationRead, status_code=status.HTTP_201_CREATED)
async def submit_application(
    payload: ApplicationCreate,
    db: AsyncSession = Depends(get_session),
    adopter: Profile = Depends(require_adopter),
) -> ApplicationRead:
    application = await application_lifecycle.submit(
        db, adopter_id=adopter.id, pet_id=payload.pet_id, message=payload.message
    )
    return ApplicationRead.model_validate(application)


@router.get("", response_model=list[ApplicationRead])
async def list_applications(
    status_filter: ApplicationStatus | None = Query(None, alias="status"),
    db: AsyncSession = Depends(get_session),
    profile: Profile = Depends(require_party),
) -> list[ApplicationRead]:
    """Applications received (shelter) or sent (adopter), newest first."""
    applications = await application_lifecycle.list_applications(
        db,
        viewer_id=profile.id,
        viewer_role=ProfileRole(profile.role),
        status=status_filter,
    )
    return [ApplicationRead.model_validate(a) for a in applications]


@router.get("/{application_id}", response_model=ApplicationRead)
async def get_application(
    application_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    profile: Profile = Depends(require_party),
) -> ApplicationRead:
    application = await application_lifecycle.get_application(
        db, application_id, viewer_id=profile.id
    )
    return ApplicationRead.model_validate(application)


@router.post("/{application_id}/approve", response_model=ApplicationRead)
async def approve_application(
    application_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    shelter: Profile = Depends(require_shelter),
) -> ApplicationRead:
    application = await application_lifecycle.approve(db, application_id, actor_id=shelter.id)
    return ApplicationRead.model_validate(application)


@router.post("/{application_id}/reject", response_model=ApplicationRead)
async def reject_application(
    application_id: uuid.UUID,
    payload: RejectRequest,
    db: AsyncSession = Depends(get_session),
    shelter: Profile = Depends(require_shelter),
) -> ApplicationRead:
    """Reject with a reason. Revoking an approval also needs `password`."""
    application = await application_lifecycle.reject(
        db,
        application_id,
        actor_id=shelter.id,
        reason=payload.reason,
        password=payload.password,
    )
    return ApplicationRead.model_validate(application)


@router.post("/{application_id}/ignore", response_model=ApplicationRead)
async def ignore_application(
    application_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    shelter: Profile = Depends(require_shelter),
) -> ApplicationRead:
    application = await application_lifecycle.ignore(db, application_id, actor_id=shelter.id)
    return ApplicationRead.model_validate(application)


@router.delete("/{application_id}", status_code=status.HTTP_204_NO_CONTENT)
async def withdraw_application(
    application_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    adopter: Profile = Depends(require_adopter),
) -> Response:
    """Delete a pending application."""
    await application_lifecycle.withdraw(db, application_id, actor_id=adopter.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
