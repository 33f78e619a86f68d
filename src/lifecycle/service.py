"""Application lifecycle service — submit, decide, withdraw.

Every operation loads the application, checks that the right party is
acting, computes the next state with the pure functions in
src/lifecycle/states.py, and writes the application row, the pet flip, and
the history entry in one transaction. Events are emitted only after commit.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.errors import (
    AuthorizationError,
    DuplicateApplication,
    InvalidState,
    NotFound,
    ValidationError,
    upstream_guard,
)
from src.history.archive import history_archive
from src.lifecycle import states
from src.models.application import Application
from src.models.enums import ApplicationStatus, PetStatus, ProfileRole
from src.models.pet import Pet
from src.realtime.events import emit
from src.schemas.events import EventType, SystemEvent
from src.security.auth import reauthenticate

logger = logging.getLogger(__name__)

_DUPLICATE_MSG = "You have already applied to adopt this pet"


class ApplicationLifecycle:
    """Owns the state machine of adoption applications."""

    def __init__(self, retention_days: int | None = None) -> None:
        if retention_days is None:
            retention_days = settings.retention.application_retention_days
        self.retention = timedelta(days=retention_days)

    # ── Adopter actions ──────────────────────────────────────────────

    async def submit(
        self,
        db: AsyncSession,
        *,
        adopter_id: uuid.UUID,
        pet_id: uuid.UUID,
        message: str,
    ) -> Application:
        """Create a pending application for an available pet.

        Raises:
            ValidationError: blank message.
            NotFound: unknown pet.
            InvalidState: pet already adopted.
            DuplicateApplication: the adopter already applied for this pet.
        """
        message = (message or "").strip()
        if not message:
            msg = "Please include a message for the shelter"
            raise ValidationError(msg)

        async with upstream_guard(None, "load pet"):
            pet = await db.get(Pet, pet_id)
        if pet is None:
            msg = "Pet not found"
            raise NotFound(msg)
        if pet.status != PetStatus.AVAILABLE.value:
            msg = "This pet is no longer available for adoption"
            raise InvalidState(msg)

        async with upstream_guard(None, "check existing application"):
            result = await db.execute(
                select(Application.id)
                .where(Application.adopter_id == adopter_id, Application.pet_id == pet_id)
                .limit(1)
            )
            existing = result.scalar_one_or_none()
        if existing is not None:
            raise DuplicateApplication(_DUPLICATE_MSG)

        application = Application(
            adopter_id=adopter_id,
            shelter_id=pet.shelter_id,
            pet_id=pet_id,
            status=ApplicationStatus.PENDING.value,
            message=message,
        )
        async with upstream_guard(db, "submit application"):
            db.add(application)
            try:
                await db.commit()
            except IntegrityError as exc:
                # Lost a race with a concurrent submit (pending adopter/pet index)
                await db.rollback()
                raise DuplicateApplication(_DUPLICATE_MSG) from exc
            await db.refresh(application)

        await emit(SystemEvent(
            event_type=EventType.APPLICATION_SUBMITTED,
            application_id=application.id,
            actor_id=str(adopter_id),
            actor_role=ProfileRole.ADOPTER.value,
            data={"pet_id": str(pet_id), "shelter_id": str(pet.shelter_id)},
            source_module="lifecycle.service",
        ))
        logger.info("Application submitted: id=%s pet=%s adopter=%s", application.id, pet_id, adopter_id)
        return application

    async def withdraw(
        self,
        db: AsyncSession,
        application_id: uuid.UUID,
        *,
        actor_id: uuid.UUID,
    ) -> None:
        """Delete a pending application. Its messages go with it."""
        application = await self._load(db, application_id)
        if application.adopter_id != actor_id:
            msg = "Only the adopter who applied can delete this application"
            raise AuthorizationError(msg)

        current = states.state_of(application)
        states.ensure_withdrawable(current)

        async with upstream_guard(db, "withdraw application"):
            await db.delete(application)
            await db.commit()

        await emit(SystemEvent(
            event_type=EventType.APPLICATION_WITHDRAWN,
            application_id=application_id,
            actor_id=str(actor_id),
            actor_role=ProfileRole.ADOPTER.value,
            data={"pet_id": str(application.pet_id), "from_status": current.status.value},
            source_module="lifecycle.service",
        ))
        logger.info("Application withdrawn: id=%s adopter=%s", application_id, actor_id)

    # ── Shelter actions ──────────────────────────────────────────────

    async def approve(
        self,
        db: AsyncSession,
        application_id: uuid.UUID,
        *,
        actor_id: uuid.UUID,
    ) -> Application:
        """pending | rejected → approved; marks the pet adopted and archives the outcome."""
        application = await self._load(db, application_id)
        self._ensure_shelter(application, actor_id)

        current = states.state_of(application)
        target = states.approve(current, datetime.now(UTC))

        async with upstream_guard(db, "approve application"):
            pet = await self._load_pet(db, application.pet_id)
            states.apply_state(application, target, self.retention)
            pet.status = PetStatus.ADOPTED.value
            await history_archive.record_outcome(db, application, pet)
            await db.commit()
            await db.refresh(application)

        await self._emit_transition(EventType.APPLICATION_APPROVED, application, actor_id, current)
        return application

    async def reject(
        self,
        db: AsyncSession,
        application_id: uuid.UUID,
        *,
        actor_id: uuid.UUID,
        reason: str,
        password: str | None = None,
    ) -> Application:
        """pending | approved → rejected.

        Revoking an approval re-verifies the shelter's password first; a
        failed check leaves the application untouched. The pet's status is
        not changed here (see mark_pet_available).
        """
        application = await self._load(db, application_id)
        self._ensure_shelter(application, actor_id)

        current = states.state_of(application)
        target = states.reject(current, datetime.now(UTC), reason)

        if states.requires_step_up(current, target):
            try:
                await reauthenticate(db, actor_id, password)
            except AuthorizationError:
                await emit(SystemEvent(
                    event_type=EventType.STEP_UP_FAILED,
                    application_id=application.id,
                    actor_id=str(actor_id),
                    actor_role=ProfileRole.SHELTER.value,
                    data={"action": "revoke_approval"},
                    source_module="lifecycle.service",
                ))
                raise

        async with upstream_guard(db, "reject application"):
            pet = await self._load_pet(db, application.pet_id)
            states.apply_state(application, target, self.retention)
            await history_archive.record_outcome(db, application, pet)
            await db.commit()
            await db.refresh(application)

        await self._emit_transition(EventType.APPLICATION_REJECTED, application, actor_id, current)
        return application

    async def ignore(
        self,
        db: AsyncSession,
        application_id: uuid.UUID,
        *,
        actor_id: uuid.UUID,
    ) -> Application:
        """pending → ignored. No deletion schedule, no history entry."""
        application = await self._load(db, application_id)
        self._ensure_shelter(application, actor_id)

        current = states.state_of(application)
        target = states.ignore(current)

        async with upstream_guard(db, "ignore application"):
            states.apply_state(application, target, self.retention)
            await db.commit()
            await db.refresh(application)

        await self._emit_transition(EventType.APPLICATION_IGNORED, application, actor_id, current)
        return application

    async def mark_pet_available(
        self,
        db: AsyncSession,
        pet_id: uuid.UUID,
        *,
        actor_id: uuid.UUID,
    ) -> Pet:
        """Put an adopted pet back on the market. Applications are left as they are."""
        async with upstream_guard(None, "load pet"):
            pet = await db.get(Pet, pet_id)
        if pet is None:
            msg = "Pet not found"
            raise NotFound(msg)
        if pet.shelter_id != actor_id:
            msg = "Only the pet's shelter can change its status"
            raise AuthorizationError(msg)
        if pet.status == PetStatus.AVAILABLE.value:
            msg = "Pet is already available"
            raise InvalidState(msg)

        previous = pet.status
        async with upstream_guard(db, "mark pet available"):
            pet.status = PetStatus.AVAILABLE.value
            await db.commit()

        await emit(SystemEvent(
            event_type=EventType.PET_STATUS_CHANGED,
            actor_id=str(actor_id),
            actor_role=ProfileRole.SHELTER.value,
            data={"pet_id": str(pet_id), "from_status": previous, "to_status": pet.status},
            source_module="lifecycle.service",
        ))
        logger.info("Pet %s marked available by shelter %s", pet_id, actor_id)
        return pet

    # ── Queries ──────────────────────────────────────────────────────

    async def get_application(
        self,
        db: AsyncSession,
        application_id: uuid.UUID,
        *,
        viewer_id: uuid.UUID,
    ) -> Application:
        """Load an application the viewer is a party to."""
        application = await self._load(db, application_id)
        if viewer_id not in (application.adopter_id, application.shelter_id):
            msg = "You do not have access to this application"
            raise AuthorizationError(msg)
        return application

    async def list_applications(
        self,
        db: AsyncSession,
        *,
        viewer_id: uuid.UUID,
        viewer_role: ProfileRole,
        status: ApplicationStatus | None = None,
    ) -> list[Application]:
        """Applications received by a shelter or sent by an adopter, newest first."""
        if viewer_role is ProfileRole.SHELTER:
            stmt = select(Application).where(Application.shelter_id == viewer_id)
        elif viewer_role is ProfileRole.ADOPTER:
            stmt = select(Application).where(Application.adopter_id == viewer_id)
        else:
            msg = "Applications are listed for shelters and adopters only"
            raise ValidationError(msg)

        if status is not None:
            stmt = stmt.where(Application.status == status.value)

        async with upstream_guard(None, "list applications"):
            result = await db.execute(stmt.order_by(Application.created_at.desc()))
            return list(result.scalars().all())

    # ── Helpers ──────────────────────────────────────────────────────

    async def _load(self, db: AsyncSession, application_id: uuid.UUID) -> Application:
        async with upstream_guard(None, "load application"):
            application = await db.get(Application, application_id)
        if application is None:
            msg = "Application not found"
            raise NotFound(msg)
        return application

    async def _load_pet(self, db: AsyncSession, pet_id: uuid.UUID) -> Pet:
        pet = await db.get(Pet, pet_id)
        if pet is None:
            msg = "Pet not found"
            raise NotFound(msg)
        return pet

    @staticmethod
    def _ensure_shelter(application: Application, actor_id: uuid.UUID) -> None:
        if application.shelter_id != actor_id:
            msg = "Only the shelter that received this application can decide on it"
            raise AuthorizationError(msg)

    async def _emit_transition(
        self,
        event_type: EventType,
        application: Application,
        actor_id: uuid.UUID,
        previous: states.ApplicationState,
    ) -> None:
        await emit(SystemEvent(
            event_type=event_type,
            application_id=application.id,
            actor_id=str(actor_id),
            actor_role=ProfileRole.SHELTER.value,
            data={
                "from_status": previous.status.value,
                "to_status": application.status,
                "pet_id": str(application.pet_id),
                "deletion_scheduled_at": (
                    application.deletion_scheduled_at.isoformat()
                    if application.deletion_scheduled_at
                    else None
                ),
            },
            source_module="lifecycle.service",
        ))
        logger.info(
            "Application transition: %s --> %s (application=%s shelter=%s)",
            previous.status.value,
            application.status,
            application.id,
            actor_id,
        )


application_lifecycle = ApplicationLifecycle()
