"""History archive — denormalized ledger of decided applications.

Written inside the approve/reject unit of work, one row per application id:
the first decision inserts the row, later approve/reject toggles update it.
Read independently of live applications, by shelter or by adopter.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.errors import ValidationError, upstream_guard
from src.models.application import Application
from src.models.enums import DECIDED_STATUSES, ApplicationStatus, ProfileRole
from src.models.history import ApplicationHistory
from src.models.pet import Pet
from src.models.profile import Profile

logger = logging.getLogger(__name__)


def filter_entries(
    entries: Iterable[ApplicationHistory],
    *,
    viewer_role: ProfileRole,
    status: str | None = None,
    search: str | None = None,
) -> list[ApplicationHistory]:
    """Filter fetched history rows by status and free text.

    Search is case-insensitive over the pet name and the counterpart's name:
    adopter name for shelters, shelter name for adopters.
    """
    needle = (search or "").strip().lower()
    result = []
    for entry in entries:
        if status and entry.status != status:
            continue
        if needle:
            counterpart = (
                entry.adopter_name if viewer_role is ProfileRole.SHELTER else entry.shelter_name
            )
            if needle not in entry.pet_name.lower() and needle not in counterpart.lower():
                continue
        result.append(entry)
    return result


class HistoryArchive:
    """Reads and writes the application_history ledger."""

    async def record_outcome(
        self,
        db: AsyncSession,
        application: Application,
        pet: Pet,
    ) -> ApplicationHistory:
        """Insert or refresh the ledger row for a decided application.

        Flushes but does not commit; the caller owns the transaction.
        """
        if ApplicationStatus(application.status) not in DECIDED_STATUSES:
            msg = f"Only decided applications are archived, got {application.status}"
            raise ValueError(msg)

        result = await db.execute(
            select(ApplicationHistory).where(ApplicationHistory.application_id == application.id)
        )
        entry = result.scalar_one_or_none()

        if entry is None:
            adopter = await db.get(Profile, application.adopter_id)
            shelter = await db.get(Profile, application.shelter_id)
            entry = ApplicationHistory(
                application_id=application.id,
                pet_id=application.pet_id,
                adopter_id=application.adopter_id,
                shelter_id=application.shelter_id,
                pet_name=pet.name,
                adopter_name=adopter.full_name if adopter else "Unknown adopter",
                shelter_name=shelter.display_name if shelter else "Unknown shelter",
                message=application.message,
                applied_at=application.created_at,
            )
            db.add(entry)
            action = "created"
        else:
            action = "updated"

        entry.status = application.status
        entry.approved_at = application.approved_at
        entry.rejected_at = application.rejected_at
        entry.rejection_reason = application.rejection_reason
        await db.flush()

        logger.info(
            "History entry %s: application=%s status=%s",
            action,
            application.id,
            application.status,
        )
        return entry

    async def list_entries(
        self,
        db: AsyncSession,
        *,
        viewer_id: uuid.UUID,
        viewer_role: ProfileRole,
        status: str | None = None,
        search: str | None = None,
    ) -> list[ApplicationHistory]:
        """History visible to a shelter or adopter, newest first."""
        if viewer_role is ProfileRole.SHELTER:
            column = ApplicationHistory.shelter_id
        elif viewer_role is ProfileRole.ADOPTER:
            column = ApplicationHistory.adopter_id
        else:
            msg = "History is available to shelters and adopters only"
            raise ValidationError(msg)

        async with upstream_guard(None, "list history"):
            result = await db.execute(
                select(ApplicationHistory)
                .where(column == viewer_id)
                .order_by(ApplicationHistory.created_at.desc())
            )
            entries = list(result.scalars().all())

        return filter_entries(entries, viewer_role=viewer_role, status=status, search=search)


history_archive = HistoryArchive()
