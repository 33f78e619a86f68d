"""History ledger route."""
# ruff: noqa: B008

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import require_party
from src.db.engine import get_session
from src.history.archive import history_archive
from src.models.enums import ApplicationStatus, ProfileRole
from src.models.profile import Profile
from src.schemas.history import HistoryEntryRead

router = APIRouter(prefix="/history", tags=["history"])


@router.get("", response_model=list[HistoryEntryRead])
async def list_history(
    status_filter: ApplicationStatus | None = Query(None, alias="status"),
    search: str | None = Query(None, max_length=200, description="Pet or counterpart name"),
    db: AsyncSession = Depends(get_session),
    profile: Profile = Depends(require_party),
) -> list[HistoryEntryRead]:
    """Past decisions for the caller, newest first."""
    entries = await history_archive.list_entries(
        db,
        viewer_id=profile.id,
        viewer_role=ProfileRole(profile.role),
        status=status_filter.value if status_filter else None,
        search=search,
    )
    return [HistoryEntryRead.model_validate(e) for e in entries]
