"""Pet status route — shelters put an adopted pet back on the market."""
# ruff: noqa: B008

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import require_shelter
from src.db.engine import get_session
from src.lifecycle.service import application_lifecycle
from src.models.profile import Profile
from src.schemas.application import PetStatusRead

router = APIRouter(prefix="/pets", tags=["pets"])


@router.post("/{pet_id}/mark-available", response_model=PetStatusRead)
async def mark_pet_available(
    pet_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    shelter: Profile = Depends(require_shelter),
) -> PetStatusRead:
    pet = await application_lifecycle.mark_pet_available(db, pet_id, actor_id=shelter.id)
    return PetStatusRead.model_validate(pet)
