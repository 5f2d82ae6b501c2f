from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from rescuehub.config import Settings
from rescuehub.db import crud
from rescuehub.db.engine import get_db
from rescuehub.dependencies import get_settings_dep, require_auth, require_role
from rescuehub.models.enums import AdoptionStatus, DogStatus
from rescuehub.schemas import AdoptionCreate, AdoptionProcess, AdoptionRead
from rescuehub.services.auth import AuthContext
from rescuehub.services.errors import ConflictError, InvalidStateError
from rescuehub.services.projections import page

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/adoptions", tags=["adoptions"])

_admin_dep = require_role("admin")


@router.post("", response_model=AdoptionRead, status_code=201)
async def submit_adoption_request(
    body: AdoptionCreate,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    dog = await crud.get_dog(db, body.dog_id)
    if not dog:
        raise HTTPException(404, "Dog not found")
    if dog.status != DogStatus.AVAILABLE.value:
        raise InvalidStateError("Dog is not available for adoption")
    if await crud.get_pending_adoption(db, auth.user_id, dog.id):
        raise ConflictError("You already have a pending adoption request for this dog")

    ar = await crud.create_adoption_request(db, auth.user_id, dog.id, body.message)
    logger.info("Adoption request %s for dog %s by user %s", ar.id, dog.id, auth.user_id)
    return ar


@router.get("/mine", response_model=list[AdoptionRead])
async def my_adoption_requests(
    limit: str | None = None,
    offset: str | None = None,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    limit, offset = page(limit, offset, settings.listing)
    return await crud.list_adoption_requests(db, user_id=auth.user_id, limit=limit, offset=offset)


@router.get("/all", response_model=list[AdoptionRead])
async def all_adoption_requests(
    status: str | None = None,
    limit: str | None = None,
    offset: str | None = None,
    auth: AuthContext = Depends(_admin_dep),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    limit, offset = page(limit, offset, settings.listing)
    if status not in {s.value for s in AdoptionStatus}:
        status = None
    return await crud.list_adoption_requests(db, status=status, limit=limit, offset=offset)


@router.put("/{adoption_id}/process", response_model=AdoptionRead)
async def process_adoption_request(
    adoption_id: int,
    body: AdoptionProcess,
    auth: AuthContext = Depends(_admin_dep),
    db: AsyncSession = Depends(get_db),
):
    ar = await crud.get_adoption_request(db, adoption_id)
    if not ar:
        raise HTTPException(404, "Adoption request not found")
    if ar.status != AdoptionStatus.PENDING.value:
        raise InvalidStateError(f"Adoption request is already {ar.status}")
    if body.status == AdoptionStatus.APPROVED.value:
        dog = await crud.get_dog(db, ar.dog_id)
        if not dog or dog.status != DogStatus.AVAILABLE.value:
            raise InvalidStateError("Dog is no longer available")

    ar = await crud.process_adoption_request(db, ar, body.status, auth.user_id, body.admin_notes)
    logger.info("Adoption request %s %s by admin %s", ar.id, ar.status, auth.user_id)
    return ar
