"""Rescued dogs: rescue-case records owned by the rescuer who brought the dog in.

Completing a rescue request creates one of these; a rescuer can also record a
dog picked up outside the request flow. Only completion links a dog to a
rescue request.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from rescuehub.api.forms import parse_form, read_uploads
from rescuehub.config import Settings
from rescuehub.db import crud
from rescuehub.db.engine import get_db
from rescuehub.dependencies import get_settings_dep, get_upload_store, require_role
from rescuehub.models import Dog
from rescuehub.models.enums import DogStatus
from rescuehub.schemas import DogCreate, DogRead, DogStatusUpdate
from rescuehub.services.auth import AuthContext
from rescuehub.services.errors import ConflictError, ValidationError
from rescuehub.services.image_store import UploadStore
from rescuehub.services.projections import page

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rescued-dogs", tags=["rescued-dogs"])

_rescuer_or_admin = require_role("rescuer", "admin")

_INITIAL_STATUSES = (DogStatus.RESCUED, DogStatus.AVAILABLE)


async def _own_dog(db: AsyncSession, dog_id: int, auth: AuthContext) -> Dog:
    dog = await crud.get_dog(db, dog_id)
    if not dog or not dog.is_rescue_case or (not auth.is_admin and dog.rescuer_id != auth.user_id):
        raise HTTPException(404, "Rescued dog not found")
    return dog


@router.get("", response_model=list[DogRead])
async def list_rescued_dogs(
    limit: str | None = None,
    offset: str | None = None,
    auth: AuthContext = Depends(_rescuer_or_admin),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    limit, offset = page(limit, offset, settings.listing)
    rescuer_id = None if auth.is_admin else auth.user_id
    return await crud.list_dogs(
        db, rescuer_id=rescuer_id, rescue_case=True, limit=limit, offset=offset,
    )


@router.post("", response_model=DogRead, status_code=201)
async def add_rescued_dog(
    name: str = Form(""),
    breed: str = Form(""),
    age: int | None = Form(None),
    gender: str = Form("unknown"),
    size: str = Form(""),
    color: str = Form(""),
    health_status: str = Form("", alias="healthStatus"),
    description: str = Form(""),
    rescue_notes: str = Form("", alias="rescueNotes"),
    location: str = Form(""),
    status: str = Form(DogStatus.RESCUED.value),
    image: UploadFile | None = File(None),
    auth: AuthContext = Depends(_rescuer_or_admin),
    db: AsyncSession = Depends(get_db),
    store: UploadStore = Depends(get_upload_store),
):
    payload = parse_form(
        DogCreate,
        name=name.strip(), breed=breed.strip(), age=age, gender=gender, size=size,
        color=color, health_status=health_status, description=description,
        rescue_notes=rescue_notes, location=location,
    )
    initial = parse_form(DogStatusUpdate, status=status).status
    if initial not in _INITIAL_STATUSES:
        raise ValidationError("status: must be 'rescued' or 'available'")

    urls = await store.save_many(await read_uploads([image] if image else []), kind="dogs")
    try:
        dog = await crud.create_dog(
            db,
            **payload.model_dump(),
            image_url=urls[0] if urls else None,
            status=initial.value,
            is_rescue_case=True,
            rescuer_id=auth.user_id,
            rescue_date=datetime.now(timezone.utc),
        )
    except Exception:
        store.remove(urls)
        raise
    logger.info("Rescued dog %s recorded by user %s", dog.id, auth.user_id)
    return dog


@router.get("/{dog_id}", response_model=DogRead)
async def get_rescued_dog(
    dog_id: int,
    auth: AuthContext = Depends(_rescuer_or_admin),
    db: AsyncSession = Depends(get_db),
):
    return await _own_dog(db, dog_id, auth)


@router.put("/{dog_id}/status", response_model=DogRead)
async def update_rescued_dog_status(
    dog_id: int,
    body: DogStatusUpdate,
    auth: AuthContext = Depends(_rescuer_or_admin),
    db: AsyncSession = Depends(get_db),
):
    dog = await _own_dog(db, dog_id, auth)
    old = dog.status
    dog = await crud.update_dog(db, dog, status=body.status.value)
    logger.info("Dog %s: %s -> %s by user %s", dog.id, old, dog.status, auth.user_id)
    return dog


@router.delete("/{dog_id}")
async def delete_rescued_dog(
    dog_id: int,
    auth: AuthContext = Depends(_rescuer_or_admin),
    db: AsyncSession = Depends(get_db),
    store: UploadStore = Depends(get_upload_store),
):
    dog = await _own_dog(db, dog_id, auth)
    if dog.rescue_request_id is not None:
        raise ConflictError("Dogs recorded by a completed rescue cannot be deleted")
    if await crud.list_adoption_requests(db, dog_id=dog.id, limit=1):
        raise ConflictError("Dog has adoption requests and cannot be deleted")

    image_url = dog.image_url
    await crud.delete_dog(db, dog)
    if image_url:
        store.remove([image_url])
    logger.info("Rescued dog %s deleted by user %s", dog_id, auth.user_id)
    return {"ok": True}
