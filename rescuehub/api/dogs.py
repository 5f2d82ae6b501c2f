from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from rescuehub.api.forms import parse_form, read_uploads
from rescuehub.config import Settings
from rescuehub.db import crud
from rescuehub.db.engine import get_db
from rescuehub.dependencies import (
    get_settings_dep, get_upload_store, optional_auth, require_auth, require_role,
)
from rescuehub.models.enums import DogStatus
from rescuehub.schemas import DogCreate, DogRead, DogUpdate
from rescuehub.services.auth import AuthContext
from rescuehub.services.errors import ConflictError, ForbiddenError
from rescuehub.services.image_store import UploadStore
from rescuehub.services.projections import page

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dogs", tags=["dogs"])

_rescuer_or_admin = require_role("rescuer", "admin")


def visible_statuses(auth: AuthContext | None, requested: str | None) -> tuple[str, ...] | None:
    """Dog statuses the caller may list. Anything else requested is ignored."""
    if auth is not None and auth.is_admin:
        allowed = None
    elif auth is not None and auth.is_rescuer:
        allowed = (DogStatus.AVAILABLE.value, DogStatus.RESCUED.value)
    else:
        allowed = (DogStatus.AVAILABLE.value,)

    requested = (requested or "").strip().lower()
    if allowed is None:
        return (requested,) if requested in {s.value for s in DogStatus} else None
    if requested in allowed:
        return (requested,)
    return (DogStatus.AVAILABLE.value,)


@router.get("", response_model=list[DogRead])
async def list_dogs(
    status: str | None = None,
    limit: str | None = None,
    offset: str | None = None,
    auth: AuthContext | None = Depends(optional_auth),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    limit, offset = page(limit, offset, settings.listing)
    return await crud.list_dogs(
        db, statuses=visible_statuses(auth, status), limit=limit, offset=offset,
    )


@router.get("/{dog_id}", response_model=DogRead)
async def get_dog(
    dog_id: int,
    auth: AuthContext | None = Depends(optional_auth),
    db: AsyncSession = Depends(get_db),
):
    dog = await crud.get_dog(db, dog_id)
    if not dog:
        raise HTTPException(404, "Dog not found")
    allowed = visible_statuses(auth, dog.status)
    owner = auth is not None and dog.rescuer_id == auth.user_id
    if allowed is not None and dog.status not in allowed and not owner:
        raise HTTPException(404, "Dog not found")
    return dog


@router.post("", response_model=DogRead, status_code=201)
async def create_dog(
    name: str = Form(""),
    breed: str = Form(""),
    age: int | None = Form(None),
    gender: str = Form("unknown"),
    size: str = Form(""),
    color: str = Form(""),
    health_status: str = Form("", alias="healthStatus"),
    description: str = Form(""),
    location: str = Form(""),
    image: UploadFile | None = File(None),
    auth: AuthContext = Depends(_rescuer_or_admin),
    db: AsyncSession = Depends(get_db),
    store: UploadStore = Depends(get_upload_store),
):
    payload = parse_form(
        DogCreate,
        name=name.strip(), breed=breed.strip(), age=age, gender=gender, size=size,
        color=color, health_status=health_status, description=description, location=location,
    )
    urls = await store.save_many(await read_uploads([image] if image else []), kind="dogs")
    try:
        dog = await crud.create_dog(
            db,
            **payload.model_dump(),
            image_url=urls[0] if urls else None,
            status=DogStatus.AVAILABLE.value,
            rescuer_id=auth.user_id,
        )
    except Exception:
        store.remove(urls)
        raise
    logger.info("Dog %s listed by user %s", dog.id, auth.user_id)
    return dog


@router.put("/{dog_id}", response_model=DogRead)
async def update_dog(
    dog_id: int,
    name: str | None = Form(None),
    breed: str | None = Form(None),
    age: int | None = Form(None),
    gender: str | None = Form(None),
    size: str | None = Form(None),
    color: str | None = Form(None),
    health_status: str | None = Form(None, alias="healthStatus"),
    description: str | None = Form(None),
    location: str | None = Form(None),
    status: str | None = Form(None),
    image: UploadFile | None = File(None),
    auth: AuthContext = Depends(_rescuer_or_admin),
    db: AsyncSession = Depends(get_db),
    store: UploadStore = Depends(get_upload_store),
):
    """Update fields sent in the form; a new ``image`` replaces the old one."""
    dog = await crud.get_dog(db, dog_id)
    if not dog:
        raise HTTPException(404, "Dog not found")
    if not auth.is_admin and dog.rescuer_id != auth.user_id:
        raise ForbiddenError("You can only update dogs you added")

    sent = {
        "name": name, "breed": breed, "age": age, "gender": gender, "size": size,
        "color": color, "health_status": health_status, "description": description,
        "location": location, "status": status,
    }
    body = parse_form(DogUpdate, **{k: v for k, v in sent.items() if v is not None})
    changes = body.model_dump(exclude_unset=True)
    if changes.get("status") is not None:
        changes["status"] = changes["status"].value

    urls = await store.save_many(await read_uploads([image] if image else []), kind="dogs")
    old_image = dog.image_url
    if urls:
        changes["image_url"] = urls[0]
    try:
        dog = await crud.update_dog(db, dog, **changes)
    except Exception:
        store.remove(urls)
        raise
    if urls and old_image:
        store.remove([old_image])
    logger.info("Dog %s updated by user %s", dog.id, auth.user_id)
    return dog


@router.delete("/{dog_id}")
async def delete_dog(
    dog_id: int,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    store: UploadStore = Depends(get_upload_store),
):
    if not auth.is_admin:
        raise ForbiddenError("Only admins can delete dogs")
    dog = await crud.get_dog(db, dog_id)
    if not dog:
        raise HTTPException(404, "Dog not found")
    if dog.rescue_request_id is not None:
        raise ConflictError("Dogs recorded by a completed rescue cannot be deleted")
    if await crud.list_adoption_requests(db, dog_id=dog.id, limit=1):
        raise ConflictError("Dog has adoption requests and cannot be deleted")

    image_url = dog.image_url
    await crud.delete_dog(db, dog)
    if image_url:
        store.remove([image_url])
    logger.info("Dog %s deleted by admin %s", dog_id, auth.user_id)
    return {"ok": True}
