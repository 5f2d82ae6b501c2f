"""Rescue request API: submit, pick up, complete, and admin status control."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from rescuehub.api.forms import parse_form, read_uploads
from rescuehub.config import Settings
from rescuehub.db.engine import get_db
from rescuehub.dependencies import (
    get_settings_dep, get_upload_store, optional_auth, require_auth, require_role,
)
from rescuehub.models import RescueRequest
from rescuehub.schemas import (
    AdminRescueRequestRead, AssignRequest, CancelRequest, DogRead, RescueCompletion,
    RescueRequestCreate, RescueRequestRead, StatusUpdate,
)
from rescuehub.services import lifecycle, projections
from rescuehub.services.auth import AuthContext
from rescuehub.services.image_store import UploadStore

router = APIRouter(prefix="/api/rescue", tags=["rescue"])

_rescuer_or_admin = require_role("rescuer", "admin")


def _serialize(rr: RescueRequest, auth: AuthContext | None) -> RescueRequestRead:
    if auth is None:
        return RescueRequestRead.model_validate(rr).public()
    if auth.is_admin:
        return AdminRescueRequestRead.model_validate(rr)
    return RescueRequestRead.model_validate(rr)


# ── Submit ────────────────────────────────────────────────

@router.post("", status_code=201)
async def submit_rescue_request(
    location: str = Form(""),
    description: str = Form(""),
    contact_info: str = Form("", alias="contactDetails"),
    dog_type: str = Form("stray", alias="dogType"),
    urgency_level: str = Form("medium", alias="urgencyLevel"),
    reporter_name: str = Form("", alias="reporterName"),
    latitude: float | None = Form(None),
    longitude: float | None = Form(None),
    notes: str = Form(""),
    images: list[UploadFile] = File(default=[]),
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    store: UploadStore = Depends(get_upload_store),
):
    payload = parse_form(
        RescueRequestCreate,
        location=location, description=description, contact_info=contact_info,
        dog_type=dog_type, urgency_level=urgency_level, reporter_name=reporter_name,
        latitude=latitude, longitude=longitude, notes=notes,
    )
    urls = await store.save_many(await read_uploads(images), kind="rescue")
    try:
        rr = await lifecycle.submit(db, auth, payload, urls)
    except Exception:
        store.remove(urls)
        raise
    return _serialize(rr, auth)


# ── Views ─────────────────────────────────────────────────

@router.get("")
async def list_rescue_requests(
    status: str | None = None,
    urgency: str | None = None,
    limit: str | None = None,
    offset: str | None = None,
    auth: AuthContext | None = Depends(optional_auth),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    """Admins get every request; everyone else gets the open pool."""
    if auth is not None and auth.is_admin:
        rows = await projections.admin_view(
            db, auth, settings.listing, status=status, urgency=urgency, limit=limit, offset=offset,
        )
    else:
        rows = await projections.pool_view(
            db, settings.listing, status=status, urgency=urgency, limit=limit, offset=offset,
        )
    return [_serialize(rr, auth) for rr in rows]


@router.get("/available")
async def available_rescue_requests(
    status: str | None = None,
    urgency: str | None = None,
    include_assigned: str | None = None,
    limit: str | None = None,
    offset: str | None = None,
    auth: AuthContext = Depends(_rescuer_or_admin),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    rows = await projections.pool_view(
        db, settings.listing, status=status, urgency=urgency,
        include_assigned=include_assigned, limit=limit, offset=offset,
    )
    return [_serialize(rr, auth) for rr in rows]


@router.get("/my-requests")
async def my_rescue_requests(
    status: str | None = None,
    limit: str | None = None,
    offset: str | None = None,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    """Rescuers: what's assigned to me. Everyone else: what I reported."""
    if auth.is_rescuer:
        rows = await projections.my_assignments(
            db, auth, settings.listing, status=status, limit=limit, offset=offset,
        )
    else:
        rows = await projections.my_reports(
            db, auth, settings.listing, status=status, limit=limit, offset=offset,
        )
    return [_serialize(rr, auth) for rr in rows]


@router.get("/my-reports")
async def my_reported_requests(
    status: str | None = None,
    limit: str | None = None,
    offset: str | None = None,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    rows = await projections.my_reports(
        db, auth, settings.listing, status=status, limit=limit, offset=offset,
    )
    return [_serialize(rr, auth) for rr in rows]


@router.get("/{request_id}")
async def get_rescue_request(
    request_id: int,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    rr = await projections.get_for_viewer(db, auth, request_id)
    return _serialize(rr, auth)


# ── Transitions ───────────────────────────────────────────

@router.post("/{request_id}/assign")
async def assign_rescue_request(
    request_id: int,
    body: AssignRequest | None = None,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    rescuer_id = body.rescuer_id if body else None
    rr = await lifecycle.assign(db, auth, request_id, rescuer_id)
    return _serialize(rr, auth)


@router.put("/{request_id}/start")
async def start_rescue(
    request_id: int,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    rr = await lifecycle.start(db, auth, request_id)
    return _serialize(rr, auth)


@router.put("/{request_id}/complete")
async def complete_rescue(
    request_id: int,
    dog_name: str = Form("", alias="dogName"),
    dog_breed: str = Form("", alias="dogBreed"),
    dog_age: int | None = Form(None, alias="dogAge"),
    dog_gender: str = Form("unknown", alias="dogGender"),
    dog_condition: str = Form("", alias="dogCondition"),
    rescue_notes: str = Form("", alias="rescueNotes"),
    dog_location: str = Form("", alias="dogLocation"),
    rescue_photo: UploadFile | None = File(None, alias="rescuePhoto"),
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    store: UploadStore = Depends(get_upload_store),
):
    completion = parse_form(
        RescueCompletion,
        dog_name=dog_name, dog_breed=dog_breed, dog_age=dog_age, dog_gender=dog_gender,
        dog_condition=dog_condition, rescue_notes=rescue_notes, dog_location=dog_location,
    )
    photos = await read_uploads([rescue_photo] if rescue_photo else [])
    urls = await store.save_many(photos, kind="rescue")
    try:
        rr, dog = await lifecycle.complete(
            db, auth, request_id, completion, rescue_photo_url=urls[0] if urls else None,
        )
    except Exception:
        store.remove(urls)
        raise
    return {
        "request": _serialize(rr, auth),
        "dog": DogRead.model_validate(dog),
    }


@router.put("/{request_id}/cancel")
async def cancel_rescue(
    request_id: int,
    body: CancelRequest | None = None,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    rr = await lifecycle.cancel(db, auth, request_id, body.admin_notes if body else None)
    return _serialize(rr, auth)


@router.put("/{request_id}/status")
async def set_rescue_status(
    request_id: int,
    body: StatusUpdate,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    rr = await lifecycle.set_status(
        db, auth, request_id, body.status,
        rescuer_id=body.rescuer_id, admin_notes=body.admin_notes,
    )
    return _serialize(rr, auth)
