"""Rescue request lifecycle: guard-checked transitions and dog materialization.

    (none) --submit--> open
    open --assign--> assigned
    open | assigned --start--> in_progress        (assignee := actor)
    in_progress --complete--> completed           (creates the Dog row)
    open | assigned | in_progress --cancel--> cancelled   (admin)

Every status write is a conditional UPDATE on the status the caller saw
(see ``crud.apply_status``); a request that changed underneath us surfaces
as ConflictError rather than being overwritten.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rescuehub.db import crud
from rescuehub.models import Dog, RescueRequest
from rescuehub.models.enums import ALLOWED_TRANSITIONS, DogStatus, RescueStatus, Role
from rescuehub.schemas.rescue_request import RescueCompletion, RescueRequestCreate
from rescuehub.services.auth import AuthContext
from rescuehub.services.errors import (
    ConflictError, ForbiddenError, InvalidStateError, ValidationError,
)
from rescuehub.services.guard import Transition, check_transition

logger = logging.getLogger(__name__)


def _log_transition(rr: RescueRequest, old: RescueStatus, actor: AuthContext) -> None:
    logger.info(
        "Rescue request %s: %s -> %s by %s %s",
        rr.id, old.value, rr.status, actor.role, actor.user_id,
    )


async def _require_rescuer(db: AsyncSession, user_id: int):
    user = await crud.get_user(db, user_id)
    if not user or not user.is_active or user.role != Role.RESCUER.value:
        raise ValidationError(f"User {user_id} is not an active rescuer")
    return user


async def _apply(
    db: AsyncSession,
    rr: RescueRequest,
    new_status: RescueStatus,
    precondition,
    actor: AuthContext,
    **values,
) -> RescueRequest:
    old = RescueStatus(rr.status)
    request_id = rr.id
    try:
        updated = await crud.apply_status(db, request_id, new_status, precondition, **values)
    except ConflictError:
        await db.rollback()
        logger.warning(
            "Lost update on rescue request %s (%s -> %s) by user %s",
            request_id, old.value, new_status.value, actor.user_id,
        )
        raise
    _log_transition(updated, old, actor)
    return updated


async def submit(
    db: AsyncSession,
    principal: AuthContext | None,
    payload: RescueRequestCreate,
    image_urls: list[str] | None = None,
) -> RescueRequest:
    check_transition(principal, None, Transition.SUBMIT)
    rr = await crud.create_rescue_request(
        db,
        reporter_id=principal.user_id,
        reporter_name=payload.reporter_name or principal.display_name,
        location=payload.location,
        latitude=payload.latitude,
        longitude=payload.longitude,
        description=payload.description,
        dog_type=payload.dog_type.value,
        urgency_level=payload.urgency_level.value,
        contact_info=payload.contact_info,
        notes=payload.notes,
        image_urls=list(image_urls or []),
    )
    logger.info("Rescue request %s submitted by user %s", rr.id, principal.user_id)
    return rr


async def assign(
    db: AsyncSession,
    principal: AuthContext,
    request_id: int,
    rescuer_id: int | None = None,
) -> RescueRequest:
    """Reserve an open request for one rescuer without starting it."""
    rr = await crud.get_rescue_request(db, request_id)
    check_transition(principal, rr, Transition.ASSIGN)

    if principal.is_admin:
        if rescuer_id is None:
            raise ValidationError("rescuer_id is required")
    else:
        if rescuer_id is not None and rescuer_id != principal.user_id:
            raise ForbiddenError("Rescuers can only assign requests to themselves")
        rescuer_id = principal.user_id
    await _require_rescuer(db, rescuer_id)

    return await _apply(
        db, rr, RescueStatus.ASSIGNED,
        RescueRequest.status == RescueStatus.OPEN.value,
        principal,
        assigned_rescuer_id=rescuer_id,
    )


async def start(db: AsyncSession, principal: AuthContext, request_id: int) -> RescueRequest:
    """Move open/assigned to in_progress; first committer wins."""
    rr = await crud.get_rescue_request(db, request_id)
    check_transition(principal, rr, Transition.START)

    precondition = or_(
        RescueRequest.status == RescueStatus.OPEN.value,
        and_(
            RescueRequest.status == RescueStatus.ASSIGNED.value,
            RescueRequest.assigned_rescuer_id == principal.user_id,
        ),
    )
    return await _apply(
        db, rr, RescueStatus.IN_PROGRESS, precondition, principal,
        assigned_rescuer_id=principal.user_id,
    )


def _missing_dog_fields(completion: RescueCompletion) -> list[str]:
    missing = []
    if not (completion.dog_name or "").strip():
        missing.append("dogName")
    if not (completion.dog_breed or "").strip():
        missing.append("dogBreed")
    return missing


async def complete(
    db: AsyncSession,
    principal: AuthContext,
    request_id: int,
    completion: RescueCompletion,
    rescue_photo_url: str | None = None,
) -> tuple[RescueRequest, Dog]:
    """Finish an in-progress rescue and create its Dog record atomically.

    Either both the Dog row and the ``completed`` status are committed, or
    neither is.
    """
    rr = await crud.get_rescue_request(db, request_id)
    check_transition(principal, rr, Transition.COMPLETE)

    missing = _missing_dog_fields(completion)
    if missing:
        raise ValidationError(f"Missing required dog fields: {', '.join(missing)}")

    old = RescueStatus(rr.status)
    now = datetime.now(timezone.utc)
    condition = completion.dog_condition or "unknown"
    notes = completion.rescue_notes or ""
    try:
        dog = await crud.create_dog(
            db,
            commit=False,
            name=completion.dog_name.strip(),
            breed=completion.dog_breed.strip(),
            age=completion.dog_age,
            gender=completion.dog_gender or "unknown",
            health_status=condition,
            description=f"Rescued from {rr.location}. Condition: {condition}.",
            rescue_notes=notes,
            location=completion.dog_location or rr.location,
            image_url=rescue_photo_url,
            status=DogStatus.RESCUED.value,
            is_rescue_case=True,
            rescuer_id=principal.user_id,
            rescue_request_id=rr.id,
            rescue_date=now,
        )
        rr = await crud.apply_status(
            db, request_id, RescueStatus.COMPLETED,
            and_(
                RescueRequest.status == RescueStatus.IN_PROGRESS.value,
                RescueRequest.assigned_rescuer_id == principal.user_id,
            ),
            commit=False,
            rescued_dog_id=dog.id,
            rescue_completion_notes=notes or None,
            rescue_photo_url=rescue_photo_url,
            completed_at=now,
        )
        await db.commit()
    except ConflictError:
        await db.rollback()
        logger.warning("Rescue request %s changed before completion by user %s", request_id, principal.user_id)
        raise
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Duplicate completion of rescue request %s: %s", request_id, e)
        raise ConflictError("Rescue request was already completed") from e
    except Exception:
        await db.rollback()
        logger.exception("Completing rescue request %s failed; rolled back", request_id)
        raise

    await db.refresh(dog)
    _log_transition(rr, old, principal)
    return rr, dog


async def cancel(
    db: AsyncSession,
    principal: AuthContext,
    request_id: int,
    admin_notes: str | None = None,
) -> RescueRequest:
    """Admin cancel from any non-terminal status."""
    rr = await crud.get_rescue_request(db, request_id)
    check_transition(principal, rr, Transition.CANCEL)

    values: dict = {}
    if rr.assigned_rescuer_id is None:
        # The assignee is only ever null while open; the cancelling admin closes the case.
        values["assigned_rescuer_id"] = principal.user_id
    if admin_notes:
        values["admin_notes"] = admin_notes

    return await _apply(
        db, rr, RescueStatus.CANCELLED,
        RescueRequest.status == rr.status,
        principal,
        **values,
    )


async def set_status(
    db: AsyncSession,
    principal: AuthContext,
    request_id: int,
    target: str | RescueStatus,
    rescuer_id: int | None = None,
    admin_notes: str | None = None,
) -> RescueRequest:
    """Admin override. Still forward-only and still respects the invariants."""
    rr = await crud.get_rescue_request(db, request_id)
    check_transition(principal, rr, Transition.SET_STATUS, target)
    target = target if isinstance(target, RescueStatus) else RescueStatus.parse(target)
    current = RescueStatus(rr.status)

    if target is RescueStatus.CANCELLED:
        return await cancel(db, principal, request_id, admin_notes)

    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStateError(
            f"Cannot change status from {current.value} to {target.value}"
        )

    if target is RescueStatus.COMPLETED:
        raise InvalidStateError(
            "Completing a rescue needs a dog profile; the assigned rescuer must complete it"
        )

    values: dict = {}
    if admin_notes:
        values["admin_notes"] = admin_notes

    if target is RescueStatus.ASSIGNED:
        if rescuer_id is None:
            raise ValidationError("rescuer_id is required to assign a rescue request")
        await _require_rescuer(db, rescuer_id)
        values["assigned_rescuer_id"] = rescuer_id
    else:  # in_progress
        assignee = rescuer_id if rescuer_id is not None else rr.assigned_rescuer_id
        if assignee is None:
            raise ValidationError("rescuer_id is required to put an open request in progress")
        await _require_rescuer(db, assignee)
        values["assigned_rescuer_id"] = assignee

    return await _apply(
        db, rr, target,
        RescueRequest.status == current.value,
        principal,
        **values,
    )
