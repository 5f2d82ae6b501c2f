"""Admin API: dashboard stats, user management, rescue request overview."""

from __future__ import annotations

import logging

from pydantic import BaseModel
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from rescuehub.config import Settings
from rescuehub.db import crud
from rescuehub.db.engine import get_db
from rescuehub.dependencies import get_settings_dep, require_role
from rescuehub.models.enums import AdoptionStatus, DogStatus, RescueStatus, Role
from rescuehub.schemas import AdminRescueRequestRead, UserRead
from rescuehub.services import projections
from rescuehub.services.auth import AuthContext, remove_all_user_sessions
from rescuehub.services.errors import ConflictError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

_admin_dep = require_role("admin")


# ── Schemas ───────────────────────────────────────────────

class UserStatusUpdate(BaseModel):
    is_active: bool


class UserRoleUpdate(BaseModel):
    role: str


def _parse_bool(value: str | None) -> bool | None:
    value = (value or "").strip().lower()
    if value in ("true", "1", "yes"):
        return True
    if value in ("false", "0", "no"):
        return False
    return None


# ── Dashboard ─────────────────────────────────────────────

@router.get("/stats")
async def dashboard_stats(
    auth: AuthContext = Depends(_admin_dep),
    db: AsyncSession = Depends(get_db),
):
    return {
        "users": {
            "total": await crud.count_users(db),
            "active": await crud.count_users(db, is_active=True),
            **{r.value: await crud.count_users(db, role=r.value) for r in Role},
        },
        "dogs": {
            "total": await crud.count_dogs(db),
            **{s.value: await crud.count_dogs(db, status=s.value) for s in DogStatus},
        },
        "rescue_requests": {
            "total": await crud.count_rescue_requests(db),
            **{s.value: await crud.count_rescue_requests(db, status=s) for s in RescueStatus},
        },
        "adoption_requests": {
            "total": await crud.count_adoption_requests(db),
            **{s.value: await crud.count_adoption_requests(db, status=s.value) for s in AdoptionStatus},
        },
    }


# ── Users ─────────────────────────────────────────────────

@router.get("/users", response_model=list[UserRead])
async def list_users(
    role: str | None = None,
    is_active: str | None = None,
    search: str | None = None,
    limit: str | None = None,
    offset: str | None = None,
    auth: AuthContext = Depends(_admin_dep),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    limit, offset = projections.page(limit, offset, settings.listing)
    if role not in {r.value for r in Role}:
        role = None
    return await crud.list_users(
        db, role=role, is_active=_parse_bool(is_active),
        search=(search or "").strip() or None, limit=limit, offset=offset,
    )


@router.put("/users/{user_id}/status", response_model=UserRead)
async def update_user_status(
    user_id: int,
    body: UserStatusUpdate,
    auth: AuthContext = Depends(_admin_dep),
    db: AsyncSession = Depends(get_db),
):
    if user_id == auth.user_id:
        raise ValidationError("You cannot change your own status")
    user = await crud.get_user(db, user_id)
    if not user:
        raise HTTPException(404, "User not found")

    user.is_active = body.is_active
    user = await crud.update_user(db, user)
    if not user.is_active:
        await remove_all_user_sessions(user.id, db)
    logger.info("User %s %s by admin %s", user.id,
                "activated" if user.is_active else "deactivated", auth.user_id)
    return user


@router.put("/users/{user_id}/role", response_model=UserRead)
async def update_user_role(
    user_id: int,
    body: UserRoleUpdate,
    auth: AuthContext = Depends(_admin_dep),
    db: AsyncSession = Depends(get_db),
):
    if body.role not in {r.value for r in Role}:
        raise ValidationError("Invalid role")
    if user_id == auth.user_id:
        raise ValidationError("You cannot change your own role")
    user = await crud.get_user(db, user_id)
    if not user:
        raise HTTPException(404, "User not found")

    user = await crud.update_user(db, user, role=body.role)
    logger.info("User %s role set to %s by admin %s", user.id, user.role, auth.user_id)
    return user


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: int,
    auth: AuthContext = Depends(_admin_dep),
    db: AsyncSession = Depends(get_db),
):
    if user_id == auth.user_id:
        raise ValidationError("You cannot delete your own account")
    user = await crud.get_user(db, user_id)
    if not user:
        raise HTTPException(404, "User not found")

    if await crud.user_has_records(db, user.id):
        raise ConflictError(
            "User has rescue requests, dogs or adoption requests; deactivate the account instead"
        )

    await remove_all_user_sessions(user.id, db)
    await crud.delete_user(db, user)
    logger.info("User %s deleted by admin %s", user_id, auth.user_id)
    return {"ok": True}


# ── Rescue requests ───────────────────────────────────────

@router.get("/rescue-requests", response_model=list[AdminRescueRequestRead])
async def all_rescue_requests(
    status: str | None = None,
    urgency: str | None = None,
    limit: str | None = None,
    offset: str | None = None,
    auth: AuthContext = Depends(_admin_dep),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    return await projections.admin_view(
        db, auth, settings.listing, status=status, urgency=urgency, limit=limit, offset=offset,
    )
