"""Auth API: register, login, logout, profile."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from rescuehub.config import Settings
from rescuehub.db import crud
from rescuehub.db.engine import get_db
from rescuehub.dependencies import get_rate_limiter, get_settings_dep, require_auth
from rescuehub.models.enums import Role
from rescuehub.schemas import UserRead
from rescuehub.services.auth import (
    AuthContext, SESSION_COOKIE_NAME, create_session, extract_token, hash_password,
    remove_session, verify_password,
)
from rescuehub.services.errors import ConflictError, ValidationError
from rescuehub.services.rate_limit import LoginRateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


# ── Schemas ───────────────────────────────────────────────

class RegisterRequest(BaseModel):
    email: str
    password: str = Field(min_length=8)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    role: str = Role.USER.value


class LoginRequest(BaseModel):
    email: str
    password: str


class ProfileUpdate(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _session_response(content: dict, token: str, settings: Settings, status_code: int = 200) -> JSONResponse:
    response = JSONResponse(status_code=status_code, content=content)
    response.set_cookie(
        SESSION_COOKIE_NAME, token,
        httponly=True, samesite="lax",
        max_age=86400 * settings.auth.session_max_age_days,
    )
    return response


# ── Register / Login / Logout ─────────────────────────────

@router.post("/register", status_code=201)
async def register(
    body: RegisterRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
    limiter: LoginRateLimiter = Depends(get_rate_limiter),
):
    key = f"register:{_client_key(request)}"
    if limiter.is_blocked(key):
        logger.warning("Registration rate limit hit for %s", key)
        raise HTTPException(
            429, "Too many registration attempts, please try again later",
            headers={"Retry-After": str(limiter.retry_after(key))},
        )
    limiter.record(key)

    if body.role not in (Role.USER.value, Role.RESCUER.value):
        raise ValidationError("Role must be 'user' or 'rescuer'")
    if "@" not in body.email:
        raise ValidationError("Invalid email address")
    if await crud.get_user_by_email(db, body.email):
        raise ConflictError("User with this email already exists")

    user = await crud.create_user(
        db,
        email=body.email,
        password_hash=hash_password(body.password),
        role=body.role,
        first_name=body.first_name.strip(),
        last_name=body.last_name.strip(),
        phone=body.phone,
        address=body.address,
        city=body.city,
        state=body.state,
        zip_code=body.zip_code,
    )
    logger.info("Registered user %s as %s", user.id, user.role)

    token = await create_session(
        user, db, settings.auth.session_max_age_days, ip_address=_client_key(request),
    )
    content = {
        "ok": True,
        "token": token,
        "user": UserRead.model_validate(user).model_dump(mode="json"),
    }
    return _session_response(content, token, settings, status_code=201)


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
    limiter: LoginRateLimiter = Depends(get_rate_limiter),
):
    key = _client_key(request)
    if limiter.is_blocked(key):
        logger.warning("Login rate limit hit for %s", key)
        raise HTTPException(
            429, "Too many login attempts, please try again later",
            headers={"Retry-After": str(limiter.retry_after(key))},
        )

    user = await crud.get_user_by_email(db, body.email)
    if not user or not verify_password(body.password, user.password_hash):
        limiter.record(key)
        raise HTTPException(401, "Invalid credentials")
    if not user.is_active:
        raise HTTPException(401, "Account is deactivated")

    limiter.reset(key)
    token = await create_session(user, db, settings.auth.session_max_age_days, ip_address=key)
    content = {
        "ok": True,
        "token": token,
        "user": UserRead.model_validate(user).model_dump(mode="json"),
    }
    return _session_response(content, token, settings)


@router.post("/logout")
async def logout(
    request: Request,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    token = extract_token(request)
    if token:
        await remove_session(token, db)
    response = JSONResponse(content={"ok": True})
    response.delete_cookie(SESSION_COOKIE_NAME)
    return response


# ── Profile ───────────────────────────────────────────────

@router.get("/me", response_model=UserRead)
async def get_me(
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    user = await crud.get_user(db, auth.user_id)
    if not user:
        raise HTTPException(404, "User not found")
    return user


@router.put("/me", response_model=UserRead)
async def update_me(
    body: ProfileUpdate,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    user = await crud.get_user(db, auth.user_id)
    if not user:
        raise HTTPException(404, "User not found")
    return await crud.update_user(db, user, **body.model_dump(exclude_unset=True))
