"""Authentication service: DB-backed sessions and bcrypt passwords."""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta

import bcrypt
from fastapi import Request, HTTPException
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from rescuehub.models.auth_models import User, UserSession

SESSION_COOKIE_NAME = "session_token"


@dataclass(frozen=True)
class AuthContext:
    """The acting principal for a request."""

    user_id: int
    role: str  # 'user' | 'rescuer' | 'admin'
    email: str
    display_name: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_rescuer(self) -> bool:
        return self.role == "rescuer"


def context_for(user: User) -> AuthContext:
    return AuthContext(
        user_id=user.id,
        role=user.role,
        email=user.email,
        display_name=user.full_name,
    )


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


def _hash_token(token: str) -> str:
    """SHA-256 hash of a session token for DB storage."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


async def create_session(
    user: User, db: AsyncSession, max_age_days: int, ip_address: str = "",
) -> str:
    """Create a DB-backed session. Returns the raw token (not the hash)."""
    token = secrets.token_urlsafe(48)
    session = UserSession(
        user_id=user.id,
        token_hash=_hash_token(token),
        expires_at=datetime.now(timezone.utc) + timedelta(days=max_age_days),
        ip_address=ip_address,
    )
    db.add(session)
    await db.commit()
    return token


async def validate_session(token: str, db: AsyncSession) -> User | None:
    """Look up session by token hash, return User if valid."""
    result = await db.execute(
        select(UserSession).where(
            UserSession.token_hash == _hash_token(token),
            UserSession.expires_at > datetime.now(timezone.utc),
        )
    )
    session = result.scalars().first()
    if not session:
        return None

    user = await db.get(User, session.user_id)
    if not user or not user.is_active:
        return None
    return user


async def remove_session(token: str, db: AsyncSession) -> None:
    await db.execute(delete(UserSession).where(UserSession.token_hash == _hash_token(token)))
    await db.commit()


async def remove_all_user_sessions(user_id: int, db: AsyncSession) -> None:
    """Invalidate all sessions for a user (e.g. after deactivation)."""
    await db.execute(delete(UserSession).where(UserSession.user_id == user_id))
    await db.commit()


def extract_token(request: Request) -> str | None:
    """Session token from the cookie, or from an ``Authorization: Bearer`` header."""
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if token:
        return token
    header = request.headers.get("authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


async def get_current_user(request: Request, db: AsyncSession) -> AuthContext:
    """Validate the request's session token, return AuthContext or raise 401."""
    token = extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    user = await validate_session(token, db)
    if not user:
        raise HTTPException(status_code=401, detail="Session expired")

    return context_for(user)


async def get_optional_user(request: Request, db: AsyncSession) -> AuthContext | None:
    token = extract_token(request)
    if not token:
        return None
    user = await validate_session(token, db)
    return context_for(user) if user else None
