"""FastAPI dependency providers for auth, settings, and per-app services."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from rescuehub.config import Settings, get_settings
from rescuehub.db.engine import get_db
from rescuehub.services.auth import AuthContext, get_current_user, get_optional_user
from rescuehub.services.image_store import UploadStore
from rescuehub.services.rate_limit import LoginRateLimiter


@lru_cache
def get_settings_dep() -> Settings:
    return get_settings()


async def require_auth(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AuthContext:
    """Require a valid authenticated session. Returns AuthContext."""
    return await get_current_user(request, db)


async def optional_auth(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AuthContext | None:
    """AuthContext if the caller sent a valid token, otherwise None."""
    return await get_optional_user(request, db)


def require_role(*allowed_roles: str):
    """Factory: returns a dependency that enforces role membership."""
    async def _check(auth: AuthContext = Depends(require_auth)) -> AuthContext:
        if auth.role not in allowed_roles:
            raise HTTPException(403, "Insufficient permissions")
        return auth
    return _check


def get_rate_limiter(request: Request) -> LoginRateLimiter:
    return request.app.state.login_limiter


def get_upload_store(request: Request) -> UploadStore:
    return request.app.state.upload_store
