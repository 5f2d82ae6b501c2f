"""Role-scoped read views over rescue requests.

None of these keep state of their own: each call builds a filter and runs it
against the store. Filter values arrive straight from query strings, so
anything unparseable is dropped and the caller gets the widest view their
role allows instead of an error.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from rescuehub.config import ListingConfig
from rescuehub.db import crud
from rescuehub.db.crud import RescueRequestFilter
from rescuehub.models import RescueRequest
from rescuehub.models.enums import RescueStatus, UrgencyLevel
from rescuehub.services.auth import AuthContext
from rescuehub.services.errors import ForbiddenError, NotFoundError

POOL_STATUSES = (RescueStatus.OPEN,)
POOL_STATUSES_WITH_ASSIGNED = (RescueStatus.OPEN, RescueStatus.ASSIGNED)


def parse_urgency(value: str | None) -> UrgencyLevel | None:
    if not value:
        return None
    try:
        return UrgencyLevel(value.strip().lower())
    except ValueError:
        return None


def _to_int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def page(limit, offset, listing: ListingConfig) -> tuple[int, int]:
    """Clamp raw limit/offset to ``1..max_limit`` and ``>= 0``."""
    limit = _to_int(limit, listing.default_limit)
    if limit < 1:
        limit = listing.default_limit
    limit = min(limit, listing.max_limit)
    offset = max(_to_int(offset, 0), 0)
    return limit, offset


def _truthy(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in ("1", "true", "yes", "on")


async def pool_view(
    db: AsyncSession,
    listing: ListingConfig,
    status: str | None = None,
    urgency: str | None = None,
    include_assigned=False,
    limit=None,
    offset=None,
) -> list[RescueRequest]:
    """Requests a rescuer could pick up, most urgent first."""
    statuses = POOL_STATUSES_WITH_ASSIGNED if _truthy(include_assigned) else POOL_STATUSES
    wanted = RescueStatus.parse(status)
    if wanted in POOL_STATUSES_WITH_ASSIGNED:
        statuses = (wanted,)
    limit, offset = page(limit, offset, listing)
    flt = RescueRequestFilter(
        statuses=statuses,
        urgency=parse_urgency(urgency),
        urgency_first=True,
        limit=limit,
        offset=offset,
    )
    return await crud.list_rescue_requests(db, flt)


async def my_assignments(
    db: AsyncSession,
    principal: AuthContext,
    listing: ListingConfig,
    status: str | None = None,
    limit=None,
    offset=None,
) -> list[RescueRequest]:
    wanted = RescueStatus.parse(status)
    limit, offset = page(limit, offset, listing)
    flt = RescueRequestFilter(
        statuses=(wanted,) if wanted else None,
        assignee_id=principal.user_id,
        limit=limit,
        offset=offset,
    )
    return await crud.list_rescue_requests(db, flt)


async def my_reports(
    db: AsyncSession,
    principal: AuthContext,
    listing: ListingConfig,
    status: str | None = None,
    limit=None,
    offset=None,
) -> list[RescueRequest]:
    wanted = RescueStatus.parse(status)
    limit, offset = page(limit, offset, listing)
    flt = RescueRequestFilter(
        statuses=(wanted,) if wanted else None,
        reporter_id=principal.user_id,
        limit=limit,
        offset=offset,
    )
    return await crud.list_rescue_requests(db, flt)


async def admin_view(
    db: AsyncSession,
    principal: AuthContext,
    listing: ListingConfig,
    status: str | None = None,
    urgency: str | None = None,
    limit=None,
    offset=None,
) -> list[RescueRequest]:
    """Every request. Reporter and rescuer are loaded with each row."""
    if not principal.is_admin:
        raise ForbiddenError("Admin access required")
    wanted = RescueStatus.parse(status)
    limit, offset = page(limit, offset, listing)
    flt = RescueRequestFilter(
        statuses=(wanted,) if wanted else None,
        urgency=parse_urgency(urgency),
        limit=limit,
        offset=offset,
    )
    return await crud.list_rescue_requests(db, flt)


async def get_for_viewer(
    db: AsyncSession, principal: AuthContext, request_id: int,
) -> RescueRequest:
    """A single request, if the caller is allowed to see it.

    Admins see everything; reporters and assignees see their own; rescuers
    also see anything still in the pool.
    """
    rr = await crud.get_rescue_request(db, request_id)
    if principal.is_admin:
        return rr
    if principal.user_id in (rr.reporter_id, rr.assigned_rescuer_id):
        return rr
    if principal.is_rescuer and RescueStatus(rr.status) in POOL_STATUSES_WITH_ASSIGNED:
        return rr
    raise NotFoundError("Rescue request not found")
