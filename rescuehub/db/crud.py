"""CRUD operations for users, dogs, rescue requests and adoption requests."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import Select, select, update, func, or_, case
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from rescuehub.models import User, Dog, RescueRequest, AdoptionRequest
from rescuehub.models.enums import RescueStatus, UrgencyLevel, URGENCY_ORDER
from rescuehub.services.errors import ValidationError, NotFoundError, ConflictError


# ── User ──────────────────────────────────────────────────

async def create_user(
    db: AsyncSession, email: str, password_hash: str, role: str = "user", **fields,
) -> User:
    user = User(email=email.strip().lower(), password_hash=password_hash, role=role, **fields)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def get_user(db: AsyncSession, user_id: int) -> User | None:
    return await db.get(User, user_id)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalars().first()


async def list_users(
    db: AsyncSession,
    role: str | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[User]:
    stmt = select(User)
    if role:
        stmt = stmt.where(User.role == role)
    if is_active is not None:
        stmt = stmt.where(User.is_active == is_active)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(or_(
            User.first_name.ilike(pattern),
            User.last_name.ilike(pattern),
            User.email.ilike(pattern),
        ))
    stmt = stmt.order_by(User.created_at.desc(), User.id.desc()).limit(limit).offset(offset)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def update_user(db: AsyncSession, user: User, **kwargs) -> User:
    for k, v in kwargs.items():
        if v is not None:
            setattr(user, k, v)
    await db.commit()
    await db.refresh(user)
    return user


async def delete_user(db: AsyncSession, user: User) -> None:
    await db.delete(user)
    await db.commit()


async def user_has_records(db: AsyncSession, user_id: int) -> bool:
    """True if any rescue request, dog or adoption request points at the user."""
    checks = [
        select(RescueRequest.id).where(or_(
            RescueRequest.reporter_id == user_id,
            RescueRequest.assigned_rescuer_id == user_id,
        )),
        select(Dog.id).where(Dog.rescuer_id == user_id),
        select(AdoptionRequest.id).where(or_(
            AdoptionRequest.user_id == user_id,
            AdoptionRequest.processed_by == user_id,
        )),
    ]
    for stmt in checks:
        if (await db.execute(stmt.limit(1))).first() is not None:
            return True
    return False


async def count_users(db: AsyncSession, role: str | None = None, is_active: bool | None = None) -> int:
    stmt = select(func.count(User.id))
    if role:
        stmt = stmt.where(User.role == role)
    if is_active is not None:
        stmt = stmt.where(User.is_active == is_active)
    return (await db.execute(stmt)).scalar_one()


# ── Dog ───────────────────────────────────────────────────

async def create_dog(db: AsyncSession, commit: bool = True, **fields) -> Dog:
    """Insert a dog. With ``commit=False`` the row is only flushed, so the
    caller's transaction decides whether it survives."""
    dog = Dog(**fields)
    db.add(dog)
    if commit:
        await db.commit()
        await db.refresh(dog)
    else:
        await db.flush()
    return dog


async def get_dog(db: AsyncSession, dog_id: int) -> Dog | None:
    return await db.get(Dog, dog_id)


async def list_dogs(
    db: AsyncSession,
    statuses: tuple[str, ...] | None = None,
    rescuer_id: int | None = None,
    rescue_case: bool | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[Dog]:
    stmt = select(Dog)
    if statuses:
        stmt = stmt.where(Dog.status.in_(statuses))
    if rescuer_id is not None:
        stmt = stmt.where(Dog.rescuer_id == rescuer_id)
    if rescue_case is not None:
        stmt = stmt.where(Dog.is_rescue_case == rescue_case)
    stmt = stmt.order_by(Dog.created_at.desc(), Dog.id.desc()).limit(limit).offset(offset)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def update_dog(db: AsyncSession, dog: Dog, **kwargs) -> Dog:
    for k, v in kwargs.items():
        if v is not None:
            setattr(dog, k, v)
    await db.commit()
    await db.refresh(dog)
    return dog


async def delete_dog(db: AsyncSession, dog: Dog) -> None:
    await db.delete(dog)
    await db.commit()


async def count_dogs(db: AsyncSession, status: str | None = None) -> int:
    stmt = select(func.count(Dog.id))
    if status:
        stmt = stmt.where(Dog.status == status)
    return (await db.execute(stmt)).scalar_one()


# ── RescueRequest ─────────────────────────────────────────

@dataclass
class RescueRequestFilter:
    """Any combination of these narrows the result; None means "don't care"."""

    statuses: tuple[RescueStatus, ...] | None = None
    assignee_id: int | None = None
    reporter_id: int | None = None
    urgency: UrgencyLevel | None = None
    urgency_first: bool = False
    limit: int | None = None
    offset: int = 0


_REQUIRED_REQUEST_FIELDS = ("location", "description", "contact_info")


async def create_rescue_request(db: AsyncSession, reporter_id: int, **fields) -> RescueRequest:
    """Insert a new request in status ``open``. Raises ValidationError on missing fields."""
    missing = [name for name in _REQUIRED_REQUEST_FIELDS if not str(fields.get(name) or "").strip()]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    fields.pop("status", None)
    fields.pop("assigned_rescuer_id", None)
    rr = RescueRequest(reporter_id=reporter_id, status=RescueStatus.OPEN.value, **fields)
    db.add(rr)
    await db.commit()
    return await db.get(RescueRequest, rr.id, populate_existing=True)


async def get_rescue_request(db: AsyncSession, request_id: int) -> RescueRequest:
    rr = await db.get(RescueRequest, request_id)
    if rr is None:
        raise NotFoundError("Rescue request not found")
    return rr


def rescue_request_query(flt: RescueRequestFilter) -> Select:
    """Build (but don't run) the SELECT for a filter.

    The statement can be executed any number of times; each run sees the
    current table contents.
    """
    stmt = select(RescueRequest)
    if flt.statuses:
        stmt = stmt.where(RescueRequest.status.in_([s.value for s in flt.statuses]))
    if flt.assignee_id is not None:
        stmt = stmt.where(RescueRequest.assigned_rescuer_id == flt.assignee_id)
    if flt.reporter_id is not None:
        stmt = stmt.where(RescueRequest.reporter_id == flt.reporter_id)
    if flt.urgency is not None:
        stmt = stmt.where(RescueRequest.urgency_level == flt.urgency.value)

    ordering = []
    if flt.urgency_first:
        ordering.append(case(
            {level.value: rank for level, rank in URGENCY_ORDER.items()},
            value=RescueRequest.urgency_level,
            else_=len(URGENCY_ORDER) + 1,
        ))
    ordering += [RescueRequest.created_at.desc(), RescueRequest.id.desc()]
    stmt = stmt.order_by(*ordering)

    if flt.limit is not None:
        stmt = stmt.limit(flt.limit)
    if flt.offset:
        stmt = stmt.offset(flt.offset)
    return stmt


async def list_rescue_requests(db: AsyncSession, flt: RescueRequestFilter) -> list[RescueRequest]:
    result = await db.execute(rescue_request_query(flt))
    return list(result.scalars().all())


async def count_rescue_requests(db: AsyncSession, status: RescueStatus | None = None) -> int:
    stmt = select(func.count(RescueRequest.id))
    if status is not None:
        stmt = stmt.where(RescueRequest.status == status.value)
    return (await db.execute(stmt)).scalar_one()


def status_in(*statuses: RescueStatus) -> ColumnElement[bool]:
    return RescueRequest.status.in_([s.value for s in statuses])


async def apply_status(
    db: AsyncSession,
    request_id: int,
    new_status: RescueStatus,
    precondition: ColumnElement[bool],
    commit: bool = True,
    **values,
) -> RescueRequest:
    """Conditionally move a request to ``new_status``.

    Runs a single ``UPDATE ... WHERE id = :id AND <precondition>``. If no row
    matches, the request changed after the caller looked at it and
    ConflictError is raised. ``values`` may set assignment/completion columns.
    """
    stmt = (
        update(RescueRequest)
        .where(RescueRequest.id == request_id, precondition)
        .values(status=new_status.value, updated_at=datetime.now(timezone.utc), **values)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    if result.rowcount == 0:
        raise ConflictError("Rescue request was changed by someone else; reload and try again")

    if commit:
        await db.commit()
    rr = await db.get(RescueRequest, request_id, populate_existing=True)
    return rr


# ── AdoptionRequest ───────────────────────────────────────

async def create_adoption_request(db: AsyncSession, user_id: int, dog_id: int, message: str = "") -> AdoptionRequest:
    ar = AdoptionRequest(user_id=user_id, dog_id=dog_id, message=message)
    db.add(ar)
    await db.commit()
    return await db.get(AdoptionRequest, ar.id, populate_existing=True)


async def get_adoption_request(db: AsyncSession, request_id: int) -> AdoptionRequest | None:
    return await db.get(AdoptionRequest, request_id)


async def get_pending_adoption(db: AsyncSession, user_id: int, dog_id: int) -> AdoptionRequest | None:
    result = await db.execute(
        select(AdoptionRequest).where(
            AdoptionRequest.user_id == user_id,
            AdoptionRequest.dog_id == dog_id,
            AdoptionRequest.status == "pending",
        )
    )
    return result.scalars().first()


async def list_adoption_requests(
    db: AsyncSession,
    user_id: int | None = None,
    dog_id: int | None = None,
    status: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[AdoptionRequest]:
    stmt = select(AdoptionRequest)
    if user_id is not None:
        stmt = stmt.where(AdoptionRequest.user_id == user_id)
    if dog_id is not None:
        stmt = stmt.where(AdoptionRequest.dog_id == dog_id)
    if status:
        stmt = stmt.where(AdoptionRequest.status == status)
    stmt = stmt.order_by(AdoptionRequest.requested_at.desc(), AdoptionRequest.id.desc())
    stmt = stmt.limit(limit).offset(offset)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def count_adoption_requests(db: AsyncSession, status: str | None = None) -> int:
    stmt = select(func.count(AdoptionRequest.id))
    if status:
        stmt = stmt.where(AdoptionRequest.status == status)
    return (await db.execute(stmt)).scalar_one()


async def process_adoption_request(
    db: AsyncSession, ar: AdoptionRequest, status: str, admin_id: int, admin_notes: str = "",
) -> AdoptionRequest:
    """Approve or reject. Approval adopts the dog and rejects every other pending
    request for it, all in one transaction."""
    now = datetime.now(timezone.utc)
    try:
        ar.status = status
        ar.admin_notes = admin_notes
        ar.processed_by = admin_id
        ar.processed_at = now

        if status == "approved":
            dog = await db.get(Dog, ar.dog_id)
            if dog is not None:
                dog.status = "adopted"
            await db.execute(
                update(AdoptionRequest)
                .where(
                    AdoptionRequest.dog_id == ar.dog_id,
                    AdoptionRequest.status == "pending",
                    AdoptionRequest.id != ar.id,
                )
                .values(
                    status="rejected",
                    admin_notes="Dog was adopted by another applicant",
                    processed_by=admin_id,
                    processed_at=now,
                )
                .execution_options(synchronize_session=False)
            )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    return await db.get(AdoptionRequest, ar.id, populate_existing=True)
