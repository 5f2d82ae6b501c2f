import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from rescuehub.db import crud
from rescuehub.models import Base, Dog, RescueRequest
from rescuehub.models.enums import RescueStatus
from rescuehub.schemas import RescueCompletion, RescueRequestCreate
from rescuehub.services import lifecycle
from rescuehub.services.auth import context_for
from rescuehub.services.errors import (
    ConflictError, ForbiddenError, InvalidStateError, ValidationError,
)


@pytest_asyncio.fixture
async def factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'lifecycle.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(factory):
    async with factory() as session:
        yield session


@pytest_asyncio.fixture
async def people(db):
    async def make(email, role):
        user = await crud.create_user(db, email, "x", role=role, first_name=email.split("@")[0])
        return context_for(user)

    return {
        "reporter": await make("reporter@test.com", "user"),
        "a": await make("a@test.com", "rescuer"),
        "b": await make("b@test.com", "rescuer"),
        "admin": await make("admin@test.com", "admin"),
    }


def _payload(**overrides):
    fields = dict(location="123 Main St", description="injured stray", contact_info="555-0100")
    fields.update(overrides)
    return RescueRequestCreate(**fields)


def _rex(**overrides):
    fields = dict(dog_name="Rex", dog_breed="Mix", dog_condition="limping")
    fields.update(overrides)
    return RescueCompletion(**fields)


async def _dog_count(db) -> int:
    return (await db.execute(select(func.count(Dog.id)))).scalar_one()


def _assert_assignee_invariant(rr: RescueRequest):
    assert (rr.assigned_rescuer_id is None) == (rr.status == RescueStatus.OPEN.value)


async def test_submit_creates_open_request(db, people):
    rr = await lifecycle.submit(db, people["reporter"], _payload(), ["/uploads/rescue/a.jpg"])
    assert rr.status == "open"
    assert rr.reporter_id == people["reporter"].user_id
    assert rr.image_urls == ["/uploads/rescue/a.jpg"]
    _assert_assignee_invariant(rr)


async def test_submit_requires_authentication(db):
    with pytest.raises(ForbiddenError):
        await lifecycle.submit(db, None, _payload())


async def test_submit_rejects_blank_required_fields(db, people):
    with pytest.raises(ValidationError):
        await lifecycle.submit(db, people["reporter"], _payload(contact_info="  "))
    assert await crud.count_rescue_requests(db) == 0


async def test_start_assigns_caller(db, people):
    rr = await lifecycle.submit(db, people["reporter"], _payload())
    rr = await lifecycle.start(db, people["a"], rr.id)
    assert rr.status == "in_progress"
    assert rr.assigned_rescuer_id == people["a"].user_id
    _assert_assignee_invariant(rr)


async def test_second_start_gets_conflict(db, people):
    rr = await lifecycle.submit(db, people["reporter"], _payload())
    await lifecycle.start(db, people["a"], rr.id)
    with pytest.raises(ConflictError):
        await lifecycle.start(db, people["b"], rr.id)
    rr = await crud.get_rescue_request(db, rr.id)
    assert rr.assigned_rescuer_id == people["a"].user_id


async def test_stale_start_loses_race(factory, db, people):
    """Both rescuers saw the request open; only the first UPDATE matches."""
    rr = await lifecycle.submit(db, people["reporter"], _payload())

    async with factory() as session_a, factory() as session_b:
        # Both sessions load the request while it is still open.
        await crud.get_rescue_request(session_a, rr.id)
        stale = await crud.get_rescue_request(session_b, rr.id)
        assert stale.status == "open"

        won = await lifecycle.start(session_a, people["a"], rr.id)
        assert won.status == "in_progress"

        with pytest.raises(ConflictError):
            await lifecycle.start(session_b, people["b"], rr.id)

    async with factory() as check:
        final = await crud.get_rescue_request(check, rr.id)
        assert final.status == "in_progress"
        assert final.assigned_rescuer_id == people["a"].user_id


async def test_assign_then_only_assignee_starts(db, people):
    rr = await lifecycle.submit(db, people["reporter"], _payload())
    rr = await lifecycle.assign(db, people["a"], rr.id)
    assert rr.status == "assigned"
    assert rr.assigned_rescuer_id == people["a"].user_id

    with pytest.raises(ForbiddenError):
        await lifecycle.start(db, people["b"], rr.id)
    rr = await lifecycle.start(db, people["a"], rr.id)
    assert rr.status == "in_progress"


async def test_rescuer_cannot_assign_someone_else(db, people):
    rr = await lifecycle.submit(db, people["reporter"], _payload())
    with pytest.raises(ForbiddenError):
        await lifecycle.assign(db, people["a"], rr.id, rescuer_id=people["b"].user_id)


async def test_admin_assign_needs_a_rescuer(db, people):
    rr = await lifecycle.submit(db, people["reporter"], _payload())
    with pytest.raises(ValidationError):
        await lifecycle.assign(db, people["admin"], rr.id)
    with pytest.raises(ValidationError):
        await lifecycle.assign(db, people["admin"], rr.id, rescuer_id=people["reporter"].user_id)
    rr = await lifecycle.assign(db, people["admin"], rr.id, rescuer_id=people["b"].user_id)
    assert rr.assigned_rescuer_id == people["b"].user_id


async def test_complete_creates_exactly_one_dog(db, people):
    rr = await lifecycle.submit(db, people["reporter"], _payload())
    await lifecycle.start(db, people["a"], rr.id)

    rr, dog = await lifecycle.complete(db, people["a"], rr.id, _rex(), "/uploads/rescue/rex.jpg")
    assert rr.status == "completed"
    assert rr.rescued_dog_id == dog.id
    assert rr.completed_at is not None
    assert dog.name == "Rex"
    assert dog.status == "rescued"
    assert dog.rescue_request_id == rr.id
    assert dog.rescuer_id == people["a"].user_id
    assert dog.image_url == "/uploads/rescue/rex.jpg"
    assert await _dog_count(db) == 1

    with pytest.raises(InvalidStateError):
        await lifecycle.complete(db, people["a"], rr.id, _rex(dog_name="Rex again"))
    assert await _dog_count(db) == 1


async def test_complete_missing_breed_changes_nothing(db, people):
    rr = await lifecycle.submit(db, people["reporter"], _payload())
    await lifecycle.start(db, people["a"], rr.id)

    with pytest.raises(ValidationError):
        await lifecycle.complete(db, people["a"], rr.id, _rex(dog_breed=""))

    assert await _dog_count(db) == 0
    rr = await crud.get_rescue_request(db, rr.id)
    assert rr.status == "in_progress"
    assert rr.rescued_dog_id is None


async def test_complete_rolls_back_dog_when_status_update_fails(db, people, monkeypatch):
    rr = await lifecycle.submit(db, people["reporter"], _payload())
    await lifecycle.start(db, people["a"], rr.id)
    rid = rr.id

    async def broken_apply_status(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(crud, "apply_status", broken_apply_status)
    with pytest.raises(RuntimeError):
        await lifecycle.complete(db, people["a"], rid, _rex())
    monkeypatch.undo()

    assert await _dog_count(db) == 0
    rr = await db.get(RescueRequest, rid, populate_existing=True)
    assert rr.status == "in_progress"


async def test_only_assignee_can_complete(db, people):
    rr = await lifecycle.submit(db, people["reporter"], _payload())
    await lifecycle.start(db, people["a"], rr.id)
    with pytest.raises(ForbiddenError):
        await lifecycle.complete(db, people["b"], rr.id, _rex())


async def test_cancel_open_records_admin_as_assignee(db, people):
    rr = await lifecycle.submit(db, people["reporter"], _payload())
    rr = await lifecycle.cancel(db, people["admin"], rr.id, "duplicate report")
    assert rr.status == "cancelled"
    assert rr.assigned_rescuer_id == people["admin"].user_id
    assert rr.admin_notes == "duplicate report"
    _assert_assignee_invariant(rr)


async def test_cancel_in_progress_keeps_rescuer(db, people):
    rr = await lifecycle.submit(db, people["reporter"], _payload())
    await lifecycle.start(db, people["a"], rr.id)
    rr = await lifecycle.cancel(db, people["admin"], rr.id)
    assert rr.status == "cancelled"
    assert rr.assigned_rescuer_id == people["a"].user_id


async def test_terminal_requests_reject_everything(db, people):
    rr = await lifecycle.submit(db, people["reporter"], _payload())
    await lifecycle.start(db, people["a"], rr.id)
    await lifecycle.complete(db, people["a"], rr.id, _rex())

    with pytest.raises(InvalidStateError):
        await lifecycle.set_status(db, people["admin"], rr.id, "cancelled")
    with pytest.raises(InvalidStateError):
        await lifecycle.set_status(db, people["admin"], rr.id, "in_progress")
    with pytest.raises(InvalidStateError):
        await lifecycle.start(db, people["b"], rr.id)


async def test_set_status_is_forward_only(db, people):
    rr = await lifecycle.submit(db, people["reporter"], _payload())
    await lifecycle.start(db, people["a"], rr.id)

    with pytest.raises(InvalidStateError):
        await lifecycle.set_status(db, people["admin"], rr.id, "open")
    with pytest.raises(InvalidStateError):
        await lifecycle.set_status(db, people["admin"], rr.id, "assigned", rescuer_id=people["b"].user_id)
    with pytest.raises(InvalidStateError):
        await lifecycle.set_status(db, people["admin"], rr.id, "completed")


async def test_set_status_validates_value_and_assignee(db, people):
    rr = await lifecycle.submit(db, people["reporter"], _payload())
    with pytest.raises(ValidationError):
        await lifecycle.set_status(db, people["admin"], rr.id, "pending")
    with pytest.raises(ValidationError):
        await lifecycle.set_status(db, people["admin"], rr.id, "in_progress")

    rr = await lifecycle.set_status(db, people["admin"], rr.id, "assigned", rescuer_id=people["a"].user_id)
    assert rr.status == "assigned"
    rr = await lifecycle.set_status(db, people["admin"], rr.id, "in_progress")
    assert rr.status == "in_progress"
    assert rr.assigned_rescuer_id == people["a"].user_id


async def test_status_rank_never_decreases(db, people):
    rr = await lifecycle.submit(db, people["reporter"], _payload())
    ranks = [RescueStatus(rr.status).rank]
    rr = await lifecycle.assign(db, people["a"], rr.id)
    ranks.append(RescueStatus(rr.status).rank)
    rr = await lifecycle.start(db, people["a"], rr.id)
    ranks.append(RescueStatus(rr.status).rank)
    rr, _ = await lifecycle.complete(db, people["a"], rr.id, _rex())
    ranks.append(RescueStatus(rr.status).rank)
    assert ranks == sorted(ranks)
    assert ranks == [0, 1, 2, 3]
