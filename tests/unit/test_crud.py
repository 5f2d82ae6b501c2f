import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from rescuehub.models import Base, RescueRequest
from rescuehub.models.enums import RescueStatus, UrgencyLevel
from rescuehub.db import crud
from rescuehub.db.crud import RescueRequestFilter
from rescuehub.services.errors import ConflictError, NotFoundError, ValidationError


@pytest_asyncio.fixture
async def db():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()


@pytest_asyncio.fixture
async def reporter(db):
    return await crud.create_user(db, "Reporter@Test.com", "hash", first_name="Rita")


async def _report(db, reporter, **fields):
    data = dict(location="123 Main St", description="injured stray", contact_info="555-0100")
    data.update(fields)
    return await crud.create_rescue_request(db, reporter_id=reporter.id, **data)


async def test_create_user_lowercases_email(db, reporter):
    assert reporter.email == "reporter@test.com"
    fetched = await crud.get_user_by_email(db, "REPORTER@test.com")
    assert fetched is not None
    assert fetched.id == reporter.id


async def test_create_rescue_request_forces_open(db, reporter):
    rr = await _report(db, reporter, status="completed", assigned_rescuer_id=reporter.id)
    assert rr.status == "open"
    assert rr.assigned_rescuer_id is None
    assert rr.reporter.first_name == "Rita"


async def test_create_rescue_request_missing_fields(db, reporter):
    with pytest.raises(ValidationError) as exc:
        await _report(db, reporter, location="", description="")
    assert "location" in exc.value.message
    assert "description" in exc.value.message


async def test_get_unknown_request_raises(db):
    with pytest.raises(NotFoundError):
        await crud.get_rescue_request(db, 404)


async def test_apply_status_conflicts_when_precondition_fails(db, reporter):
    rr = await _report(db, reporter)
    updated = await crud.apply_status(
        db, rr.id, RescueStatus.IN_PROGRESS, crud.status_in(RescueStatus.OPEN),
        assigned_rescuer_id=reporter.id,
    )
    assert updated.status == "in_progress"

    with pytest.raises(ConflictError):
        await crud.apply_status(
            db, rr.id, RescueStatus.IN_PROGRESS, crud.status_in(RescueStatus.OPEN),
            assigned_rescuer_id=reporter.id,
        )


async def test_query_filters_by_status(db, reporter):
    open_rr = await _report(db, reporter)
    started = await _report(db, reporter)
    await crud.apply_status(
        db, started.id, RescueStatus.IN_PROGRESS, crud.status_in(RescueStatus.OPEN),
        assigned_rescuer_id=reporter.id,
    )

    rows = await crud.list_rescue_requests(db, RescueRequestFilter(statuses=(RescueStatus.OPEN,)))
    assert [r.id for r in rows] == [open_rr.id]


async def test_query_is_restartable_and_sees_new_rows(db, reporter):
    stmt = crud.rescue_request_query(RescueRequestFilter(reporter_id=reporter.id))
    first = (await db.execute(stmt)).scalars().all()
    assert first == []

    rr = await _report(db, reporter)
    second = (await db.execute(stmt)).scalars().all()
    assert [r.id for r in second] == [rr.id]


async def test_newest_first_with_id_tiebreak(db, reporter):
    first = await _report(db, reporter)
    second = await _report(db, reporter)
    rows = await crud.list_rescue_requests(db, RescueRequestFilter())
    assert [r.id for r in rows] == [second.id, first.id]


async def test_urgency_first_ordering(db, reporter):
    low = await _report(db, reporter, urgency_level=UrgencyLevel.LOW.value)
    critical = await _report(db, reporter, urgency_level=UrgencyLevel.CRITICAL.value)
    medium = await _report(db, reporter, urgency_level=UrgencyLevel.MEDIUM.value)

    rows = await crud.list_rescue_requests(db, RescueRequestFilter(urgency_first=True))
    assert [r.id for r in rows] == [critical.id, medium.id, low.id]


async def test_approving_adoption_rejects_other_pending(db, reporter):
    other = await crud.create_user(db, "other@test.com", "hash")
    admin = await crud.create_user(db, "admin@test.com", "hash", role="admin")
    dog = await crud.create_dog(db, name="Biscuit", breed="Beagle")

    mine = await crud.create_adoption_request(db, reporter.id, dog.id, "I have a yard")
    theirs = await crud.create_adoption_request(db, other.id, dog.id)

    approved = await crud.process_adoption_request(db, mine, "approved", admin.id)
    assert approved.status == "approved"
    assert approved.processed_by == admin.id

    theirs = await db.get(type(theirs), theirs.id, populate_existing=True)
    assert theirs.status == "rejected"
    dog = await crud.get_dog(db, dog.id)
    assert dog.status == "adopted"


async def test_dog_created_without_commit_disappears_on_rollback(db):
    dog = await crud.create_dog(db, commit=False, name="Ghost", breed="Mix")
    assert dog.id is not None
    await db.rollback()
    assert await crud.count_dogs(db) == 0


async def test_list_dogs_by_status_and_rescuer(db, reporter):
    await crud.create_dog(db, name="A", breed="Mix", status="available")
    mine = await crud.create_dog(db, name="B", breed="Mix", status="rescued", rescuer_id=reporter.id)

    available = await crud.list_dogs(db, statuses=("available",))
    assert [d.name for d in available] == ["A"]
    own = await crud.list_dogs(db, rescuer_id=reporter.id)
    assert [d.id for d in own] == [mine.id]


async def test_request_row_mirrors_model_defaults(db, reporter):
    rr = await _report(db, reporter)
    assert isinstance(rr, RescueRequest)
    assert rr.urgency_level == "medium"
    assert rr.dog_type == "stray"
    assert rr.image_urls == []


async def test_list_dogs_rescue_cases_only(db, reporter):
    await crud.create_dog(db, name="Listed", breed="Mix", rescuer_id=reporter.id)
    rescued = await crud.create_dog(db, name="Found", breed="Mix", rescuer_id=reporter.id, is_rescue_case=True)

    rows = await crud.list_dogs(db, rescuer_id=reporter.id, rescue_case=True)
    assert [d.id for d in rows] == [rescued.id]


async def test_user_has_records(db, reporter):
    rescuer = await crud.create_user(db, "rescuer@test.com", "hash", role="rescuer")
    adopter = await crud.create_user(db, "adopter@test.com", "hash")
    idle = await crud.create_user(db, "idle@test.com", "hash")

    rr = await _report(db, reporter)
    await crud.apply_status(
        db, rr.id, RescueStatus.IN_PROGRESS, crud.status_in(RescueStatus.OPEN),
        assigned_rescuer_id=rescuer.id,
    )
    dog = await crud.create_dog(db, name="Biscuit", breed="Beagle")
    await crud.create_adoption_request(db, adopter.id, dog.id)

    assert await crud.user_has_records(db, reporter.id)
    assert await crud.user_has_records(db, rescuer.id)
    assert await crud.user_has_records(db, adopter.id)
    assert not await crud.user_has_records(db, idle.id)
