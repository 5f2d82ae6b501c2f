from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from rescuehub.models.enums import DogType, RescueStatus, UrgencyLevel
from rescuehub.schemas import (
    AdoptionProcess,
    DogCreate,
    RescueCompletion,
    RescueRequestCreate,
    RescueRequestRead,
    PersonSummary,
)


def test_rescue_request_create_defaults():
    body = RescueRequestCreate(location="123 Main St", description="injured stray", contact_info="555-0100")
    assert body.dog_type is DogType.STRAY
    assert body.urgency_level is UrgencyLevel.MEDIUM


def test_rescue_request_create_rejects_unknown_fields():
    with pytest.raises(ValidationError):
        RescueRequestCreate(location="x", description="y", contact_info="z", status="completed")


def test_rescue_request_create_rejects_bad_enum_and_coordinates():
    with pytest.raises(ValidationError):
        RescueRequestCreate(location="x", description="y", contact_info="z", dog_type="cat")
    with pytest.raises(ValidationError):
        RescueRequestCreate(location="x", description="y", contact_info="z", latitude=123.0)


def test_completion_rejects_negative_age():
    with pytest.raises(ValidationError):
        RescueCompletion(dog_name="Rex", dog_breed="Mix", dog_age=-1)


def test_dog_create_requires_name_and_breed():
    with pytest.raises(ValidationError):
        DogCreate(name="", breed="Mix")
    with pytest.raises(ValidationError):
        DogCreate(name="Rex", breed="")
    assert DogCreate(name="Rex", breed="Mix").model_dump()["rescue_notes"] == ""


def test_adoption_process_only_approve_or_reject():
    assert AdoptionProcess(status="approved").status == "approved"
    with pytest.raises(ValidationError):
        AdoptionProcess(status="pending")


def test_public_read_hides_contact_details():
    now = datetime.now(timezone.utc)
    read = RescueRequestRead(
        id=1, reporter_id=2, reporter_name="Rita", location="123 Main St",
        description="injured stray", dog_type="stray", urgency_level="high",
        contact_info="555-0100", status="open", created_at=now, updated_at=now,
        reporter=PersonSummary(id=2, email="rita@test.com"),
    )
    public = read.public()
    assert public.contact_info is None
    assert public.reporter is None
    assert public.reporter_name == ""
    assert read.contact_info == "555-0100"


def test_status_parse():
    assert RescueStatus.parse(" In_Progress ") is RescueStatus.IN_PROGRESS
    assert RescueStatus.parse("pending") is None
    assert RescueStatus.parse(None) is None
