from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel, Field

from rescuehub.models.enums import DogType, UrgencyLevel
from rescuehub.schemas.user import PersonSummary


class RescueRequestCreate(BaseModel):
    location: str
    description: str
    contact_info: str
    dog_type: DogType = DogType.STRAY
    urgency_level: UrgencyLevel = UrgencyLevel.MEDIUM
    reporter_name: str = ""
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    notes: str = ""

    model_config = {"extra": "forbid"}


class RescueCompletion(BaseModel):
    """Dog profile entered when a rescue is completed."""

    dog_name: str | None = None
    dog_breed: str | None = None
    dog_age: int | None = Field(default=None, ge=0, le=40)
    dog_gender: str = "unknown"  # male | female | unknown
    dog_condition: str = ""
    rescue_notes: str = ""
    dog_location: str = ""

    model_config = {"extra": "forbid"}


class AssignRequest(BaseModel):
    rescuer_id: int | None = None

    model_config = {"extra": "forbid"}


class StatusUpdate(BaseModel):
    status: str
    rescuer_id: int | None = None
    admin_notes: str | None = None

    model_config = {"extra": "forbid"}


class CancelRequest(BaseModel):
    admin_notes: str | None = None

    model_config = {"extra": "forbid"}


class RescueRequestRead(BaseModel):
    id: int
    reporter_id: int
    reporter_name: str = ""
    location: str
    latitude: float | None = None
    longitude: float | None = None
    description: str
    dog_type: str
    urgency_level: str
    contact_info: str | None = None
    image_urls: list[str] = []
    notes: str = ""
    status: str
    assigned_rescuer_id: int | None = None
    rescue_completion_notes: str | None = None
    rescue_photo_url: str | None = None
    rescued_dog_id: int | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    reporter: PersonSummary | None = None
    assigned_rescuer: PersonSummary | None = None

    model_config = {"from_attributes": True}

    def public(self) -> "RescueRequestRead":
        """Copy without reporter identity or contact details."""
        return self.model_copy(update={"contact_info": None, "reporter": None, "reporter_name": ""})


class AdminRescueRequestRead(RescueRequestRead):
    admin_notes: str = ""
