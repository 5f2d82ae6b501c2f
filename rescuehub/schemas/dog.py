from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel, Field

from rescuehub.models.enums import DogStatus


class DogCreate(BaseModel):
    name: str = Field(min_length=1)
    breed: str = Field(min_length=1)
    age: int | None = Field(default=None, ge=0, le=40)
    gender: str = "unknown"
    size: str = ""
    color: str = ""
    health_status: str = ""
    description: str = ""
    rescue_notes: str = ""
    location: str = ""


class DogUpdate(BaseModel):
    name: str | None = None
    breed: str | None = None
    age: int | None = Field(default=None, ge=0, le=40)
    gender: str | None = None
    size: str | None = None
    color: str | None = None
    health_status: str | None = None
    description: str | None = None
    rescue_notes: str | None = None
    location: str | None = None
    status: DogStatus | None = None


class DogStatusUpdate(BaseModel):
    status: DogStatus


class DogRead(BaseModel):
    id: int
    name: str
    breed: str
    age: int | None = None
    gender: str = "unknown"
    size: str = ""
    color: str = ""
    health_status: str = ""
    description: str = ""
    rescue_notes: str = ""
    location: str = ""
    image_url: str | None = None
    status: str
    is_rescue_case: bool = False
    rescuer_id: int | None = None
    rescue_request_id: int | None = None
    rescue_date: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
