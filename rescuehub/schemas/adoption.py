from __future__ import annotations
from datetime import datetime
from typing import Literal
from pydantic import BaseModel

from rescuehub.schemas.dog import DogRead
from rescuehub.schemas.user import PersonSummary


class AdoptionCreate(BaseModel):
    dog_id: int
    message: str = ""


class AdoptionProcess(BaseModel):
    status: Literal["approved", "rejected"]
    admin_notes: str = ""


class AdoptionRead(BaseModel):
    id: int
    user_id: int
    dog_id: int
    message: str = ""
    status: str
    admin_notes: str = ""
    processed_by: int | None = None
    requested_at: datetime
    processed_at: datetime | None = None
    dog: DogRead | None = None
    user: PersonSummary | None = None

    model_config = {"from_attributes": True}
