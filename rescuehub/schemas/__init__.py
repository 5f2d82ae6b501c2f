"""Pydantic request/response schemas."""

from rescuehub.schemas.user import PersonSummary, UserRead
from rescuehub.schemas.dog import DogCreate, DogUpdate, DogStatusUpdate, DogRead
from rescuehub.schemas.rescue_request import (
    RescueRequestCreate, RescueCompletion, AssignRequest, StatusUpdate, CancelRequest,
    RescueRequestRead, AdminRescueRequestRead,
)
from rescuehub.schemas.adoption import AdoptionCreate, AdoptionProcess, AdoptionRead

__all__ = [
    "PersonSummary", "UserRead",
    "DogCreate", "DogUpdate", "DogStatusUpdate", "DogRead",
    "RescueRequestCreate", "RescueCompletion", "AssignRequest", "StatusUpdate", "CancelRequest",
    "RescueRequestRead", "AdminRescueRequestRead",
    "AdoptionCreate", "AdoptionProcess", "AdoptionRead",
]
