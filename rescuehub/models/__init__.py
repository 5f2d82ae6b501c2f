"""SQLAlchemy ORM models.

All tables share one declarative Base and live in a single database.
"""

from rescuehub.models.base import Base
from rescuehub.models.auth_models import User, UserSession
from rescuehub.models.dog import Dog
from rescuehub.models.rescue_request import RescueRequest
from rescuehub.models.adoption_request import AdoptionRequest

__all__ = [
    "Base",
    "User", "UserSession",
    "Dog", "RescueRequest", "AdoptionRequest",
]
