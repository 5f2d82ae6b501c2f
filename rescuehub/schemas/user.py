from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel


class PersonSummary(BaseModel):
    id: int
    first_name: str = ""
    last_name: str = ""
    email: str
    phone: str = ""

    model_config = {"from_attributes": True}


class UserRead(BaseModel):
    id: int
    email: str
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    role: str
    is_active: bool = True
    is_verified: bool = False
    created_at: datetime

    model_config = {"from_attributes": True}
