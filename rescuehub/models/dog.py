"""Dog model: adoption listing and rescued-dog record in one table."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Integer, Boolean, ForeignKey, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rescuehub.models.base import Base, TimestampMixin


class Dog(Base, TimestampMixin):
    __tablename__ = "dogs"

    name: Mapped[str] = mapped_column(String(100))
    breed: Mapped[str] = mapped_column(String(100))
    age: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    gender: Mapped[str] = mapped_column(String(20), default="unknown")
    size: Mapped[str] = mapped_column(String(20), default="")
    color: Mapped[str] = mapped_column(String(50), default="")
    health_status: Mapped[str] = mapped_column(String(255), default="")
    description: Mapped[str] = mapped_column(Text, default="")
    rescue_notes: Mapped[str] = mapped_column(Text, default="")
    location: Mapped[str] = mapped_column(String(500), default="")
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True, default=None)
    status: Mapped[str] = mapped_column(String(20), default="available", index=True)  # rescued | available | adopted
    is_rescue_case: Mapped[bool] = mapped_column(Boolean, default=False)

    rescuer_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True, default=None, index=True,
    )
    # Set only for dogs materialized by completing a rescue request; one dog per request.
    rescue_request_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("rescue_requests.id"), nullable=True, default=None, unique=True,
    )
    rescue_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)

    rescuer = relationship("User", foreign_keys=[rescuer_id], lazy="selectin")
