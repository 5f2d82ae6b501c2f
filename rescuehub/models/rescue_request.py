"""Rescue request model: a reported dog moving through the rescue lifecycle."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Float, Integer, ForeignKey, JSON, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rescuehub.models.base import Base, TimestampMixin


class RescueRequest(Base, TimestampMixin):
    __tablename__ = "rescue_requests"

    reporter_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    reporter_name: Mapped[str] = mapped_column(String(200), default="")
    location: Mapped[str] = mapped_column(String(500))
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True, default=None)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True, default=None)
    description: Mapped[str] = mapped_column(Text)
    dog_type: Mapped[str] = mapped_column(String(20), default="stray")  # stray | owned | abandoned | injured
    urgency_level: Mapped[str] = mapped_column(String(20), default="medium")  # low | medium | high | critical
    contact_info: Mapped[str] = mapped_column(String(255))
    image_urls: Mapped[list] = mapped_column(JSON, default=list)
    notes: Mapped[str] = mapped_column(Text, default="")
    admin_notes: Mapped[str] = mapped_column(Text, default="")

    # open | assigned | in_progress | completed | cancelled
    status: Mapped[str] = mapped_column(String(20), default="open", index=True)
    assigned_rescuer_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True, default=None, index=True,
    )

    rescue_completion_notes: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    rescue_photo_url: Mapped[str | None] = mapped_column(String(500), nullable=True, default=None)
    # Mirrors dogs.rescue_request_id (no FK: dogs already references this table).
    rescued_dog_id: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)

    reporter = relationship("User", foreign_keys=[reporter_id], lazy="selectin")
    assigned_rescuer = relationship("User", foreign_keys=[assigned_rescuer_id], lazy="selectin")
