from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Integer, ForeignKey, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rescuehub.models.base import Base, utcnow


class AdoptionRequest(Base):
    __tablename__ = "adoption_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    dog_id: Mapped[int] = mapped_column(Integer, ForeignKey("dogs.id"), index=True)
    message: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[str] = mapped_column(String(20), default="pending")  # pending | approved | rejected
    admin_notes: Mapped[str] = mapped_column(Text, default="")
    processed_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True, default=None)
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)

    user = relationship("User", foreign_keys=[user_id], lazy="selectin")
    dog = relationship("Dog", lazy="selectin")
