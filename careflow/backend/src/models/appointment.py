"""Appointment model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from careflow.backend.src.db.base import Base, new_id


class Appointment(Base):
    """A scheduled support session, optionally part of a recurring series."""

    __tablename__ = "appointments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="scheduled")
    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    recurring_pattern: Mapped[str | None] = mapped_column(String(16), nullable=True)
    # Shared by a template and every occurrence generated from it.
    series_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    ndis_line_item: Mapped[str | None] = mapped_column(String(32), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    participant_id: Mapped[str] = mapped_column(
        ForeignKey("participants.id"), nullable=False, index=True
    )
    staff_id: Mapped[str | None] = mapped_column(
        ForeignKey("staff_members.id"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


__all__ = ["Appointment"]
