"""Appointment schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, model_validator


class AppointmentCreate(BaseModel):
    title: str
    start_time: datetime
    end_time: datetime
    participant_id: str
    staff_id: str | None = None
    location: str | None = None
    description: str | None = None
    status: str = "scheduled"
    is_recurring: bool = False
    recurring_pattern: str | None = None
    ndis_line_item: str | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def _check_times(self) -> "AppointmentCreate":
        if self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self


class AppointmentUpdate(BaseModel):
    """Partial update; only fields that are set are applied."""

    title: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    staff_id: str | None = None
    location: str | None = None
    description: str | None = None
    status: str | None = None
    recurring_pattern: str | None = None
    ndis_line_item: str | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def _check_times(self) -> "AppointmentUpdate":
        if self.start_time and self.end_time and self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self


class AppointmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    start_time: datetime
    end_time: datetime
    participant_id: str
    staff_id: str | None
    location: str | None
    description: str | None
    status: str
    is_recurring: bool
    recurring_pattern: str | None
    series_id: str | None
    ndis_line_item: str | None
    notes: str | None


class SeriesOutcomeRead(BaseModel):
    generated: int
    reason: str


class AppointmentCreated(BaseModel):
    appointment: AppointmentRead
    series: SeriesOutcomeRead
