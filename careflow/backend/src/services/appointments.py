"""Service layer for appointments and their recurring series."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy import delete, insert
from sqlalchemy.orm import Session

from careflow.backend.src.core.errors import (
    InvalidAppointment,
    NoOccurrencesGenerated,
    NotFound,
)
from careflow.backend.src.db.base import new_id
from careflow.backend.src.models import Appointment, Participant
from careflow.backend.src.schemas.appointment import AppointmentCreate, AppointmentUpdate
from careflow.backend.src.services.metrics import recurring_occurrences_generated_total
from careflow.backend.src.services.recurrence import (
    AppointmentTemplate,
    generate_series,
)

LOGGER = structlog.get_logger(__name__)

# Copied from the template onto each generated occurrence.
SERIES_FIELDS = (
    "title",
    "location",
    "description",
    "status",
    "ndis_line_item",
    "notes",
    "participant_id",
    "staff_id",
)


@dataclass(frozen=True, slots=True)
class SeriesOutcome:
    generated: int
    reason: str


NOT_RECURRING = SeriesOutcome(generated=0, reason="not_recurring")


def _as_naive_utc(value: datetime) -> datetime:
    # SQLite hands back naive values while requests may carry an offset.
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _get_appointment_or_404(session: Session, appointment_id: str) -> Appointment:
    appointment = session.get(Appointment, appointment_id)
    if appointment is None:
        raise NotFound("Appointment not found")
    return appointment


def template_from_appointment(appointment: Appointment) -> AppointmentTemplate:
    return AppointmentTemplate(
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        fields={name: getattr(appointment, name) for name in SERIES_FIELDS},
    )


def _series_rows(appointment: Appointment) -> list[dict]:
    template = template_from_appointment(appointment)
    return [
        {
            **occurrence.fields,
            "id": new_id(),
            "start_time": occurrence.start_time,
            "end_time": occurrence.end_time,
            "is_recurring": True,
            "recurring_pattern": appointment.recurring_pattern,
            "series_id": appointment.series_id,
        }
        for occurrence in generate_series(template, appointment.recurring_pattern)
    ]


def _store_series(
    session: Session, appointment: Appointment, *, replace_later: bool = False
) -> SeriesOutcome:
    """Generate the series for ``appointment`` and insert it in one transaction."""

    try:
        rows = _series_rows(appointment)
    except NoOccurrencesGenerated as exc:
        LOGGER.warning(
            "recurring_pattern_unrecognized",
            appointment_id=appointment.id,
            pattern=exc.pattern,
        )
        return SeriesOutcome(generated=0, reason="unrecognized_pattern")

    try:
        if replace_later:
            session.execute(
                delete(Appointment).where(
                    Appointment.series_id == appointment.series_id,
                    Appointment.start_time > appointment.start_time,
                    Appointment.id != appointment.id,
                )
            )
        if rows:
            session.execute(insert(Appointment), rows)
        session.commit()
    except Exception:
        session.rollback()
        raise

    pattern = appointment.recurring_pattern or ""
    recurring_occurrences_generated_total.labels(pattern=pattern).inc(len(rows))
    LOGGER.info(
        "recurring_series_generated",
        appointment_id=appointment.id,
        series_id=appointment.series_id,
        pattern=pattern,
        occurrences=len(rows),
    )
    if not rows:
        return SeriesOutcome(generated=0, reason="horizon_exhausted")
    return SeriesOutcome(generated=len(rows), reason="generated")


def create_appointment(
    session: Session, payload: AppointmentCreate
) -> tuple[Appointment, SeriesOutcome]:
    """Persist an appointment and, when recurring, its generated series.

    The template commits first; the series is inserted afterwards as its
    own all-or-nothing batch, so a failed series never removes the template.
    """

    if session.get(Participant, payload.participant_id) is None:
        raise NotFound("Participant not found")

    appointment = Appointment(id=new_id(), **payload.model_dump())
    recurring = bool(payload.is_recurring and payload.recurring_pattern)
    if recurring:
        appointment.series_id = appointment.id
    try:
        session.add(appointment)
        session.commit()
    except Exception:
        session.rollback()
        raise

    LOGGER.info(
        "appointment_created",
        appointment_id=appointment.id,
        participant_id=appointment.participant_id,
        recurring=recurring,
    )
    if not recurring:
        return appointment, NOT_RECURRING
    return appointment, _store_series(session, appointment)


def generate_appointment_series(session: Session, appointment_id: str) -> SeriesOutcome:
    """Generate the series for an already stored recurring appointment."""

    appointment = _get_appointment_or_404(session, appointment_id)
    if not (appointment.is_recurring and appointment.recurring_pattern):
        return NOT_RECURRING
    if appointment.series_id is None:
        appointment.series_id = appointment.id
    return _store_series(session, appointment, replace_later=True)


def update_appointment(
    session: Session,
    appointment_id: str,
    payload: AppointmentUpdate,
    *,
    regenerate_series: bool = False,
) -> tuple[Appointment, SeriesOutcome | None]:
    """Apply a partial update; the series is only rebuilt when asked to."""

    try:
        appointment = _get_appointment_or_404(session, appointment_id)
        for name, value in payload.model_dump(exclude_unset=True).items():
            setattr(appointment, name, value)
        if _as_naive_utc(appointment.end_time) < _as_naive_utc(appointment.start_time):
            raise InvalidAppointment("end_time must not be before start_time")
        if regenerate_series and appointment.recurring_pattern:
            appointment.is_recurring = True
            appointment.series_id = appointment.series_id or appointment.id
        session.commit()
    except Exception:
        session.rollback()
        raise

    LOGGER.info(
        "appointment_updated",
        appointment_id=appointment.id,
        regenerate_series=regenerate_series,
    )
    if not regenerate_series:
        return appointment, None
    if not appointment.is_recurring:
        return appointment, NOT_RECURRING
    return appointment, _store_series(session, appointment, replace_later=True)


def delete_appointment(
    session: Session, appointment_id: str, *, delete_series: bool = False
) -> int:
    """Delete an appointment, and optionally the later occurrences of its series."""

    try:
        appointment = _get_appointment_or_404(session, appointment_id)
        deleted = 0
        if delete_series and appointment.series_id:
            result = session.execute(
                delete(Appointment).where(
                    Appointment.series_id == appointment.series_id,
                    Appointment.start_time > appointment.start_time,
                    Appointment.id != appointment.id,
                )
            )
            deleted += result.rowcount or 0
        session.delete(appointment)
        session.commit()
    except Exception:
        session.rollback()
        raise

    deleted += 1
    LOGGER.info(
        "appointment_deleted",
        appointment_id=appointment_id,
        delete_series=delete_series,
        deleted=deleted,
    )
    return deleted


__all__ = [
    "SeriesOutcome",
    "create_appointment",
    "delete_appointment",
    "generate_appointment_series",
    "template_from_appointment",
    "update_appointment",
]
