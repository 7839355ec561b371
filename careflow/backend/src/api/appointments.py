"""Appointment endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from careflow.backend.src.db import get_session_dependency
from careflow.backend.src.schemas.appointment import (
    AppointmentCreate,
    AppointmentCreated,
    AppointmentRead,
    AppointmentUpdate,
    SeriesOutcomeRead,
)
from careflow.backend.src.services import appointments as appointment_service

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=AppointmentCreated)
def create_appointment(
    payload: AppointmentCreate,
    session: Session = Depends(get_session_dependency),
) -> AppointmentCreated:
    """Create an appointment and expand its recurring series, if any."""

    appointment, outcome = appointment_service.create_appointment(session, payload)
    return AppointmentCreated(
        appointment=AppointmentRead.model_validate(appointment),
        series=SeriesOutcomeRead(generated=outcome.generated, reason=outcome.reason),
    )


@router.put("/{appointment_id}")
def update_appointment(
    appointment_id: str,
    payload: AppointmentUpdate,
    regenerate_series: bool = Query(False),
    session: Session = Depends(get_session_dependency),
) -> dict[str, object]:
    appointment, outcome = appointment_service.update_appointment(
        session, appointment_id, payload, regenerate_series=regenerate_series
    )
    return {
        "appointment": AppointmentRead.model_validate(appointment),
        "series": (
            SeriesOutcomeRead(generated=outcome.generated, reason=outcome.reason)
            if outcome
            else None
        ),
    }


@router.delete("/{appointment_id}")
def delete_appointment(
    appointment_id: str,
    delete_series: bool = Query(False),
    session: Session = Depends(get_session_dependency),
) -> dict[str, object]:
    deleted = appointment_service.delete_appointment(
        session, appointment_id, delete_series=delete_series
    )
    return {"message": "Appointment deleted successfully", "deleted": deleted}
