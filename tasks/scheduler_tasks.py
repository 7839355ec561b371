"""Celery tasks for recurring appointment series."""

from __future__ import annotations

from time import perf_counter
from typing import Any

import structlog

from careflow.backend.src.db import session_scope
from careflow.backend.src.services.appointments import generate_appointment_series as _generate
from careflow.backend.src.services.metrics import job_duration_seconds
from .worker import celery

LOGGER = structlog.get_logger(__name__)


@celery.task(name="tasks.generate_appointment_series")
def generate_appointment_series(appointment_id: str) -> dict[str, Any]:
    """Expand a stored recurring appointment into its series off the request path."""

    start = perf_counter()
    try:
        with session_scope() as session:
            outcome = _generate(session, appointment_id)
        LOGGER.info(
            "celery_job_success",
            task="generate_appointment_series",
            appointment_id=appointment_id,
            generated=outcome.generated,
            reason=outcome.reason,
        )
        return {
            "appointment_id": appointment_id,
            "generated": outcome.generated,
            "reason": outcome.reason,
        }
    except Exception as exc:  # pragma: no cover - logged and re-raised
        LOGGER.error(
            "celery_job_failure",
            task="generate_appointment_series",
            appointment_id=appointment_id,
            error=str(exc),
        )
        raise
    finally:
        job_duration_seconds.labels(queue="scheduling").observe(perf_counter() - start)


__all__ = ["generate_appointment_series"]
