"""Celery tasks for invoice housekeeping and compliance snapshots."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from time import perf_counter
from typing import Any

import structlog

from careflow.backend.src.core.config import get_settings
from careflow.backend.src.db import financial_session_scope, session_scope
from careflow.backend.src.schemas.compliance import ComplianceMetricsRead
from careflow.backend.src.services.compliance_metrics import compute_metrics
from careflow.backend.src.services.invoice_lifecycle import mark_overdue_invoices
from careflow.backend.src.services.metrics import job_duration_seconds
from .worker import celery

LOGGER = structlog.get_logger(__name__)


@celery.task(name="tasks.check_overdue_invoices")
def check_overdue_invoices(as_of: str | None = None) -> dict[str, Any]:
    """Mark sent invoices past their due date as overdue."""

    start = perf_counter()
    cutoff = date.fromisoformat(as_of) if as_of else date.today()
    try:
        with financial_session_scope() as session:
            invoices = mark_overdue_invoices(session, as_of=cutoff)
            invoice_numbers = [invoice.invoice_number for invoice in invoices]
        LOGGER.info("celery_job_success", task="check_overdue_invoices", count=len(invoice_numbers))
        return {"as_of": cutoff.isoformat(), "overdue": invoice_numbers}
    except Exception as exc:  # pragma: no cover - logged and re-raised
        LOGGER.error("celery_job_failure", task="check_overdue_invoices", error=str(exc))
        raise
    finally:
        job_duration_seconds.labels(queue="billing").observe(perf_counter() - start)


@celery.task(name="tasks.compute_compliance_metrics")
def compute_compliance_metrics(
    organization_id: str,
    window_days: int | None = None,
    window_end: str | None = None,
) -> dict[str, Any]:
    """Compute a compliance snapshot for an organization's recent audit log."""

    start = perf_counter()
    days = window_days or get_settings().compliance_window_days
    end = datetime.fromisoformat(window_end) if window_end else datetime.now(timezone.utc)
    try:
        with session_scope() as session:
            metrics = compute_metrics(session, organization_id, end - timedelta(days=days), end)
        return ComplianceMetricsRead(**metrics.as_dict()).model_dump(mode="json")
    except Exception as exc:  # pragma: no cover - logged and re-raised
        LOGGER.error(
            "celery_job_failure",
            task="compute_compliance_metrics",
            organization_id=organization_id,
            error=str(exc),
        )
        raise
    finally:
        job_duration_seconds.labels(queue="compliance").observe(perf_counter() - start)


__all__ = ["check_overdue_invoices", "compute_compliance_metrics"]
