"""Append-only audit logging and the grouped compliance report."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from careflow.backend.src.models import AuditLog
from careflow.backend.src.models.audit_log import SEVERITIES
from careflow.backend.src.schemas.compliance import AuditLogCreate
from careflow.backend.src.services import notifications

LOGGER = structlog.get_logger(__name__)

UNCATEGORIZED = "uncategorized"
# Categories whose new records are forwarded to the notification channel.
REPORTABLE_CATEGORIES = frozenset({"incident", "restrictive_practice"})


def record_audit_event(session: Session, payload: AuditLogCreate) -> AuditLog:
    """Append one audit record. Records are never updated afterwards."""

    values = payload.model_dump(exclude_none=True)
    values["severity"] = payload.severity or "info"
    values.setdefault("timestamp", datetime.now(timezone.utc))
    entry = AuditLog(**values)
    try:
        session.add(entry)
        session.commit()
    except Exception:
        session.rollback()
        raise

    LOGGER.info(
        "audit_event_recorded",
        audit_log_id=entry.id,
        organization_id=entry.organization_id,
        action=entry.action,
        compliance_category=entry.compliance_category,
    )
    if entry.compliance_category in REPORTABLE_CATEGORIES:
        notifications.notify(
            "reportable_incident_recorded",
            {
                "audit_log_id": entry.id,
                "organization_id": entry.organization_id,
                "compliance_category": entry.compliance_category,
                "severity": entry.severity,
            },
        )
    return entry


def build_compliance_report(
    session: Session,
    organization_id: str,
    *,
    window_start: datetime | None = None,
    window_end: datetime | None = None,
    compliance_category: str | None = None,
) -> dict[str, Any]:
    """Summarize audit records by category and severity.

    Either window bound may be omitted to leave that side open.
    """

    query = select(AuditLog.compliance_category, AuditLog.severity).where(
        AuditLog.organization_id == organization_id
    )
    if compliance_category:
        query = query.where(AuditLog.compliance_category == compliance_category)
    if window_start is not None:
        query = query.where(AuditLog.timestamp >= window_start)
    if window_end is not None:
        query = query.where(AuditLog.timestamp <= window_end)

    rows = session.execute(query).all()
    category_counts = Counter(category or UNCATEGORIZED for category, _ in rows)
    severity_counts = Counter({severity: 0 for severity in SEVERITIES})
    severity_counts.update(severity for _, severity in rows)

    return {
        "organization_id": organization_id,
        "window_start": window_start,
        "window_end": window_end,
        "total_logs": len(rows),
        "category_counts": dict(category_counts),
        "severity_counts": dict(severity_counts),
    }


__all__ = ["build_compliance_report", "record_audit_event"]
