"""Weighted compliance scoring over a window of audit-log records.

The aggregator only reads: it never modifies audit-log rows, so repeated or
concurrent calls over the same window return identical snapshots.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from time import perf_counter
from types import MappingProxyType
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from careflow.backend.src.models import AuditLog
from careflow.backend.src.services.compliance_classifier import (
    ComplianceCategory,
    CredentialStatus,
    classify,
)
from careflow.backend.src.services.metrics import compliance_metrics_seconds

LOGGER = structlog.get_logger(__name__)

WEIGHTS: Mapping[ComplianceCategory, float] = MappingProxyType(
    {
        ComplianceCategory.RESTRICTIVE_PRACTICE: 0.30,
        ComplianceCategory.INCIDENT: 0.30,
        ComplianceCategory.PARTICIPANT_FEEDBACK: 0.20,
        ComplianceCategory.STAFF_CREDENTIAL: 0.20,
    }
)


@dataclass(frozen=True, slots=True)
class CategoryMetrics:
    count: int = 0
    compliant_count: int = 0
    compliance_rate: float = 0.0


@dataclass(frozen=True, slots=True)
class CredentialMetrics:
    count: int = 0
    compliant_count: int = 0
    compliance_rate: float = 0.0
    current: int = 0
    expired: int = 0


@dataclass(frozen=True, slots=True)
class ComplianceMetrics:
    organization_id: str
    window_start: datetime
    window_end: datetime
    total_records: int
    restrictive_practices: CategoryMetrics
    incidents: CategoryMetrics
    participant_feedback: CategoryMetrics
    staff_credentials: CredentialMetrics
    overall_compliance_score: float

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def compliance_rate(compliant: int, count: int) -> float:
    """Percentage of compliant records; ``0.0`` for an empty category."""

    if count <= 0:
        return 0.0
    return compliant / count * 100


def overall_score(rates: Mapping[ComplianceCategory, float]) -> float:
    return sum(WEIGHTS[category] * rates.get(category, 0.0) for category in WEIGHTS)


def aggregate(
    records: Iterable[Any],
    *,
    organization_id: str,
    window_start: datetime,
    window_end: datetime,
) -> ComplianceMetrics:
    """Fold already-loaded records into a metrics snapshot."""

    counts = {category: 0 for category in ComplianceCategory}
    compliant = {category: 0 for category in ComplianceCategory}
    credentials = {CredentialStatus.CURRENT: 0, CredentialStatus.EXPIRED: 0}
    total = 0

    for record in records:
        total += 1
        result = classify(record)
        if result.category is None:
            continue
        counts[result.category] += 1
        if result.compliant:
            compliant[result.category] += 1
        if result.credential_status in credentials:
            credentials[result.credential_status] += 1

    rates = {
        category: compliance_rate(compliant[category], counts[category])
        for category in ComplianceCategory
    }

    def _category(category: ComplianceCategory) -> CategoryMetrics:
        return CategoryMetrics(
            count=counts[category],
            compliant_count=compliant[category],
            compliance_rate=rates[category],
        )

    credential = ComplianceCategory.STAFF_CREDENTIAL
    return ComplianceMetrics(
        organization_id=organization_id,
        window_start=window_start,
        window_end=window_end,
        total_records=total,
        restrictive_practices=_category(ComplianceCategory.RESTRICTIVE_PRACTICE),
        incidents=_category(ComplianceCategory.INCIDENT),
        participant_feedback=_category(ComplianceCategory.PARTICIPANT_FEEDBACK),
        staff_credentials=CredentialMetrics(
            count=counts[credential],
            compliant_count=compliant[credential],
            compliance_rate=rates[credential],
            current=credentials[CredentialStatus.CURRENT],
            expired=credentials[CredentialStatus.EXPIRED],
        ),
        overall_compliance_score=overall_score(rates),
    )


def default_window(days: int, now: datetime | None = None) -> tuple[datetime, datetime]:
    end = now or datetime.now(timezone.utc)
    return end - timedelta(days=days), end


def load_window(
    session: Session, organization_id: str, window_start: datetime, window_end: datetime
) -> list[AuditLog]:
    """Return the organization's audit records with timestamps in ``[start, end]``."""

    return list(
        session.scalars(
            select(AuditLog)
            .where(
                AuditLog.organization_id == organization_id,
                AuditLog.timestamp >= window_start,
                AuditLog.timestamp <= window_end,
            )
            .order_by(AuditLog.timestamp, AuditLog.id)
        )
    )


def compute_metrics(
    session: Session, organization_id: str, window_start: datetime, window_end: datetime
) -> ComplianceMetrics:
    start = perf_counter()
    records = load_window(session, organization_id, window_start, window_end)
    metrics = aggregate(
        records,
        organization_id=organization_id,
        window_start=window_start,
        window_end=window_end,
    )
    compliance_metrics_seconds.observe(perf_counter() - start)
    LOGGER.info(
        "compliance_metrics_computed",
        organization_id=organization_id,
        records=metrics.total_records,
        score=round(metrics.overall_compliance_score, 2),
    )
    return metrics


__all__ = [
    "CategoryMetrics",
    "ComplianceMetrics",
    "CredentialMetrics",
    "WEIGHTS",
    "aggregate",
    "compliance_rate",
    "compute_metrics",
    "default_window",
    "load_window",
    "overall_score",
]
