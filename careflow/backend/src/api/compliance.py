"""Compliance metric endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from careflow.backend.src.core.config import get_settings
from careflow.backend.src.db import get_session_dependency
from careflow.backend.src.schemas.compliance import ComplianceMetricsRead
from careflow.backend.src.services.compliance_metrics import (
    compute_metrics,
    default_window,
)

router = APIRouter(prefix="/compliance", tags=["compliance"])


@router.get("/{organization_id}/metrics", response_model=ComplianceMetricsRead)
def compliance_metrics(
    organization_id: str,
    window_start: datetime | None = Query(None),
    window_end: datetime | None = Query(None),
    session: Session = Depends(get_session_dependency),
) -> ComplianceMetricsRead:
    """Return weighted compliance metrics for the organization.

    Without explicit bounds the window covers the last
    ``COMPLIANCE_WINDOW_DAYS`` days up to now.
    """

    default_start, default_end = default_window(
        get_settings().compliance_window_days, now=window_end
    )
    metrics = compute_metrics(
        session,
        organization_id,
        window_start or default_start,
        window_end or default_end,
    )
    return ComplianceMetricsRead(**metrics.as_dict())
