"""Audit log endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from careflow.backend.src.db import get_session_dependency
from careflow.backend.src.schemas.compliance import (
    AuditLogCreate,
    AuditLogRead,
    ComplianceReportRead,
)
from careflow.backend.src.services.audit_log import (
    build_compliance_report,
    record_audit_event,
)

router = APIRouter(prefix="/audit-logs", tags=["audit-logs"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=AuditLogRead)
def create_audit_log(
    payload: AuditLogCreate,
    session: Session = Depends(get_session_dependency),
) -> AuditLogRead:
    return AuditLogRead.model_validate(record_audit_event(session, payload))


@router.get("/compliance-report", response_model=ComplianceReportRead)
def compliance_report(
    organization_id: str = Query(..., min_length=1),
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    compliance_category: str | None = Query(None),
    session: Session = Depends(get_session_dependency),
) -> ComplianceReportRead:
    """Return audit counts grouped by compliance category and severity."""

    return ComplianceReportRead(
        **build_compliance_report(
            session,
            organization_id,
            window_start=start_date,
            window_end=end_date,
            compliance_category=compliance_category,
        )
    )
