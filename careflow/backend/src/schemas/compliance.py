"""Compliance metric and report schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CategoryMetricsRead(BaseModel):
    count: int
    compliant_count: int
    compliance_rate: float


class CredentialMetricsRead(CategoryMetricsRead):
    current: int
    expired: int


class ComplianceMetricsRead(BaseModel):
    organization_id: str
    window_start: datetime
    window_end: datetime
    total_records: int
    restrictive_practices: CategoryMetricsRead
    incidents: CategoryMetricsRead
    participant_feedback: CategoryMetricsRead
    staff_credentials: CredentialMetricsRead
    overall_compliance_score: float


class ComplianceReportRead(BaseModel):
    organization_id: str
    window_start: datetime | None
    window_end: datetime | None
    total_logs: int
    category_counts: dict[str, int]
    severity_counts: dict[str, int]


class AuditLogCreate(BaseModel):
    organization_id: str = Field(min_length=1)
    action: str
    user_id: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None
    details: str | None = None
    severity: str | None = None
    compliance_category: str | None = None
    timeliness_met: bool | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    timestamp: datetime | None = None


class AuditLogRead(BaseModel):
    id: str
    organization_id: str
    action: str
    details: str | None
    severity: str
    compliance_category: str | None
    timeliness_met: bool | None
    timestamp: datetime

    model_config = {"from_attributes": True}
