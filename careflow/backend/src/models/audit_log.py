"""Append-only audit log storage."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from careflow.backend.src.db.base import Base, new_id

SEVERITIES = ("info", "warning", "critical")


class AuditLog(Base):
    """One timestamped action recorded for compliance reporting."""

    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(String(36), nullable=False)
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    entity_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    severity: Mapped[str] = mapped_column(String(16), nullable=False, default="info", index=True)
    compliance_category: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    # Structured replacement for the free-text timeliness markers in ``details``.
    timeliness_met: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(255), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


Index(
    "ix_audit_logs_org_timestamp",
    AuditLog.organization_id,
    AuditLog.timestamp,
)

__all__ = ["AuditLog", "SEVERITIES"]
