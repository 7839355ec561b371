"""Tests for audit-event recording and the grouped compliance report."""

from __future__ import annotations

import os
import sys
from datetime import datetime
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_careflow.db")

import pytest

from careflow.backend.src.db import get_engine, session_scope
from careflow.backend.src.db.base import Base
from careflow.backend.src.schemas.compliance import AuditLogCreate
from careflow.backend.src.services import notifications
from careflow.backend.src.services.audit_log import (
    build_compliance_report,
    record_audit_event,
)


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def _record(**overrides) -> None:
    values = {"organization_id": "org-1", "action": "note_added"}
    values.update(overrides)
    with session_scope() as session:
        record_audit_event(session, AuditLogCreate(**values))


def test_record_defaults_severity_and_timestamp() -> None:
    with session_scope() as session:
        entry = record_audit_event(
            session, AuditLogCreate(organization_id="org-1", action="login")
        )

    assert entry.id
    assert entry.severity == "info"
    assert entry.timestamp is not None


def test_report_groups_by_category_and_severity() -> None:
    _record(compliance_category="incident", severity="critical")
    _record(compliance_category="incident", severity="warning")
    _record(compliance_category="staff_credential")
    _record()
    _record(organization_id="org-2", compliance_category="incident")

    with session_scope() as session:
        report = build_compliance_report(session, "org-1")

    assert report["total_logs"] == 4
    assert report["category_counts"] == {
        "incident": 2,
        "staff_credential": 1,
        "uncategorized": 1,
    }
    assert report["severity_counts"] == {"info": 2, "warning": 1, "critical": 1}


def test_report_respects_window_and_category_filter() -> None:
    _record(compliance_category="incident", timestamp=datetime(2025, 1, 5))
    _record(compliance_category="incident", timestamp=datetime(2025, 2, 5))
    _record(compliance_category="participant_feedback", timestamp=datetime(2025, 2, 6))

    with session_scope() as session:
        report = build_compliance_report(
            session,
            "org-1",
            window_start=datetime(2025, 2, 1),
            window_end=datetime(2025, 2, 28),
            compliance_category="incident",
        )

    assert report["total_logs"] == 1
    assert report["category_counts"] == {"incident": 1}
    assert report["severity_counts"]["critical"] == 0


def test_reportable_incidents_are_notified() -> None:
    received: list[tuple[str, dict]] = []

    def sender(event: str, payload: dict) -> None:
        received.append((event, payload))

    notifications.register_sender(sender)
    try:
        _record(compliance_category="incident", severity="critical")
        _record(compliance_category="participant_feedback")
    finally:
        notifications.unregister_sender(sender)

    assert [event for event, _ in received] == ["reportable_incident_recorded"]
    assert received[0][1]["severity"] == "critical"
