"""API tests covering routing and error mapping."""

from __future__ import annotations

import os
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_careflow.db")

import pytest
from fastapi.testclient import TestClient

from careflow.backend.src.db import get_engine, session_scope
from careflow.backend.src.db.base import Base
from careflow.backend.src.main import app
from careflow.backend.src.models import Participant


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture()
def participant_id() -> str:
    with session_scope() as session:
        participant = Participant(
            organization_id="acme-care", first_name="Jamie", last_name="Nguyen"
        )
        session.add(participant)
        session.flush()
        return participant.id


def _invoice_payload(participant_id: str, quantity: str = "2") -> dict:
    return {
        "participant_id": participant_id,
        "organization_id": "acme-care",
        "invoice_date": "2025-01-01",
        "line_items": [
            {
                "service_date": "2025-01-06",
                "support_item_number": "01_011_0107_1_1",
                "support_item_name": "Assistance With Self-Care Activities",
                "quantity": quantity,
                "unit_price": "57.10",
                "gst_amount": "11.42",
            },
            {
                "service_date": "2025-01-12",
                "support_item_number": "01_002_0107_1_1",
                "support_item_name": "Assistance With Self-Care Activities - Sunday",
                "quantity": "1",
                "unit_price": "103.11",
                "gst_amount": "10.31",
            },
        ],
    }


def test_liveness_endpoint(client: TestClient) -> None:
    response = client.get("/api/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "live"


def test_readiness_endpoint(client: TestClient) -> None:
    response = client.get("/api/health/ready")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ready"
    assert body["database"] == "sqlite"
    assert body["financial_isolation_level"] == "SERIALIZABLE"


def test_invoice_create_and_fetch(client: TestClient, participant_id: str) -> None:
    response = client.post("/api/invoices", json=_invoice_payload(participant_id))
    assert response.status_code == 201, response.text
    created = response.json()
    assert created["invoice_number"] == "INV-acme-00001"
    assert created["status"] == "draft"
    assert created["participant_name"] == "Jamie Nguyen"
    assert created["total"] == "239.04"
    assert len(created["line_items"]) == 2

    fetched = client.get(f"/api/invoices/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["subtotal"] == "217.31"

    listing = client.get("/api/invoices", params={"organization_id": "acme-care"})
    assert listing.status_code == 200
    assert [entry["id"] for entry in listing.json()] == [created["id"]]


def test_invalid_line_item_maps_to_400(client: TestClient, participant_id: str) -> None:
    response = client.post("/api/invoices", json=_invoice_payload(participant_id, quantity="0"))
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_line_item"


def test_missing_invoice_maps_to_404(client: TestClient) -> None:
    response = client.get("/api/invoices/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"detail": "Invoice not found", "error": "not_found"}


def test_lifecycle_violations_map_to_403(client: TestClient, participant_id: str) -> None:
    invoice_id = client.post("/api/invoices", json=_invoice_payload(participant_id)).json()["id"]

    sent = client.post(f"/api/invoices/{invoice_id}/send")
    assert sent.status_code == 200
    assert sent.json()["status"] == "sent"

    update = client.put(
        f"/api/invoices/{invoice_id}",
        json={
            "invoice_date": "2025-01-02",
            "due_date": "2025-02-02",
            "line_items": [],
        },
    )
    assert update.status_code == 403
    assert update.json()["error"] == "invalid_state"

    paid = client.post(f"/api/invoices/{invoice_id}/pay", json={"payment_method": "eft"})
    assert paid.status_code == 200
    assert paid.json()["status"] == "paid"

    again = client.post(f"/api/invoices/{invoice_id}/pay", json={})
    assert again.status_code == 403
    cancel = client.post(f"/api/invoices/{invoice_id}/cancel")
    assert cancel.status_code == 403


def test_support_item_catalogue(client: TestClient) -> None:
    listing = client.get("/api/invoices/support-items")
    assert listing.status_code == 200
    numbers = {item["support_item_number"] for item in listing.json()}
    assert "01_011_0107_1_1" in numbers

    item = client.get("/api/invoices/support-items/01_011_0107_1_1")
    assert item.status_code == 200
    assert float(item.json()["unit_price"]) == pytest.approx(57.10)

    assert client.get("/api/invoices/support-items/unknown").status_code == 404


def test_recurring_appointment_endpoint(client: TestClient, participant_id: str) -> None:
    response = client.post(
        "/api/appointments",
        json={
            "title": "Community access",
            "start_time": "2025-01-01T10:00:00",
            "end_time": "2025-01-01T12:00:00",
            "participant_id": participant_id,
            "is_recurring": True,
            "recurring_pattern": "weekly",
        },
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["series"] == {"generated": 12, "reason": "generated"}

    deleted = client.delete(
        f"/api/appointments/{body['appointment']['id']}", params={"delete_series": "true"}
    )
    assert deleted.status_code == 200
    assert deleted.json()["deleted"] == 13


def test_appointment_end_before_start_is_rejected(client: TestClient, participant_id: str) -> None:
    response = client.post(
        "/api/appointments",
        json={
            "title": "Backwards",
            "start_time": "2025-01-01T10:00:00",
            "end_time": "2025-01-01T09:00:00",
            "participant_id": participant_id,
        },
    )
    assert response.status_code == 422


def test_compliance_metrics_and_report(client: TestClient) -> None:
    events = [
        ("incident", "reported_within_24_hours"),
        ("incident", "late"),
        ("staff_credential", "current"),
        (None, "login"),
    ]
    for category, details in events:
        response = client.post(
            "/api/audit-logs",
            json={
                "organization_id": "acme-care",
                "action": "recorded",
                "compliance_category": category,
                "details": details,
                "timestamp": "2025-02-01T09:00:00",
            },
        )
        assert response.status_code == 201, response.text

    metrics = client.get(
        "/api/compliance/acme-care/metrics",
        params={
            "window_start": "2025-01-01T00:00:00",
            "window_end": "2025-03-31T00:00:00",
        },
    )
    assert metrics.status_code == 200, metrics.text
    body = metrics.json()
    assert body["total_records"] == 4
    assert body["incidents"]["compliance_rate"] == pytest.approx(50.0)
    assert body["staff_credentials"]["current"] == 1
    assert body["overall_compliance_score"] == pytest.approx(0.3 * 50 + 0.2 * 100)

    report = client.get(
        "/api/audit-logs/compliance-report", params={"organization_id": "acme-care"}
    )
    assert report.status_code == 200
    assert report.json()["category_counts"] == {
        "incident": 2,
        "staff_credential": 1,
        "uncategorized": 1,
    }


def test_metrics_endpoint_exposes_prometheus_text(client: TestClient) -> None:
    response = client.get("/api/metrics")
    assert response.status_code == 200
    assert "invoice_transitions_total" in response.text


def test_appointment_update_cannot_end_before_start(client: TestClient, participant_id: str) -> None:
    created = client.post(
        "/api/appointments",
        json={
            "title": "Therapy",
            "start_time": "2025-01-01T10:00:00",
            "end_time": "2025-01-01T11:00:00",
            "participant_id": participant_id,
        },
    ).json()

    response = client.put(
        f"/api/appointments/{created['appointment']['id']}",
        json={"end_time": "2025-01-01T09:00:00"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_appointment"
