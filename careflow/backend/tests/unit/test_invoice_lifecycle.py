"""Tests for invoice creation, numbering and lifecycle transitions."""

from __future__ import annotations

import os
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_careflow.db")

import pytest
from prometheus_client import REGISTRY
from sqlalchemy.exc import IntegrityError

from careflow.backend.src.core.errors import (
    ConcurrencyConflict,
    InvalidLineItem,
    InvalidState,
    NotFound,
)
from careflow.backend.src.db import financial_session_scope, get_engine, session_scope
from careflow.backend.src.db.base import Base
from careflow.backend.src.models import (
    Invoice,
    InvoiceLineItem,
    InvoiceSequence,
    Participant,
    StaffMember,
)
from careflow.backend.src.schemas.invoice import (
    InvoiceCreate,
    InvoicePayment,
    InvoiceUpdate,
)
from careflow.backend.src.services import invoice_lifecycle, notifications
from careflow.backend.src.services.invoice_numbering import format_invoice_number

ORG = "acme-care"


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def participant_id() -> str:
    with session_scope() as session:
        participant = Participant(
            organization_id=ORG,
            first_name="Jamie",
            last_name="Nguyen",
            ndis_number="430000001",
        )
        session.add(participant)
        session.flush()
        return participant.id


@pytest.fixture()
def staff_id() -> str:
    with session_scope() as session:
        staff = StaffMember(organization_id=ORG, first_name="Alex", last_name="Brown")
        session.add(staff)
        session.flush()
        return staff.id


def _line(quantity: str, unit_price: str, gst: str = "0", **extra) -> dict:
    return {
        "service_date": "2025-01-06",
        "support_item_number": "01_011_0107_1_1",
        "support_item_name": "Assistance With Self-Care Activities",
        "quantity": quantity,
        "unit_price": unit_price,
        "gst_amount": gst,
        **extra,
    }


def _create(participant_id: str, lines: list[dict] | None = None, organization_id: str = ORG):
    payload = InvoiceCreate(
        participant_id=participant_id,
        organization_id=organization_id,
        invoice_date=date(2025, 1, 1),
        line_items=lines
        if lines is not None
        else [_line("2", "57.10", "11.42"), _line("1", "103.11", "10.31")],
    )
    with financial_session_scope() as session:
        return invoice_lifecycle.create_invoice(session, payload)


def test_format_invoice_number_pads_sequence() -> None:
    assert format_invoice_number("acme-care", 7) == "INV-acme-00007"


def test_create_invoice_computes_totals_and_number(participant_id: str, staff_id: str) -> None:
    invoice = _create(
        participant_id,
        [_line("2", "57.10", "11.42", staff_member_id=staff_id), _line("1", "103.11", "10.31")],
    )

    assert invoice.invoice_number == "INV-acme-00001"
    assert invoice.status == "draft"
    assert invoice.subtotal == Decimal("217.31")
    assert invoice.gst == Decimal("21.73")
    assert invoice.total == Decimal("239.04")
    assert invoice.due_date == date(2025, 1, 31)
    assert [item.amount for item in invoice.line_items] == [Decimal("114.20"), Decimal("103.11")]

    serialized = invoice_lifecycle.serialize_invoice(invoice)
    assert serialized.participant_name == "Jamie Nguyen"
    assert serialized.participant_ndis_number == "430000001"
    assert serialized.line_items[0].staff_member_name == "Alex Brown"
    assert serialized.line_items[1].staff_member_name is None


def test_invoice_numbers_are_sequential_per_organization(participant_id: str) -> None:
    numbers = [_create(participant_id).invoice_number for _ in range(3)]
    other = _create(participant_id, organization_id="beta-health")

    assert numbers == ["INV-acme-00001", "INV-acme-00002", "INV-acme-00003"]
    assert other.invoice_number == "INV-beta-00001"


def test_counter_is_seeded_from_existing_invoices(participant_id: str) -> None:
    _create(participant_id)
    with session_scope() as session:
        session.query(InvoiceSequence).delete()

    assert _create(participant_id).invoice_number == "INV-acme-00002"


def test_number_collision_is_retried(participant_id: str, monkeypatch) -> None:  # type: ignore[no-untyped-def]
    _create(participant_id)
    candidates = iter(["INV-acme-00001", "INV-acme-00002"])
    monkeypatch.setattr(
        invoice_lifecycle, "assign_invoice_number", lambda session, org: next(candidates)
    )

    invoice = _create(participant_id)

    assert invoice.invoice_number == "INV-acme-00002"
    with session_scope() as session:
        assert session.query(Invoice).count() == 2


def test_persistent_collision_raises_concurrency_conflict(participant_id: str, monkeypatch) -> None:  # type: ignore[no-untyped-def]
    _create(participant_id)
    monkeypatch.setattr(
        invoice_lifecycle, "assign_invoice_number", lambda session, org: "INV-acme-00001"
    )

    with pytest.raises(ConcurrencyConflict):
        _create(participant_id)

    with session_scope() as session:
        assert session.query(Invoice).count() == 1
        assert session.query(InvoiceLineItem).count() == 2


def test_invalid_line_item_creates_nothing(participant_id: str) -> None:
    with pytest.raises(InvalidLineItem):
        _create(participant_id, [_line("1", "10"), _line("0", "10")])

    with session_scope() as session:
        assert session.query(Invoice).count() == 0
        assert session.query(InvoiceLineItem).count() == 0


def test_create_for_unknown_participant_raises_not_found() -> None:
    with pytest.raises(NotFound):
        _create("missing")


def test_update_replaces_line_items_and_totals(participant_id: str) -> None:
    invoice = _create(participant_id)
    payload = InvoiceUpdate(
        invoice_date=date(2025, 1, 2),
        due_date=date(2025, 2, 2),
        notes="Revised",
        line_items=[_line("3", "80.10", "24.03")],
    )

    with financial_session_scope() as session:
        updated = invoice_lifecycle.update_invoice(session, invoice.id, payload)

    assert updated.subtotal == Decimal("240.30")
    assert updated.gst == Decimal("24.03")
    assert updated.total == Decimal("264.33")
    assert updated.notes == "Revised"
    assert len(updated.line_items) == 1
    with session_scope() as session:
        assert session.query(InvoiceLineItem).count() == 1
        stored = invoice_lifecycle.get_invoice(session, invoice.id)
        assert invoice_lifecycle.replay_totals(stored).total == stored.total


def test_failed_update_leaves_invoice_untouched(participant_id: str) -> None:
    invoice = _create(participant_id)
    payload = InvoiceUpdate(
        invoice_date=date(2025, 1, 2),
        due_date=date(2025, 2, 2),
        line_items=[_line("1", "10"), _line("1", "-5")],
    )

    with pytest.raises(InvalidLineItem):
        with financial_session_scope() as session:
            invoice_lifecycle.update_invoice(session, invoice.id, payload)

    with session_scope() as session:
        stored = invoice_lifecycle.get_invoice(session, invoice.id)
        assert stored.total == Decimal("239.04")
        assert stored.invoice_date == date(2025, 1, 1)
        assert len(stored.line_items) == 2


def test_sent_invoice_cannot_be_updated(participant_id: str) -> None:
    invoice = _create(participant_id)
    with financial_session_scope() as session:
        invoice_lifecycle.send_invoice(session, invoice.id)

    payload = InvoiceUpdate(
        invoice_date=date(2025, 1, 2), due_date=date(2025, 2, 2), line_items=[]
    )
    with pytest.raises(InvalidState):
        with financial_session_scope() as session:
            invoice_lifecycle.update_invoice(session, invoice.id, payload)


def test_send_then_pay(participant_id: str) -> None:
    invoice = _create(participant_id)

    with financial_session_scope() as session:
        sent = invoice_lifecycle.send_invoice(session, invoice.id)
        assert sent.status == "sent"
        assert sent.sent_date is not None

        with pytest.raises(InvalidState):
            invoice_lifecycle.send_invoice(session, invoice.id)

        paid = invoice_lifecycle.mark_paid(
            session,
            invoice.id,
            InvoicePayment(payment_method="bank_transfer", payment_reference="REF-1"),
        )

    assert paid.status == "paid"
    assert paid.payment_method == "bank_transfer"
    assert paid.payment_date is not None


def test_draft_can_be_paid_directly(participant_id: str) -> None:
    invoice = _create(participant_id)

    with financial_session_scope() as session:
        paid = invoice_lifecycle.mark_paid(
            session, invoice.id, InvoicePayment(payment_date=date(2025, 1, 10))
        )

    assert paid.status == "paid"
    assert paid.payment_date == date(2025, 1, 10)


def test_paid_invoice_is_terminal(participant_id: str) -> None:
    invoice = _create(participant_id)
    with financial_session_scope() as session:
        invoice_lifecycle.mark_paid(session, invoice.id, InvoicePayment())

        with pytest.raises(InvalidState, match="already been paid"):
            invoice_lifecycle.mark_paid(session, invoice.id, InvoicePayment())
        with pytest.raises(InvalidState, match="Cannot cancel a paid invoice"):
            invoice_lifecycle.cancel_invoice(session, invoice.id)


def test_cancel_is_idempotent_and_blocks_payment(participant_id: str) -> None:
    invoice = _create(participant_id)

    with financial_session_scope() as session:
        assert invoice_lifecycle.cancel_invoice(session, invoice.id).status == "cancelled"
        assert invoice_lifecycle.cancel_invoice(session, invoice.id).status == "cancelled"
        with pytest.raises(InvalidState):
            invoice_lifecycle.mark_paid(session, invoice.id, InvoicePayment())
        with pytest.raises(InvalidState):
            invoice_lifecycle.send_invoice(session, invoice.id)


def test_overdue_sweep_only_touches_past_due_sent_invoices(participant_id: str) -> None:
    sent = _create(participant_id)
    draft = _create(participant_id)
    with financial_session_scope() as session:
        invoice_lifecycle.send_invoice(session, sent.id)

    with financial_session_scope() as session:
        assert invoice_lifecycle.mark_overdue_invoices(session, as_of=date(2025, 1, 31)) == []
        overdue = invoice_lifecycle.mark_overdue_invoices(session, as_of=date(2025, 2, 1))

    assert [invoice.id for invoice in overdue] == [sent.id]
    with financial_session_scope() as session:
        assert invoice_lifecycle.get_invoice(session, draft.id).status == "draft"
        paid = invoice_lifecycle.mark_paid(session, sent.id, InvoicePayment())
    assert paid.status == "paid"


def test_notification_failure_does_not_undo_transition(participant_id: str) -> None:
    invoice = _create(participant_id)

    def broken_sender(event: str, payload: dict) -> None:
        raise RuntimeError("mail server down")

    notifications.register_sender(broken_sender)
    try:
        with financial_session_scope() as session:
            sent = invoice_lifecycle.send_invoice(session, invoice.id)
    finally:
        notifications.unregister_sender(broken_sender)

    assert sent.status == "sent"
    with session_scope() as session:
        assert invoice_lifecycle.get_invoice(session, invoice.id).status == "sent"


def test_list_invoices_filters_by_status(participant_id: str) -> None:
    first = _create(participant_id)
    _create(participant_id)
    with financial_session_scope() as session:
        invoice_lifecycle.send_invoice(session, first.id)

    with session_scope() as session:
        sent = invoice_lifecycle.list_invoices(session, organization_id=ORG, status="sent")
        everything = invoice_lifecycle.list_invoices(session, organization_id=ORG)

    assert [invoice.id for invoice in sent] == [first.id]
    assert len(everything) == 2


def _conflicts() -> float:
    return REGISTRY.get_sample_value("invoice_number_conflicts_total") or 0.0


def test_fractional_quantities_replay_to_stored_totals(participant_id: str) -> None:
    invoice = _create(participant_id, [_line("0.125", "67.56"), _line("2.5", "57.1034", "1.43")])

    with session_scope() as session:
        stored = invoice_lifecycle.get_invoice(session, invoice.id)
        replayed = invoice_lifecycle.replay_totals(stored)

    assert stored.line_items[0].quantity == Decimal("0.125")
    assert stored.subtotal == Decimal("151.21")
    assert replayed.subtotal == stored.subtotal
    assert replayed.gst == stored.gst
    assert replayed.total == stored.total


def test_unknown_staff_member_is_not_found(participant_id: str) -> None:
    before = _conflicts()

    with pytest.raises(NotFound, match="Staff member"):
        _create(participant_id, [_line("1", "10", staff_member_id="no-such-staff")])

    assert _conflicts() == before
    with session_scope() as session:
        assert session.query(Invoice).count() == 0


def test_unknown_appointment_is_not_found_on_update(participant_id: str) -> None:
    invoice = _create(participant_id)
    payload = InvoiceUpdate(
        invoice_date=date(2025, 1, 2),
        due_date=date(2025, 2, 2),
        line_items=[_line("1", "10", appointment_id="no-such-appointment")],
    )

    with pytest.raises(NotFound, match="Appointment"):
        with financial_session_scope() as session:
            invoice_lifecycle.update_invoice(session, invoice.id, payload)

    with session_scope() as session:
        assert len(invoice_lifecycle.get_invoice(session, invoice.id).line_items) == 2


def test_other_integrity_errors_are_not_retried(participant_id: str, monkeypatch) -> None:  # type: ignore[no-untyped-def]
    calls: list[int] = []

    def failing_insert(session, payload, priced):  # type: ignore[no-untyped-def]
        calls.append(1)
        raise IntegrityError("INSERT INTO invoice_line_items", {}, Exception("FOREIGN KEY constraint failed"))

    monkeypatch.setattr(invoice_lifecycle, "_insert_invoice", failing_insert)
    before = _conflicts()

    with pytest.raises(IntegrityError):
        _create(participant_id)

    assert len(calls) == 1
    assert _conflicts() == before
