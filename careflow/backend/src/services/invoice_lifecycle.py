"""Invoice lifecycle management.

Invoices are created in ``draft`` and may only have their financials
changed while they remain there. Every financial write prices the line
items through :mod:`.ledger`, replaces the stored line items wholesale and
commits header and lines together; any failure rolls the whole unit back.

Legal transitions::

    draft   -> sent | paid | cancelled
    sent    -> paid | overdue | cancelled
    overdue -> paid | cancelled

``paid`` and ``cancelled`` are terminal.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta, timezone
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from careflow.backend.src.core.config import get_settings
from careflow.backend.src.core.errors import ConcurrencyConflict, InvalidState, NotFound
from careflow.backend.src.models import (
    Appointment,
    Invoice,
    InvoiceLineItem,
    InvoiceStatus,
    Participant,
    StaffMember,
)
from careflow.backend.src.schemas.invoice import (
    InvoiceCreate,
    InvoicePayment,
    InvoiceRead,
    InvoiceUpdate,
)
from careflow.backend.src.schemas.line_item import (
    InvoiceLineItemInput,
    InvoiceLineItemRead,
)
from careflow.backend.src.services import notifications
from careflow.backend.src.services.invoice_numbering import assign_invoice_number
from careflow.backend.src.services.ledger import (
    LedgerTotals,
    PricedLine,
    compute_totals,
    price_line_items,
    summarize,
)
from careflow.backend.src.services.metrics import (
    invoice_number_conflicts_total,
    invoice_transitions_total,
)

LOGGER = structlog.get_logger(__name__)

DRAFT = InvoiceStatus.DRAFT.value
SENT = InvoiceStatus.SENT.value
PAID = InvoiceStatus.PAID.value
OVERDUE = InvoiceStatus.OVERDUE.value
CANCELLED = InvoiceStatus.CANCELLED.value


def _get_invoice_or_404(session: Session, invoice_id: str, *, lock: bool = False) -> Invoice:
    invoice = session.get(Invoice, invoice_id, with_for_update=lock or None)
    if invoice is None:
        raise NotFound("Invoice not found")
    return invoice


def _build_line_items(
    drafts: Sequence[InvoiceLineItemInput], priced: Sequence[PricedLine]
) -> list[InvoiceLineItem]:
    return [
        InvoiceLineItem(
            position=position,
            service_date=draft.service_date,
            support_item_number=draft.support_item_number,
            support_item_name=draft.support_item_name,
            description=draft.description,
            quantity=line.quantity,
            unit_price=line.unit_price,
            gst_code=draft.gst_code,
            gst_amount=line.gst_amount,
            amount=line.amount,
            claim_type=draft.claim_type,
            funding_category=draft.funding_category,
            appointment_id=draft.appointment_id,
            staff_member_id=draft.staff_member_id,
        )
        for position, (draft, line) in enumerate(zip(drafts, priced))
    ]


def _apply_totals(invoice: Invoice, totals: LedgerTotals) -> None:
    invoice.subtotal = totals.subtotal
    invoice.gst = totals.gst
    invoice.total = totals.total


# Driver messages naming the invoice-number constraints: PostgreSQL and MySQL
# report the constraint name, SQLite the constrained columns.
NUMBER_COLLISION_MARKERS = (
    "uq_invoices_org_number",
    "invoices.organization_id, invoices.invoice_number",
    "invoice_sequences_pkey",
    "invoice_sequences.organization_id",
)


def _is_number_collision(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return any(marker in message for marker in NUMBER_COLLISION_MARKERS)


def _check_line_item_references(
    session: Session, drafts: Sequence[InvoiceLineItemInput]
) -> None:
    """Raise :class:`NotFound` for line items pointing at unknown staff or appointments."""

    for model, attribute, label in (
        (StaffMember, "staff_member_id", "Staff member"),
        (Appointment, "appointment_id", "Appointment"),
    ):
        wanted = {getattr(draft, attribute) for draft in drafts if getattr(draft, attribute)}
        if not wanted:
            continue
        found = set(session.scalars(select(model.id).where(model.id.in_(wanted))))
        missing = sorted(wanted - found)
        if missing:
            raise NotFound(f"{label} not found: {missing[0]}")


def _insert_invoice(
    session: Session, payload: InvoiceCreate, priced: Sequence[PricedLine]
) -> Invoice:
    settings = get_settings()
    due_date = payload.due_date or payload.invoice_date + timedelta(
        days=settings.invoice_payment_terms_days
    )
    invoice = Invoice(
        invoice_number=assign_invoice_number(session, payload.organization_id),
        participant_id=payload.participant_id,
        organization_id=payload.organization_id,
        invoice_date=payload.invoice_date,
        due_date=due_date,
        status=DRAFT,
        notes=payload.notes,
        created_by=payload.created_by,
    )
    _apply_totals(invoice, summarize(priced))
    invoice.line_items = _build_line_items(payload.line_items, priced)
    session.add(invoice)
    session.flush()
    return invoice


def create_invoice(session: Session, payload: InvoiceCreate) -> Invoice:
    """Create a draft invoice and its line items as one atomic unit.

    A collision on the ``(organization_id, invoice_number)`` constraint rolls
    the attempt back and retries with a fresh number, up to
    ``INVOICE_NUMBER_MAX_ATTEMPTS`` times.
    Any other integrity failure is rolled back and re-raised as is.
    """

    priced = price_line_items(payload.line_items)
    if session.get(Participant, payload.participant_id) is None:
        raise NotFound("Participant not found")
    _check_line_item_references(session, payload.line_items)

    max_attempts = get_settings().invoice_number_max_attempts
    for attempt in range(1, max_attempts + 1):
        try:
            invoice = _insert_invoice(session, payload, priced)
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            if not _is_number_collision(exc):
                raise
            invoice_number_conflicts_total.inc()
            LOGGER.warning(
                "invoice_number_conflict",
                organization_id=payload.organization_id,
                attempt=attempt,
                error=str(exc.orig),
            )
            continue
        except Exception:
            session.rollback()
            raise

        invoice_transitions_total.labels(transition="created").inc()
        LOGGER.info(
            "invoice_created",
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            organization_id=invoice.organization_id,
            line_items=len(priced),
            total=str(invoice.total),
        )
        return get_invoice(session, invoice.id)

    raise ConcurrencyConflict(
        "Unable to assign a unique invoice number, please retry"
    )


def update_invoice(session: Session, invoice_id: str, payload: InvoiceUpdate) -> Invoice:
    """Replace a draft invoice's dates, notes and full set of line items."""

    try:
        invoice = _get_invoice_or_404(session, invoice_id, lock=True)
        if invoice.status != DRAFT:
            raise InvalidState("Cannot update a sent or paid invoice")

        priced = price_line_items(payload.line_items)
        _check_line_item_references(session, payload.line_items)
        invoice.invoice_date = payload.invoice_date
        invoice.due_date = payload.due_date
        invoice.notes = payload.notes
        _apply_totals(invoice, summarize(priced))
        # delete-orphan cascade removes the previous rows in the same flush
        invoice.line_items = _build_line_items(payload.line_items, priced)
        session.flush()
        session.commit()
    except Exception:
        session.rollback()
        raise

    invoice_transitions_total.labels(transition="updated").inc()
    LOGGER.info(
        "invoice_updated",
        invoice_id=invoice.id,
        line_items=len(priced),
        total=str(invoice.total),
    )
    return get_invoice(session, invoice.id)


def _transition(
    session: Session,
    invoice_id: str,
    *,
    allowed_from: Iterable[str],
    target: str,
    rejections: dict[str, str],
    changes: dict[str, Any] | None = None,
) -> Invoice:
    try:
        invoice = _get_invoice_or_404(session, invoice_id, lock=True)
        previous = invoice.status
        if previous not in allowed_from:
            raise InvalidState(
                rejections.get(previous, f"Invoice cannot move from {previous} to {target}")
            )
        invoice.status = target
        for field, value in (changes or {}).items():
            setattr(invoice, field, value)
        session.commit()
    except Exception:
        session.rollback()
        raise

    invoice_transitions_total.labels(transition=target).inc()
    LOGGER.info(
        "invoice_status_changed",
        invoice_id=invoice.id,
        invoice_number=invoice.invoice_number,
        previous_status=previous,
        status=target,
    )
    return invoice


def _notification_payload(invoice: Invoice) -> dict[str, Any]:
    return {
        "invoice_id": invoice.id,
        "invoice_number": invoice.invoice_number,
        "organization_id": invoice.organization_id,
        "participant_id": invoice.participant_id,
        "total": str(invoice.total),
    }


def send_invoice(session: Session, invoice_id: str, *, sent_at: datetime | None = None) -> Invoice:
    """Move a draft invoice to ``sent``; its financials are frozen from here on."""

    invoice = _transition(
        session,
        invoice_id,
        allowed_from={DRAFT},
        target=SENT,
        rejections={
            SENT: "Invoice has already been sent or processed",
            PAID: "Invoice has already been sent or processed",
            OVERDUE: "Invoice has already been sent or processed",
            CANCELLED: "Cannot send a cancelled invoice",
        },
        changes={"sent_date": sent_at or datetime.now(timezone.utc)},
    )
    notifications.notify("invoice_sent", _notification_payload(invoice))
    return invoice


def mark_paid(session: Session, invoice_id: str, payment: InvoicePayment) -> Invoice:
    """Record payment. Drafts may be paid directly without being sent first.

    Cancelled invoices are rejected: ``cancelled`` is terminal here, although
    the earlier billing screens let a cancelled invoice be marked paid.
    """

    invoice = _transition(
        session,
        invoice_id,
        allowed_from={DRAFT, SENT, OVERDUE},
        target=PAID,
        rejections={
            PAID: "Invoice has already been paid",
            CANCELLED: "Cannot mark a cancelled invoice as paid",
        },
        changes={
            "payment_method": payment.payment_method,
            "payment_date": payment.payment_date or date.today(),
            "payment_reference": payment.payment_reference,
        },
    )
    notifications.notify("invoice_paid", _notification_payload(invoice))
    return invoice


def cancel_invoice(session: Session, invoice_id: str) -> Invoice:
    invoice = _get_invoice_or_404(session, invoice_id)
    if invoice.status == CANCELLED:
        return invoice
    return _transition(
        session,
        invoice_id,
        allowed_from={DRAFT, SENT, OVERDUE},
        target=CANCELLED,
        rejections={PAID: "Cannot cancel a paid invoice"},
    )


def mark_overdue_invoices(session: Session, as_of: date | None = None) -> list[Invoice]:
    """Flag every sent invoice whose due date has passed as ``overdue``."""

    cutoff = as_of or date.today()
    try:
        invoices = list(
            session.scalars(
                select(Invoice)
                .where(Invoice.status == SENT, Invoice.due_date < cutoff)
                .with_for_update()
            )
        )
        for invoice in invoices:
            invoice.status = OVERDUE
        session.commit()
    except Exception:
        session.rollback()
        raise

    if invoices:
        invoice_transitions_total.labels(transition=OVERDUE).inc(len(invoices))
    LOGGER.info("overdue_invoices_marked", as_of=cutoff.isoformat(), count=len(invoices))
    for invoice in invoices:
        notifications.notify("invoice_overdue", _notification_payload(invoice))
    return invoices


def get_invoice(session: Session, invoice_id: str) -> Invoice:
    """Return an invoice with participant and line-item staff eagerly loaded."""

    invoice = session.scalars(
        select(Invoice)
        .options(
            selectinload(Invoice.participant),
            selectinload(Invoice.line_items).selectinload(InvoiceLineItem.staff_member),
        )
        .where(Invoice.id == invoice_id)
        .execution_options(populate_existing=True)
    ).one_or_none()
    if invoice is None:
        raise NotFound("Invoice not found")
    return invoice


def list_invoices(
    session: Session,
    *,
    organization_id: str | None = None,
    participant_id: str | None = None,
    status: str | None = None,
) -> list[Invoice]:
    query = select(Invoice).order_by(Invoice.invoice_date.desc(), Invoice.created_at.desc())
    if organization_id:
        query = query.where(Invoice.organization_id == organization_id)
    if participant_id:
        query = query.where(Invoice.participant_id == participant_id)
    if status:
        query = query.where(Invoice.status == status)
    return list(session.scalars(query))


def replay_totals(invoice: Invoice) -> LedgerTotals:
    """Recompute an invoice's totals from its stored line items."""

    return compute_totals(invoice.line_items)


def serialize_invoice(invoice: Invoice) -> InvoiceRead:
    """Build the fully populated representation used by exports."""

    line_items = [
        InvoiceLineItemRead.model_validate(item).model_copy(
            update={
                "staff_member_name": item.staff_member.display_name
                if item.staff_member
                else None
            }
        )
        for item in invoice.line_items
    ]
    participant = invoice.participant
    return InvoiceRead.model_validate(invoice).model_copy(
        update={
            "participant_name": participant.display_name if participant else None,
            "participant_ndis_number": participant.ndis_number if participant else None,
            "line_items": line_items,
        }
    )


__all__ = [
    "cancel_invoice",
    "create_invoice",
    "get_invoice",
    "list_invoices",
    "mark_overdue_invoices",
    "mark_paid",
    "replay_totals",
    "send_invoice",
    "serialize_invoice",
    "update_invoice",
]
