"""Invoice number assignment backed by a per-organization counter."""

from __future__ import annotations

import structlog
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from careflow.backend.src.models import Invoice, InvoiceSequence

LOGGER = structlog.get_logger(__name__)

SEQUENCE_WIDTH = 5


def format_invoice_number(organization_id: str, sequence: int) -> str:
    """Return ``INV-<org4>-<sequence5>`` for an organization and sequence."""

    return f"INV-{organization_id[:4]}-{sequence:0{SEQUENCE_WIDTH}d}"


def next_invoice_sequence(session: Session, organization_id: str) -> int:
    """Atomically advance and return the organization's invoice counter.

    The counter row is locked for the rest of the caller's transaction. When
    an organization has no counter yet it is seeded from the number of
    invoices it already owns; two writers seeding at once collide on the
    primary key and the loser is expected to retry its whole transaction.
    """

    counter = session.execute(
        select(InvoiceSequence)
        .where(InvoiceSequence.organization_id == organization_id)
        .with_for_update()
    ).scalar_one_or_none()

    if counter is None:
        existing = session.scalar(
            select(func.count())
            .select_from(Invoice)
            .where(Invoice.organization_id == organization_id)
        ) or 0
        counter = InvoiceSequence(organization_id=organization_id, last_value=existing)
        session.add(counter)
        LOGGER.info(
            "invoice_sequence_seeded",
            organization_id=organization_id,
            existing_invoices=existing,
        )

    counter.last_value += 1
    session.flush()
    return counter.last_value


def assign_invoice_number(session: Session, organization_id: str) -> str:
    return format_invoice_number(
        organization_id, next_invoice_sequence(session, organization_id)
    )


__all__ = ["assign_invoice_number", "format_invoice_number", "next_invoice_sequence"]
