"""Invoice related endpoints."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from careflow.backend.src.db import get_financial_session_dependency
from careflow.backend.src.schemas.invoice import (
    InvoiceCreate,
    InvoicePayment,
    InvoiceRead,
    InvoiceSummary,
    InvoiceUpdate,
)
from careflow.backend.src.services import invoice_lifecycle
from careflow.backend.src.services.support_items import (
    get_support_item,
    list_support_items,
)

LOGGER = structlog.get_logger(__name__)

router = APIRouter(prefix="/invoices", tags=["invoices"])


# --------------------------------------------------------------------------
# NDIS support item catalogue
# --------------------------------------------------------------------------
@router.get("/support-items")
def support_items() -> list[dict[str, Any]]:
    """Return the NDIS support items available for billing."""

    return [item.as_dict() for item in list_support_items()]


@router.get("/support-items/{support_item_number}")
def support_item(support_item_number: str) -> dict[str, Any]:
    item = get_support_item(support_item_number)
    if item is None:
        raise HTTPException(status_code=404, detail="Support item not found")
    return item.as_dict()


# --------------------------------------------------------------------------
# Invoice CRUD and lifecycle transitions
# --------------------------------------------------------------------------
@router.post("", status_code=status.HTTP_201_CREATED, response_model=InvoiceRead)
def create_invoice(
    payload: InvoiceCreate,
    session: Session = Depends(get_financial_session_dependency),
) -> InvoiceRead:
    """Create a draft invoice together with its line items."""

    invoice = invoice_lifecycle.create_invoice(session, payload)
    return invoice_lifecycle.serialize_invoice(invoice)


@router.get("", response_model=list[InvoiceSummary])
def list_invoices(
    organization_id: str | None = Query(None),
    participant_id: str | None = Query(None),
    invoice_status: str | None = Query(None, alias="status"),
    session: Session = Depends(get_financial_session_dependency),
) -> list[InvoiceSummary]:
    invoices = invoice_lifecycle.list_invoices(
        session,
        organization_id=organization_id,
        participant_id=participant_id,
        status=invoice_status,
    )
    return [InvoiceSummary.model_validate(invoice) for invoice in invoices]


@router.get("/{invoice_id}", response_model=InvoiceRead)
def get_invoice(
    invoice_id: str,
    session: Session = Depends(get_financial_session_dependency),
) -> InvoiceRead:
    return invoice_lifecycle.serialize_invoice(
        invoice_lifecycle.get_invoice(session, invoice_id)
    )


@router.put("/{invoice_id}", response_model=InvoiceRead)
def update_invoice(
    invoice_id: str,
    payload: InvoiceUpdate,
    session: Session = Depends(get_financial_session_dependency),
) -> InvoiceRead:
    """Replace a draft invoice's details and line items."""

    invoice = invoice_lifecycle.update_invoice(session, invoice_id, payload)
    return invoice_lifecycle.serialize_invoice(invoice)


@router.post("/{invoice_id}/send", response_model=InvoiceRead)
def send_invoice(
    invoice_id: str,
    session: Session = Depends(get_financial_session_dependency),
) -> InvoiceRead:
    invoice_lifecycle.send_invoice(session, invoice_id)
    return invoice_lifecycle.serialize_invoice(
        invoice_lifecycle.get_invoice(session, invoice_id)
    )


@router.post("/{invoice_id}/pay", response_model=InvoiceRead)
def mark_invoice_paid(
    invoice_id: str,
    payment: InvoicePayment,
    session: Session = Depends(get_financial_session_dependency),
) -> InvoiceRead:
    invoice_lifecycle.mark_paid(session, invoice_id, payment)
    return invoice_lifecycle.serialize_invoice(
        invoice_lifecycle.get_invoice(session, invoice_id)
    )


@router.post("/{invoice_id}/cancel", response_model=InvoiceRead)
def cancel_invoice(
    invoice_id: str,
    session: Session = Depends(get_financial_session_dependency),
) -> InvoiceRead:
    invoice_lifecycle.cancel_invoice(session, invoice_id)
    return invoice_lifecycle.serialize_invoice(
        invoice_lifecycle.get_invoice(session, invoice_id)
    )
