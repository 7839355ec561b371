"""Invoice schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .line_item import InvoiceLineItemInput, InvoiceLineItemRead


class InvoiceCreate(BaseModel):
    participant_id: str
    organization_id: str = Field(min_length=1)
    invoice_date: date
    due_date: date | None = None
    notes: str | None = None
    created_by: str | None = None
    line_items: list[InvoiceLineItemInput]


class InvoiceUpdate(BaseModel):
    invoice_date: date
    due_date: date
    notes: str | None = None
    line_items: list[InvoiceLineItemInput]


class InvoicePayment(BaseModel):
    """Payment details recorded when an invoice is marked paid."""

    payment_method: str | None = None
    payment_date: date | None = None
    payment_reference: str | None = None


class InvoiceSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    invoice_number: str
    participant_id: str
    organization_id: str
    invoice_date: date
    due_date: date
    status: str
    total: Decimal


class InvoiceRead(BaseModel):
    """Fully populated invoice handed to rendering and export collaborators."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    invoice_number: str
    participant_id: str
    participant_name: str | None = None
    participant_ndis_number: str | None = None
    organization_id: str
    invoice_date: date
    due_date: date
    status: str
    subtotal: Decimal
    gst: Decimal
    total: Decimal
    notes: str | None
    payment_method: str | None
    payment_date: date | None
    payment_reference: str | None
    sent_date: datetime | None
    line_items: list[InvoiceLineItemRead] = []
