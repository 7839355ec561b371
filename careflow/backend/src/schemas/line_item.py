"""Invoice line item schemas."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict

ClaimType = Literal["core", "capacity_building", "capital", "stated_item"]


class InvoiceLineItemInput(BaseModel):
    """A line-item draft submitted with an invoice create or update.

    Quantity and price bounds are checked by the ledger, not here, so that
    violations surface as ``InvalidLineItem`` rather than request errors.
    """

    service_date: date
    support_item_number: str
    support_item_name: str
    description: str | None = None
    quantity: Decimal
    unit_price: Decimal
    gst_code: str = "GST"
    gst_amount: Decimal = Decimal("0")
    claim_type: ClaimType = "core"
    funding_category: str | None = None
    appointment_id: str | None = None
    staff_member_id: str | None = None


class InvoiceLineItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    invoice_id: str
    service_date: date
    support_item_number: str
    support_item_name: str
    description: str | None
    quantity: Decimal
    unit_price: Decimal
    gst_code: str
    gst_amount: Decimal
    amount: Decimal
    claim_type: str
    funding_category: str | None
    appointment_id: str | None
    staff_member_id: str | None
    staff_member_name: str | None = None
