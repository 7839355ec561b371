"""Invoice line item model."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from careflow.backend.src.db.base import Base, new_id

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .invoice import Invoice
    from .staff_member import StaffMember

CLAIM_TYPES = ("core", "capacity_building", "capital", "stated_item")


class InvoiceLineItem(Base):
    """One billable service instance within an invoice."""

    __tablename__ = "invoice_line_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_line_items_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_line_items_unit_price_non_negative"),
        CheckConstraint(
            "claim_type IN (" + ", ".join(f"'{value}'" for value in CLAIM_TYPES) + ")",
            name="ck_line_items_claim_type",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    invoice_id: Mapped[str] = mapped_column(
        ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Preserves the caller's ordering across full replacements.
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    service_date: Mapped[date] = mapped_column(Date, nullable=False)
    support_item_number: Mapped[str] = mapped_column(String(32), nullable=False)
    support_item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    gst_code: Mapped[str] = mapped_column(String(16), nullable=False, default="GST")
    gst_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0.00")
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    claim_type: Mapped[str] = mapped_column(String(32), nullable=False, default="core")
    funding_category: Mapped[str | None] = mapped_column(String(128), nullable=True)
    appointment_id: Mapped[str | None] = mapped_column(
        ForeignKey("appointments.id"), nullable=True
    )
    staff_member_id: Mapped[str | None] = mapped_column(
        ForeignKey("staff_members.id"), nullable=True
    )

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="line_items")
    staff_member: Mapped["StaffMember | None"] = relationship("StaffMember")


__all__ = ["CLAIM_TYPES", "InvoiceLineItem"]
