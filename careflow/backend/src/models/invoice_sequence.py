"""Per-organization invoice number counter."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from careflow.backend.src.db.base import Base


class InvoiceSequence(Base):
    """Holds the last invoice sequence number issued to an organization."""

    __tablename__ = "invoice_sequences"

    organization_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


__all__ = ["InvoiceSequence"]
