"""Ledger arithmetic for invoice line items.

Every invoice write prices its line items through :func:`price_line_items`
and derives the header totals with :func:`summarize`, so the stored
``subtotal``/``gst``/``total`` can always be reproduced by replaying the
current line items through :func:`compute_totals`.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from careflow.backend.src.core.errors import InvalidLineItem

TWO_PLACES = Decimal("0.01")
# Scale of the stored quantity and unit_price columns.
RATE_PLACES = Decimal("0.0001")
ZERO = Decimal("0.00")


@dataclass(frozen=True, slots=True)
class LineItemDraft:
    """Minimal line-item input understood by the ledger."""

    quantity: Decimal
    unit_price: Decimal
    gst_amount: Decimal = ZERO


@dataclass(frozen=True, slots=True)
class PricedLine:
    quantity: Decimal
    unit_price: Decimal
    gst_amount: Decimal
    amount: Decimal


@dataclass(frozen=True, slots=True)
class LedgerTotals:
    subtotal: Decimal
    gst: Decimal
    total: Decimal


def to_money(value: Decimal) -> Decimal:
    """Round a decimal to cents using round-half-up."""

    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _to_decimal(value: Any, field: str, index: int | None) -> Decimal:
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            # str() keeps floats such as 57.10 from dragging in binary noise.
            result = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidLineItem(f"{field} is not a number", index=index) from None
    if not result.is_finite():
        raise InvalidLineItem(f"{field} must be finite", index=index)
    return result


def price_line_item(item: Any, index: int | None = None) -> PricedLine:
    """Validate one line-item draft and compute its rounded amount."""

    quantity = _to_decimal(getattr(item, "quantity", None), "quantity", index)
    unit_price = _to_decimal(getattr(item, "unit_price", None), "unit_price", index)
    gst_amount = _to_decimal(getattr(item, "gst_amount", ZERO), "gst_amount", index)

    if quantity <= 0:
        raise InvalidLineItem("quantity must be greater than zero", index=index)
    if unit_price < 0:
        raise InvalidLineItem("unit_price must not be negative", index=index)
    if gst_amount < 0:
        raise InvalidLineItem("gst_amount must not be negative", index=index)
    for field, value in (("quantity", quantity), ("unit_price", unit_price)):
        if value != value.quantize(RATE_PLACES):
            raise InvalidLineItem(
                f"{field} must have at most 4 decimal places", index=index
            )

    return PricedLine(
        quantity=quantity,
        unit_price=unit_price,
        gst_amount=to_money(gst_amount),
        amount=to_money(quantity * unit_price),
    )


def price_line_items(items: Iterable[Any]) -> list[PricedLine]:
    """Price every draft, failing on the first invalid one."""

    return [price_line_item(item, index) for index, item in enumerate(items)]


def summarize(lines: Sequence[PricedLine]) -> LedgerTotals:
    """Sum already-priced lines into header totals."""

    subtotal = to_money(sum((line.amount for line in lines), ZERO))
    gst = to_money(sum((line.gst_amount for line in lines), ZERO))
    return LedgerTotals(subtotal=subtotal, gst=gst, total=to_money(subtotal + gst))


def compute_totals(items: Iterable[Any]) -> LedgerTotals:
    """Return ``subtotal``, ``gst`` and ``total`` for a set of line-item drafts."""

    return summarize(price_line_items(items))


__all__ = [
    "LedgerTotals",
    "LineItemDraft",
    "PricedLine",
    "compute_totals",
    "price_line_item",
    "price_line_items",
    "summarize",
    "to_money",
]
