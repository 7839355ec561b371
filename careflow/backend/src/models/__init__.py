"""ORM models exposed for easy imports."""

from .appointment import Appointment
from .audit_log import AuditLog
from .invoice import Invoice, InvoiceStatus
from .invoice_sequence import InvoiceSequence
from .line_item import InvoiceLineItem
from .participant import Participant
from .staff_member import StaffMember

__all__ = [
    "Appointment",
    "AuditLog",
    "Invoice",
    "InvoiceLineItem",
    "InvoiceSequence",
    "InvoiceStatus",
    "Participant",
    "StaffMember",
]
