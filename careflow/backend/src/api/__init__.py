"""Public API routers exposed by the FastAPI application."""

from . import appointments, audit_logs, compliance, health, invoices

__all__ = [
    "appointments",
    "audit_logs",
    "compliance",
    "health",
    "invoices",
]
