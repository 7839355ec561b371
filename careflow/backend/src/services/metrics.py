"""Prometheus metric definitions for billing and compliance."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

invoice_transitions_total = Counter(
    "invoice_transitions_total",
    "Invoice lifecycle transitions by kind.",
    labelnames=["transition"],
)

invoice_number_conflicts_total = Counter(
    "invoice_number_conflicts_total",
    "Invoice creations retried after an invoice number collision.",
)

recurring_occurrences_generated_total = Counter(
    "recurring_occurrences_generated_total",
    "Appointment occurrences generated from recurring templates.",
    labelnames=["pattern"],
)

compliance_metrics_seconds = Histogram(
    "compliance_metrics_seconds",
    "Time spent computing a compliance metrics snapshot.",
)

job_duration_seconds = Histogram(
    "job_duration_seconds",
    "Duration of background jobs in seconds.",
    labelnames=["queue"],
)

__all__ = [
    "compliance_metrics_seconds",
    "invoice_number_conflicts_total",
    "invoice_transitions_total",
    "job_duration_seconds",
    "recurring_occurrences_generated_total",
]
