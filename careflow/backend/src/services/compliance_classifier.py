"""Classification of audit-log records into compliance categories."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ComplianceCategory(str, Enum):
    RESTRICTIVE_PRACTICE = "restrictive_practice"
    INCIDENT = "incident"
    PARTICIPANT_FEEDBACK = "participant_feedback"
    STAFF_CREDENTIAL = "staff_credential"


class CredentialStatus(str, Enum):
    CURRENT = "current"
    EXPIRED = "expired"
    UNKNOWN = "unknown"


# Free-text markers written into ``details`` by the reporting screens.
REPORTED_WITHIN_24_HOURS = "reported_within_24_hours"
RESPONDED_WITHIN_7_DAYS = "responded_within_7_days"
CREDENTIAL_CURRENT = "current"
CREDENTIAL_EXPIRED = "expired"

_TIMELINESS_MARKERS: dict[ComplianceCategory, str] = {
    ComplianceCategory.RESTRICTIVE_PRACTICE: REPORTED_WITHIN_24_HOURS,
    ComplianceCategory.INCIDENT: REPORTED_WITHIN_24_HOURS,
    ComplianceCategory.PARTICIPANT_FEEDBACK: RESPONDED_WITHIN_7_DAYS,
}


@dataclass(frozen=True, slots=True)
class Classification:
    category: ComplianceCategory | None
    compliant: bool = False
    credential_status: CredentialStatus | None = None


UNCATEGORIZED = Classification(category=None)


def classify_category(record: Any) -> ComplianceCategory | None:
    """Return the record's declared category, or ``None`` when unrecognised."""

    raw = getattr(record, "compliance_category", None)
    if not raw:
        return None
    try:
        return ComplianceCategory(raw)
    except ValueError:
        return None


def credential_status(record: Any) -> CredentialStatus:
    """Classify a staff credential record as current, expired or unknown.

    An explicit ``timeliness_met`` flag wins; otherwise ``current`` is
    checked before ``expired`` so the two are mutually exclusive.
    """

    flag = getattr(record, "timeliness_met", None)
    if flag is not None:
        return CredentialStatus.CURRENT if flag else CredentialStatus.EXPIRED

    details = getattr(record, "details", None) or ""
    if CREDENTIAL_CURRENT in details:
        return CredentialStatus.CURRENT
    if CREDENTIAL_EXPIRED in details:
        return CredentialStatus.EXPIRED
    return CredentialStatus.UNKNOWN


def is_timely(record: Any, category: ComplianceCategory) -> bool:
    flag = getattr(record, "timeliness_met", None)
    if flag is not None:
        return bool(flag)
    details = getattr(record, "details", None) or ""
    return _TIMELINESS_MARKERS[category] in details


def classify(record: Any) -> Classification:
    """Map one audit-log record to its category and compliance outcome."""

    category = classify_category(record)
    if category is None:
        return UNCATEGORIZED
    if category is ComplianceCategory.STAFF_CREDENTIAL:
        status = credential_status(record)
        return Classification(
            category=category,
            compliant=status is CredentialStatus.CURRENT,
            credential_status=status,
        )
    return Classification(category=category, compliant=is_timely(record, category))


__all__ = [
    "Classification",
    "ComplianceCategory",
    "CredentialStatus",
    "RESPONDED_WITHIN_7_DAYS",
    "REPORTED_WITHIN_24_HOURS",
    "classify",
    "classify_category",
    "credential_status",
    "is_timely",
]
