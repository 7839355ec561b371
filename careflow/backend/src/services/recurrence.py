"""Recurring appointment series generation.

A template appointment expands into occurrences spaced by its pattern,
strictly after the template's own start and strictly before a fixed
three-calendar-month horizon. Every occurrence keeps the template's
duration.

Monthly steps are anchored to the template rather than chained, and land
on the last day of the month when the template's day does not exist:
a series starting on 31 January continues on 28 (or 29) February, then
31 March, 30 April and so on.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from dateutil.relativedelta import relativedelta

from careflow.backend.src.core.errors import NoOccurrencesGenerated

SERIES_HORIZON = relativedelta(months=3)


class RecurringPattern(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    FORTNIGHTLY = "fortnightly"
    MONTHLY = "monthly"


_STEPS: dict[RecurringPattern, relativedelta] = {
    RecurringPattern.DAILY: relativedelta(days=1),
    RecurringPattern.WEEKLY: relativedelta(days=7),
    RecurringPattern.FORTNIGHTLY: relativedelta(days=14),
    RecurringPattern.MONTHLY: relativedelta(months=1),
}


@dataclass(frozen=True, slots=True)
class AppointmentTemplate:
    start_time: datetime
    end_time: datetime
    # Descriptive and billing fields copied onto every occurrence.
    fields: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Occurrence:
    start_time: datetime
    end_time: datetime
    fields: Mapping[str, Any]


def parse_pattern(pattern: str | None) -> RecurringPattern:
    """Return the pattern enum or raise :class:`NoOccurrencesGenerated`."""

    try:
        return RecurringPattern((pattern or "").strip().lower())
    except ValueError:
        raise NoOccurrencesGenerated(pattern) from None


def series_end(start_time: datetime) -> datetime:
    """Return the exclusive horizon for a series starting at ``start_time``."""

    return start_time + SERIES_HORIZON


def generate_series(template: AppointmentTemplate, pattern: str | None) -> Iterator[Occurrence]:
    """Lazily yield the occurrences following ``template``.

    The pattern is checked eagerly so an unrecognised value raises here
    rather than on first iteration. The template's own start is never
    yielded.
    """

    step = _STEPS[parse_pattern(pattern)]
    return _iterate(template, step)


def _iterate(template: AppointmentTemplate, step: relativedelta) -> Iterator[Occurrence]:
    duration = template.end_time - template.start_time
    horizon = series_end(template.start_time)
    index = 1
    while True:
        current = template.start_time + step * index
        if current >= horizon:
            return
        yield Occurrence(
            start_time=current,
            end_time=current + duration,
            fields=dict(template.fields),
        )
        index += 1


__all__ = [
    "AppointmentTemplate",
    "Occurrence",
    "RecurringPattern",
    "SERIES_HORIZON",
    "generate_series",
    "parse_pattern",
    "series_end",
]
