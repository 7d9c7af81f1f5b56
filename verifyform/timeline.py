# verifyform/timeline.py
"""Dated entries (residences, jobs) and how many years they cover together."""
from __future__ import annotations
from datetime import datetime
from typing import Any
from collections.abc import Iterable

from .validation import DATE_FORMAT_DAY, DATE_FORMAT_MONTH

DAYS_PER_YEAR: float = 365.25
SECONDS_PER_YEAR: float = DAYS_PER_YEAR * 24 * 60 * 60

def parse_entry_date(value: Any) -> datetime | None:
    """'2020-01' -> 2020-01-01, '2020-01-15' -> 2020-01-15, anything else -> None."""
    if not isinstance(value, str) or not value:
        return None
    for fmt in (DATE_FORMAT_DAY, DATE_FORMAT_MONTH):
        try:
            return datetime.strptime(value.strip(), fmt)
        except ValueError:
            continue
    return None

def _years_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / SECONDS_PER_YEAR

def entry_span(entry: dict[str, Any], now: datetime) -> tuple[datetime, datetime] | None:
    """(start, effective end) of an entry; current entries run until `now`. None if undated."""
    start = parse_entry_date(entry.get('startDate'))
    if start is None:
        return None
    if entry.get('isCurrent'):
        return start, now
    end = parse_entry_date(entry.get('endDate'))
    if end is None:
        return None
    return start, end

def calculate_coverage(entries: Iterable[dict[str, Any]], now: datetime) -> float:
    """
    Total years covered by the entries without double counting overlaps.

    Entries are swept in start order while tracking the latest end seen so
    far: a disjoint entry adds its whole duration, an overlapping one only
    the part that extends past the latest end. Undated entries are skipped.
    """
    spans = sorted(
        (span for span in (entry_span(e, now) for e in entries) if span is not None),
        key=lambda span: span[0],
    )
    total = 0.0
    latest_end: datetime | None = None
    for start, end in spans:
        if latest_end is None or start > latest_end:
            total += max(0.0, _years_between(start, end))
        else:
            total += max(0.0, _years_between(latest_end, end))
        latest_end = end if latest_end is None else max(latest_end, end)
    return total
