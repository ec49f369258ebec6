"""Helpers for plant reading snapshots and reading history series."""

from datetime import datetime
from typing import Any

from sitefleet.database import as_utc
from sitefleet.models import PlantRecord, Routine
from sitefleet.transactions.errors import ResolutionError


def parse_timestamp(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        return as_utc(value)
    return as_utc(datetime.fromisoformat(value))


def routine_reading_attr(routine: Routine) -> str:
    """Which column holds the routine's reading (legacy rows use latest_reading)."""
    if routine.plant_reading:
        return "plant_reading"
    if routine.latest_reading:
        return "latest_reading"
    return "plant_reading"


def routine_reading(routine: Routine | None) -> dict[str, Any] | None:
    if routine is None:
        return None
    return getattr(routine, routine_reading_attr(routine)) or None


def amend_record_at_date(
    record: PlantRecord,
    reading_type: str,
    date: datetime,
    value: Any,
) -> Any:
    """Replace the value in effect at ``date`` in one series and return the old value.

    The series is scanned newest first and the first entry not after ``date``
    is overwritten in place, so the series never grows. History is only
    amended: an entry must already exist at or before ``date``.
    """
    series = getattr(record, reading_type, None)
    if series is None:
        raise ResolutionError(f"Update Site: no reading type of {reading_type} on PlantRecord")

    target = as_utc(date)
    ordered = sorted(series, key=lambda entry: parse_timestamp(entry[0]), reverse=True)
    for index, (timestamp, prev) in enumerate(ordered):
        if parse_timestamp(timestamp) <= target:
            ordered[index] = [timestamp, value]
            # New list so the JSON column is seen as changed
            setattr(record, reading_type, ordered)
            return prev

    raise ResolutionError(
        f"Update Site: no record found of type {reading_type} on {target.isoformat()}"
    )
