"""Recurrence and due-date parsing utilities for task scheduling."""

import contextlib
import re
from datetime import date, datetime
from typing import Any

from dateutil import parser as dateutil_parser
from dateutil.relativedelta import relativedelta

from chorecoin.domain.task import Recurrence, RecurrenceUnit


# Named frequencies offered by the task form
_NAMED_FREQUENCIES: dict[str, Recurrence] = {
    "daily": Recurrence(interval=1, unit=RecurrenceUnit.DAYS),
    "weekly": Recurrence(interval=1, unit=RecurrenceUnit.WEEKS),
    "biweekly": Recurrence(interval=2, unit=RecurrenceUnit.WEEKS),
    "monthly": Recurrence(interval=1, unit=RecurrenceUnit.MONTHS),
}

_EVERY_PATTERN = re.compile(r"^every\s+(\d+)\s+(day|week|month)s?$")

_ISO_FULL_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_CONTRASTING_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


def parse_recurrence(value: Any) -> Recurrence | None:
    """Parse a recurrence value into a Recurrence (or None for one-off tasks).

    Supports:
    - None, "" or "none" (no recurrence)
    - Named frequencies: "daily", "weekly", "biweekly", "monthly"
    - Interval format: "every 3 days", "every 2 weeks", "every 1 month"
    - Mappings like {"interval": 2, "unit": "weeks"} and Recurrence instances

    Raises:
        ValueError: If the recurrence format is invalid
    """
    if value is None or isinstance(value, Recurrence):
        return value

    if isinstance(value, dict):
        # pydantic raises its own ValidationError (a ValueError) on bad fields
        return Recurrence.model_validate(value)

    if not isinstance(value, str):
        msg = f"Invalid recurrence format: {value!r}"
        raise ValueError(msg)

    normalized = value.strip().lower()
    if normalized in ("", "none"):
        return None

    if normalized in _NAMED_FREQUENCIES:
        return _NAMED_FREQUENCIES[normalized].model_copy()

    match = _EVERY_PATTERN.match(normalized)
    if match:
        interval = int(match.group(1))
        if interval < 1:
            msg = f"Invalid recurrence interval: {interval}. Must be at least 1"
            raise ValueError(msg)
        return Recurrence(interval=interval, unit=RecurrenceUnit(f"{match.group(2)}s"))

    msg = (
        f"Invalid recurrence format: {value}. "
        f"Use 'daily', 'weekly', 'biweekly', 'monthly' or 'every N days|weeks|months'"
    )
    raise ValueError(msg)


def advance_due_date(due_date: date, recurrence: Recurrence) -> date:
    """Return the due date of the next occurrence.

    Days and weeks are fixed offsets. Months use calendar arithmetic that clamps to the
    last valid day, so Jan 31 + 1 month is Feb 28 (or 29).

    Raises:
        ValueError: If the next occurrence falls past the last representable date
    """
    step = {
        RecurrenceUnit.DAYS: relativedelta(days=recurrence.interval),
        RecurrenceUnit.WEEKS: relativedelta(weeks=recurrence.interval),
        RecurrenceUnit.MONTHS: relativedelta(months=recurrence.interval),
    }[recurrence.unit]
    try:
        return due_date + step
    except (ValueError, OverflowError) as e:
        msg = f"Next occurrence after {due_date.isoformat()} is out of range"
        raise ValueError(msg) from e


def describe_recurrence(recurrence: Recurrence | None) -> str:
    """Convert a recurrence to human-readable text (e.g., "every 2 weeks")."""
    if recurrence is None:
        return "one-off"

    for label, named in _NAMED_FREQUENCIES.items():
        if named == recurrence:
            return label

    unit = recurrence.unit.value
    if recurrence.interval == 1:
        return f"every {unit[:-1]}"
    return f"every {recurrence.interval} {unit}"


def parse_due_date(value: Any) -> date:
    """Parse a due date, dropping any time component.

    Accepts date/datetime objects, ISO strings ("2024-06-10", "2024-06-10T08:00:00Z")
    and other unambiguous date strings ("June 10 2024").

    Raises:
        ValueError: If the value cannot be parsed as a date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        msg = f"Invalid due date: {value!r}"
        raise ValueError(msg)

    text = value.strip()
    if _ISO_FULL_DATE.match(text):
        with contextlib.suppress(ValueError):
            return dateutil_parser.isoparse(text).date()

    # Parsing against two different defaults exposes strings missing a year, month or day
    try:
        parsed = [dateutil_parser.parse(text, default=default).date() for default in _CONTRASTING_DEFAULTS]
    except (ValueError, OverflowError) as e:
        msg = f"Invalid due date: {value!r}"
        raise ValueError(msg) from e

    if parsed[0] != parsed[1]:
        msg = f"Incomplete due date: {value!r}, include day, month and year"
        raise ValueError(msg)
    return parsed[0]
