"""Due-date bucketing for the member task board."""

from datetime import date, timedelta
from typing import Any

from chorecoin.core.recurrence import parse_due_date


BUCKETS = ("overdue", "today", "tomorrow", "this_week", "later", "no_due_date")

# this_week covers [today + 2, today + 7)
_WEEK_HORIZON_DAYS = 7


def _due_date_of(task: Any) -> date | None:
    value = task.get("due_date") if isinstance(task, dict) else getattr(task, "due_date", None)
    if value is None or value == "":
        return None
    return parse_due_date(value)


def bucket_for(due_date: date | None, today: date) -> str:
    """Classify a single due date relative to ``today``."""
    if due_date is None:
        return "no_due_date"

    tomorrow = today + timedelta(days=1)
    if due_date < today:
        return "overdue"
    if due_date == today:
        return "today"
    if due_date == tomorrow:
        return "tomorrow"
    if due_date < today + timedelta(days=_WEEK_HORIZON_DAYS):
        return "this_week"
    return "later"


def group_tasks_by_due_date(tasks: list[Any], today: date | None = None) -> dict[str, list[Any]]:
    """Partition tasks into due-date buckets using date-only comparison.

    Args:
        tasks: Task records (dicts) or Task models; input order is kept within a bucket
        today: Reference day, defaults to the current local date

    Returns:
        Dict with every bucket name as a key, in display order
    """
    today = today or date.today()
    groups: dict[str, list[Any]] = {bucket: [] for bucket in BUCKETS}
    for task in tasks:
        groups[bucket_for(_due_date_of(task), today)].append(task)
    return groups
