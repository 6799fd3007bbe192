"""Domain models and DTOs."""

from chorecoin.domain.group import Group
from chorecoin.domain.history import HistoryAction, HistoryEntry
from chorecoin.domain.member import Member
from chorecoin.domain.session import SessionContext
from chorecoin.domain.task import OPEN_STATUSES, Recurrence, RecurrenceUnit, Task, TaskStatus


__all__ = [
    "OPEN_STATUSES",
    "Group",
    "HistoryAction",
    "HistoryEntry",
    "Member",
    "Recurrence",
    "RecurrenceUnit",
    "SessionContext",
    "Task",
    "TaskStatus",
]
