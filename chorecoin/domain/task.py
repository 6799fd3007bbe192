"""Task domain models and enums."""

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, Field, PositiveInt

from chorecoin.core.config import constants


class TaskStatus(StrEnum):
    """Task lifecycle state."""

    AVAILABLE = "available"
    CLAIMED = "claimed"
    COMPLETED = "completed"


# Statuses shown on the member board
OPEN_STATUSES: tuple[TaskStatus, ...] = (TaskStatus.AVAILABLE, TaskStatus.CLAIMED)


class RecurrenceUnit(StrEnum):
    """Unit of a recurrence interval."""

    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"


class Recurrence(BaseModel):
    """Repeat rule: every ``interval`` ``unit``."""

    interval: PositiveInt = Field(
        ..., le=constants.MAX_RECURRENCE_INTERVAL, description="How many units between occurrences"
    )
    unit: RecurrenceUnit = Field(..., description="days, weeks or months")


class Task(BaseModel):
    """Task data transfer object."""

    id: str = Field(..., description="Unique task ID from database")
    group_id: str = Field(..., description="Owning group ID")
    name: str = Field(..., description="Task name (e.g., 'Take out trash')")
    description: str = Field(default="", description="Optional details")
    points: int = Field(..., description="Points awarded on completion")
    due_date: date | None = Field(default=None, description="Due date (date-only semantics)")
    recurrence: Recurrence | None = Field(default=None, description="Repeat rule, None for one-off tasks")
    status: TaskStatus = Field(default=TaskStatus.AVAILABLE, description="Current lifecycle state")
    claimed_by: str | None = Field(default=None, description="Member ID holding the claim")
    claimed_at: str | None = Field(default=None, description="When the claim was taken (ISO format)")
    completed_by: str | None = Field(default=None, description="Member ID who completed the task")
    completed_at: str | None = Field(default=None, description="When the task was completed (ISO format)")

    @classmethod
    def from_record(cls, record: dict) -> "Task":
        """Build a Task from a flat database record."""
        recurrence = None
        if record.get("recurrence_interval") and record.get("recurrence_unit"):
            recurrence = Recurrence(interval=record["recurrence_interval"], unit=record["recurrence_unit"])
        return cls(
            **{k: v for k, v in record.items() if k in cls.model_fields and k != "recurrence"},
            recurrence=recurrence,
        )
