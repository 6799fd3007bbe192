"""Update models for database operations."""

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from chorecoin.core.config import constants
from chorecoin.core.recurrence import parse_due_date, parse_recurrence
from chorecoin.domain.create_models import clean_name, coerce_points
from chorecoin.domain.task import Recurrence


class TaskUpdate(BaseModel):
    """Partial update payload for a task's editable fields.

    Only fields explicitly provided are written. ``recurrence`` may be set to None
    (or "none") to turn a recurring task into a one-off.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    description: str | None = None
    points: int | None = None
    due_date: date | None = None
    recurrence: Recurrence | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is None:
            msg = "Task name cannot be empty"
            raise ValueError(msg)
        return clean_name(v, max_length=constants.MAX_TASK_NAME_LENGTH, label="Task name")

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v: Any) -> str:
        v = (v or "").strip()
        if len(v) > constants.MAX_DESCRIPTION_LENGTH:
            msg = f"Description too long (maximum {constants.MAX_DESCRIPTION_LENGTH} characters)"
            raise ValueError(msg)
        return v

    @field_validator("points", mode="before")
    @classmethod
    def validate_points(cls, v: Any) -> int:
        return coerce_points(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def validate_due_date(cls, v: Any) -> date:
        return parse_due_date(v)

    @field_validator("recurrence", mode="before")
    @classmethod
    def validate_recurrence(cls, v: Any) -> Recurrence | None:
        return parse_recurrence(v)

    def to_record(self) -> dict[str, Any]:
        """Database columns for the fields that were explicitly set."""
        provided = self.model_fields_set
        record: dict[str, Any] = {}
        for field in ("name", "description", "points"):
            if field in provided:
                record[field] = getattr(self, field)
        if "due_date" in provided and self.due_date is not None:
            record["due_date"] = self.due_date.isoformat()
        if "recurrence" in provided:
            record["recurrence_interval"] = self.recurrence.interval if self.recurrence else None
            record["recurrence_unit"] = self.recurrence.unit.value if self.recurrence else None
        return record
