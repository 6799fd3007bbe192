"""Pydantic models for creating records in database."""

import re
from datetime import date
from typing import Any

from pydantic import BaseModel, Field, field_validator

from chorecoin.core.config import constants
from chorecoin.core.recurrence import parse_due_date, parse_recurrence
from chorecoin.domain.task import Recurrence


_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")
_PIN_PATTERN = re.compile(rf"^\d{{{constants.ADMIN_PIN_LENGTH}}}$")


def coerce_points(value: Any) -> int:
    """Accept ints and integer strings ("5", " -3 "); reject floats, booleans and text.

    Raises:
        ValueError: If the value is not an integer
    """
    if isinstance(value, bool):
        msg = "Points must be a whole number"
        raise ValueError(msg)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INTEGER_PATTERN.match(value.strip()):
        return int(value.strip())
    msg = f"Points must be a whole number, got {value!r}"
    raise ValueError(msg)


def clean_name(value: str, *, max_length: int, label: str = "Name") -> str:
    """Strip a display name and check it is non-empty and not too long."""
    value = value.strip()
    if not value:
        msg = f"{label} cannot be empty"
        raise ValueError(msg)
    if len(value) > max_length:
        msg = f"{label} too long (maximum {max_length} characters)"
        raise ValueError(msg)
    return value


class TaskCreate(BaseModel):
    """Pydantic model for creating a task record."""

    group_id: str = Field(..., description="Owning group ID")
    name: str = Field(..., description="Task name")
    description: str = Field(default="", description="Optional details")
    points: int = Field(..., description="Points awarded on completion")
    due_date: date = Field(..., description="Due date")
    recurrence: Recurrence | None = Field(default=None, description="Repeat rule")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate the task name is non-empty after stripping."""
        return clean_name(v, max_length=constants.MAX_TASK_NAME_LENGTH, label="Task name")

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v: Any) -> str:
        """Treat a missing description as empty and cap its length."""
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
        """Flatten into database columns for a new, unclaimed task."""
        return {
            "group_id": self.group_id,
            "name": self.name,
            "description": self.description,
            "points": self.points,
            "due_date": self.due_date.isoformat(),
            "recurrence_interval": self.recurrence.interval if self.recurrence else None,
            "recurrence_unit": self.recurrence.unit.value if self.recurrence else None,
            "status": "available",
            "claimed_by": None,
            "claimed_at": None,
            "completed_by": None,
            "completed_at": None,
        }


class MemberCreate(BaseModel):
    """Pydantic model for creating a member record."""

    group_id: str = Field(..., description="Owning group ID")
    name: str = Field(..., description="Display name of the member")
    points: int = Field(default=0, description="Starting balance")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return clean_name(v, max_length=constants.MAX_NAME_LENGTH)


class GroupCreate(BaseModel):
    """Pydantic model for creating a group record."""

    name: str = Field(..., description="Household name")
    code: str = Field(..., description="Join code")
    admin_pin: str = Field(..., description="Four-digit admin PIN")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return clean_name(v, max_length=constants.MAX_NAME_LENGTH, label="Group name")

    @field_validator("admin_pin")
    @classmethod
    def validate_admin_pin(cls, v: str) -> str:
        """Validate the PIN is exactly four digits."""
        if not _PIN_PATTERN.match(v):
            msg = f"Admin PIN must be exactly {constants.ADMIN_PIN_LENGTH} digits"
            raise ValueError(msg)
        return v


class PointAdjustment(BaseModel):
    """Manual point change made by an admin."""

    delta: int = Field(..., description="Signed change to apply")
    note: str | None = Field(default=None, description="Reason shown in the activity feed")

    @field_validator("delta", mode="before")
    @classmethod
    def validate_delta(cls, v: Any) -> int:
        return coerce_points(v)

    @field_validator("note", mode="before")
    @classmethod
    def validate_note(cls, v: Any) -> str | None:
        """Blank notes are stored as None."""
        if v is None:
            return None
        v = str(v).strip()
        if len(v) > constants.MAX_NOTE_LENGTH:
            msg = f"Note too long (maximum {constants.MAX_NOTE_LENGTH} characters)"
            raise ValueError(msg)
        return v or None
