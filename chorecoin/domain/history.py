"""History domain models and enums."""

from enum import StrEnum

from pydantic import BaseModel, Field


class HistoryAction(StrEnum):
    """Kind of event recorded in the activity feed."""

    MEMBER_ADDED = "member_added"
    TASK_CREATED = "task_created"
    TASK_COMPLETED = "task_completed"
    POINTS_ADJUSTED = "points_adjusted"


class HistoryEntry(BaseModel):
    """Immutable activity feed entry.

    Member and task names are copied at write time, so entries stay readable after
    the member or task is removed.
    """

    id: str = Field(..., description="Unique entry ID from database")
    group_id: str = Field(..., description="Owning group ID")
    action: HistoryAction = Field(..., description="What happened")
    member_name: str = Field(..., description="Name of the acting or affected member")
    task_name: str | None = Field(default=None, description="Task name for task events")
    points: int = Field(default=0, description="Signed point delta")
    note: str | None = Field(default=None, description="Free-text note for adjustments")
    timestamp: str = Field(..., description="When the event happened (ISO format)")
