"""Member domain models."""

from pydantic import BaseModel, Field


class Member(BaseModel):
    """Member data transfer object."""

    id: str = Field(..., description="Unique member ID from database")
    group_id: str = Field(..., description="Owning group ID")
    name: str = Field(..., description="Display name of the member")
    points: int = Field(default=0, description="Current balance, may go negative")
    created: str | None = Field(default=None, description="Creation timestamp (ISO format)")
