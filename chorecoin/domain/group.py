"""Group domain models."""

from pydantic import BaseModel, Field


class Group(BaseModel):
    """Group (household) data transfer object.

    The admin PIN is deliberately absent; it never leaves the group service.
    """

    id: str = Field(..., description="Unique group ID from database")
    name: str = Field(..., description="Household name")
    code: str = Field(..., description="Join code in XXXX-XXXX format")
    created: str | None = Field(default=None, description="Creation timestamp (ISO format)")
