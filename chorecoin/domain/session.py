"""Explicit per-request session context."""

from pydantic import BaseModel, ConfigDict, Field


class SessionContext(BaseModel):
    """Who is acting, in which group, and whether admin rights were granted."""

    model_config = ConfigDict(frozen=True)

    group_id: str = Field(..., description="Group the session is scoped to")
    member_id: str | None = Field(default=None, description="Acting member, if one is selected")
    is_admin: bool = Field(default=False, description="True after successful PIN verification")
