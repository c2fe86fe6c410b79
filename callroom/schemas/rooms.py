"""Data contracts for room endpoints."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RoomCreateRequest(BaseModel):
    name: str | None = Field(default=None, description="Room name; normalized before use")


class InviteResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    invite_url: str = Field(..., alias="inviteUrl")
