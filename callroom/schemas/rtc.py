"""Data contracts for meeting token endpoints."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_name: str | None = Field(default=None, alias="roomName", description="Room to join")
    user_name: str | None = Field(default=None, alias="userName", description="Display name")
    is_owner: bool = Field(default=False, alias="isOwner")


class TokenResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str = Field(..., description="Meeting token for the provider")
    room_url: str = Field(..., alias="roomUrl", description="URL the call frame joins")
