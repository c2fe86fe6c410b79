"""Room provisioning endpoints."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from ..core.config import Settings, get_settings
from ..deps import get_room_service
from ..schemas.rooms import InviteResponse, RoomCreateRequest
from ..services.errors import InvalidRequestError, ProviderError, RoomNotFoundError
from ..services.rooms import RoomProvisioningService, invite_url, normalize_room_name

router = APIRouter()


@router.post("/rooms")
async def create_room(
    payload: RoomCreateRequest,
    rooms: RoomProvisioningService = Depends(get_room_service),
) -> dict[str, Any]:
    """Create the room, or return it when it already exists."""

    room = await rooms.ensure_room(payload.name)
    return room.record


@router.get("/rooms")
async def get_room(
    name: str | None = Query(default=None),
    rooms: RoomProvisioningService = Depends(get_room_service),
) -> dict[str, Any]:
    """Look up an existing room by name."""

    if not name:
        raise InvalidRequestError("Room name required")
    try:
        room = await rooms.get_room(name)
    except ProviderError as exc:
        raise RoomNotFoundError("Room not found") from exc
    return room.record


@router.get("/rooms/{name}/invite", response_model=InviteResponse)
async def get_invite(name: str, settings: Settings = Depends(get_settings)) -> InviteResponse:
    """Return the shareable link for a room page."""

    room_name = normalize_room_name(name)
    if not room_name:
        raise InvalidRequestError("Room name required")
    return InviteResponse(name=room_name, invite_url=invite_url(settings.public_base_url, room_name))
