"""Room provisioning: name normalization and create-or-fetch against the provider."""
from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable
from urllib.parse import quote

from .daily import DailyClient
from .errors import ProviderError, RoomNotFoundError, RoomProvisioningError

logger = logging.getLogger(__name__)

_INVALID_CHARS = re.compile(r"[^a-z0-9_-]+")
_SEPARATOR_RUN = re.compile(r"[-_]{2,}")

CONFLICT_KIND = "invalid-request-error"
CONFLICT_MARKER = "already exists"


@dataclass(slots=True)
class Room:
    name: str
    url: str | None = None
    id: str | None = None
    privacy: str | None = None
    created_at: str | None = None
    expires_at: int | None = None
    record: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: dict[str, Any], fallback_name: str = "") -> "Room":
        config = record.get("config") or {}
        exp = config.get("exp") if isinstance(config, dict) else None
        return cls(
            name=record.get("name") or fallback_name,
            url=record.get("url"),
            id=record.get("id"),
            privacy=record.get("privacy"),
            created_at=record.get("created_at"),
            expires_at=int(exp) if exp is not None else None,
            record=record,
        )


def normalize_room_name(raw: str | None) -> str:
    """Reduce a display name to ``[a-z0-9_-]`` without repeated or edge separators."""

    lowered = (raw or "").strip().lower()
    cleaned = _INVALID_CHARS.sub("-", lowered)
    collapsed = _SEPARATOR_RUN.sub(lambda match: match.group(0)[0], cleaned)
    return collapsed.strip("-_")


def invite_url(base_url: str, room_name: str) -> str:
    """Shareable link to the room page for a normalized room name."""

    return f"{base_url.rstrip('/')}/room/{quote(normalize_room_name(room_name))}"


def _is_conflict(exc: ProviderError) -> bool:
    return exc.kind == CONFLICT_KIND and CONFLICT_MARKER in (exc.info or "")


class RoomProvisioningService:
    """Idempotent create-or-fetch for named rooms."""

    def __init__(self, client: DailyClient, clock: Callable[[], float] = time.time) -> None:
        self._client = client
        self._clock = clock

    def resolve_name(self, raw_name: str | None) -> str:
        name = normalize_room_name(raw_name)
        if not name:
            name = f"room-{int(self._clock() * 1000)}"
        return name

    async def ensure_room(self, raw_name: str | None) -> Room:
        """Create the room, or return the existing one when the provider reports a conflict."""

        name = self.resolve_name(raw_name)
        try:
            record = await self._client.create_room(name)
        except ProviderError as exc:
            if not _is_conflict(exc):
                logger.warning("Room %s could not be created: %s", name, exc)
                raise RoomProvisioningError(_provider_message(exc, "Failed to create room"), exc.payload) from exc
            logger.info("Room %s already exists; fetching it", name)
            try:
                record = await self._client.get_room(name)
            except ProviderError as fetch_exc:
                raise RoomProvisioningError(
                    _provider_message(fetch_exc, "Failed to fetch existing room"), fetch_exc.payload
                ) from fetch_exc
        else:
            logger.info("Created room %s", name)

        return Room.from_record(record, fallback_name=name)

    async def get_room(self, raw_name: str | None) -> Room:
        name = normalize_room_name(raw_name)
        if not name:
            raise RoomNotFoundError("Room not found")
        record = await self._client.get_room(name)
        return Room.from_record(record, fallback_name=name)


def _provider_message(exc: ProviderError, default: str) -> str:
    return exc.info or exc.kind or str(exc) or default
