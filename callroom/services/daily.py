"""Daily REST client for room and meeting-token provisioning."""
from __future__ import annotations

import logging
import time
from typing import Any, Callable
from urllib.parse import quote

import httpx

from ..core.config import Settings
from .errors import ConfigurationError, ProviderConnectionError, ProviderError, RoomNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.daily.co/v1"


class DailyClient:
    """Stateless request/response mapping onto the provider's room and token endpoints."""

    def __init__(
        self,
        api_key: str,
        *,
        api_url: str = DEFAULT_API_URL,
        timeout: float | None = None,
        ttl_seconds: int = 3600,
        max_participants: int = 20,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not api_key:
            raise ConfigurationError("DAILY_API_KEY is not configured")
        self._api_key = api_key
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._ttl_seconds = ttl_seconds
        self._max_participants = max_participants
        self._transport = transport
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "DailyClient":
        return cls(
            settings.daily_api_key,
            api_url=settings.daily_api_url,
            timeout=settings.daily_http_timeout,
            ttl_seconds=settings.room_ttl_seconds,
            max_participants=settings.room_max_participants,
            transport=transport,
        )

    def expires_at(self) -> int:
        """Epoch seconds one TTL window from now."""

        return int(self._clock()) + self._ttl_seconds

    def room_properties(self) -> dict[str, Any]:
        return {
            "enable_screenshare": True,
            "enable_chat": True,
            "start_video_off": False,
            "start_audio_off": False,
            "max_participants": self._max_participants,
            "exp": self.expires_at(),
        }

    async def create_room(self, name: str, properties: dict[str, Any] | None = None) -> dict[str, Any]:
        body = {"name": name, "properties": self.room_properties() if properties is None else properties}
        return await self._request("POST", "/rooms", json=body)

    async def get_room(self, name: str) -> dict[str, Any]:
        return await self._request("GET", f"/rooms/{quote(name, safe='')}")

    async def create_token(
        self,
        room_name: str,
        user_name: str,
        is_owner: bool = False,
        exp: int | None = None,
    ) -> dict[str, Any]:
        body = {
            "properties": {
                "room_name": room_name,
                "user_name": user_name,
                "is_owner": is_owner,
                "enable_screenshare": True,
                "start_video_off": False,
                "start_audio_off": False,
                "exp": exp if exp is not None else self.expires_at(),
            }
        }
        return await self._request("POST", "/meeting-tokens", json=body)

    async def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        try:
            async with httpx.AsyncClient(
                base_url=self._api_url,
                headers=headers,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, json=json)
        except httpx.RequestError as exc:
            logger.warning("Daily %s %s failed: %s", method, path, exc)
            raise ProviderConnectionError(f"Could not reach video provider: {exc}") from exc

        payload = _decode(response)
        logger.debug("Daily %s %s -> %s %s", method, path, response.status_code, payload)

        if response.is_success:
            return payload

        kind = payload.get("error")
        info = payload.get("info")
        message = info or kind or f"Provider request failed with status {response.status_code}"
        error_cls = RoomNotFoundError if response.status_code == 404 else ProviderError
        raise error_cls(
            str(message),
            kind=kind,
            info=info,
            status_code=response.status_code,
            payload=payload,
        )


def _decode(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    if isinstance(data, dict):
        return data
    return {"data": data}
