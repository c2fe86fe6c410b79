"""Meeting token issuance.

Tokens bind one display name to one room with a capability set (owner or guest).
They are minted per join attempt and never refreshed in place."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from ..core.config import Settings
from .daily import DailyClient
from .errors import ConfigurationError, InvalidRequestError, ProviderError, TokenIssuanceError
from .rooms import normalize_room_name

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AccessToken:
    token: str
    room_name: str
    room_url: str
    user_name: str
    is_owner: bool
    expires_at: int


def room_url_for(domain: str, room_name: str) -> str:
    """URL the transport joins; must match the namespace the token was minted for."""

    return f"https://{domain}.daily.co/{room_name}"


class TokenIssuanceService:
    def __init__(self, client: DailyClient, domain: str, default_user_name: str = "Guest") -> None:
        if not domain:
            raise ConfigurationError("DAILY_DOMAIN is not configured")
        self._client = client
        self._domain = domain
        self._default_user_name = default_user_name

    @classmethod
    def from_settings(cls, client: DailyClient, settings: Settings) -> "TokenIssuanceService":
        return cls(client, settings.daily_domain, settings.default_user_name)

    async def issue_token(
        self,
        room_name: str | None,
        user_name: str | None = None,
        is_owner: bool = False,
    ) -> AccessToken:
        """Mint a meeting token for ``room_name``.

        An empty token in the provider's answer is passed through as ``""``;
        the call session treats that as its own failure.
        """

        if not room_name:
            raise InvalidRequestError("Room name required")
        room_name = normalize_room_name(room_name)
        if not room_name:
            raise InvalidRequestError("Room name must contain letters or digits")

        display_name = user_name or self._default_user_name
        expires_at = self._client.expires_at()
        try:
            data = await self._client.create_token(room_name, display_name, is_owner, exp=expires_at)
        except ProviderError as exc:
            logger.warning("Token for room %s could not be issued: %s", room_name, exc)
            message = exc.info or exc.kind or "Failed to create token"
            raise TokenIssuanceError(message) from exc

        return AccessToken(
            token=data.get("token") or "",
            room_name=room_name,
            room_url=room_url_for(self._domain, room_name),
            user_name=display_name,
            is_owner=is_owner,
            expires_at=expires_at,
        )
