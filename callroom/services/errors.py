"""Error taxonomy shared by the provisioning services and the call session."""
from __future__ import annotations

from typing import Any


class CallroomError(RuntimeError):
    """Base class for failures surfaced to API callers and session state."""

    status_code = 500


class ConfigurationError(CallroomError):
    """Raised when a required provider setting is missing."""


class InvalidRequestError(CallroomError):
    """Raised when required input is missing, before any network call."""

    status_code = 400


class ProviderError(CallroomError):
    """The provider answered with a non-success status.

    ``kind`` and ``info`` mirror the provider's ``{error, info}`` body so callers
    can inspect the condition without reparsing the payload.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: str | None = None,
        info: str | None = None,
        status_code: int | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.info = info
        self.provider_status = status_code
        self.payload = payload or {}


class RoomNotFoundError(ProviderError):
    status_code = 404


class ProviderConnectionError(CallroomError):
    """Network-level failure reaching the provider."""


class RoomProvisioningError(CallroomError):
    """Room create/fetch failed and no fallback applied."""

    def __init__(self, message: str, payload: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.payload = payload or {}


class TokenIssuanceError(CallroomError):
    """Meeting token mint failed."""


class TransportAttachError(CallroomError):
    """Mount point missing, or the transport rejected the join."""


class SessionStateError(CallroomError):
    """Operation not allowed in the session's current state."""

    status_code = 409
