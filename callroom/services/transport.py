"""Call transport abstraction.

The live media session is owned by the provider SDK. The orchestrator only reaches it
through this capability set, so tests can drive it with an in-memory fake."""
from __future__ import annotations

import enum
from typing import Any, Awaitable, Callable, Protocol

EventPayload = dict[str, Any]
EventHandler = Callable[[EventPayload | None], None]


class TransportEvent(str, enum.Enum):
    JOINED = "joined-meeting"
    LEFT = "left-meeting"
    ERROR = "error"
    PARTICIPANT_COUNTS = "participant-counts-updated"
    LOADING = "loading"
    LOADED = "loaded"


class CallTransport(Protocol):
    def on(self, event: str, handler: EventHandler) -> None:
        """Register ``handler`` for a provider event name."""

    def join(self, *, url: str, token: str, user_name: str) -> Awaitable[Any]:
        ...

    async def leave(self) -> None:
        ...

    def destroy(self) -> None:
        """Release the frame synchronously; the handle is unusable afterwards."""

    def set_local_audio(self, enabled: bool) -> None:
        ...

    def set_local_video(self, enabled: bool) -> None:
        ...

    async def start_screen_share(self) -> None:
        ...

    async def stop_screen_share(self) -> None:
        ...


class TransportFactory(Protocol):
    def __call__(self, mount_point: str) -> CallTransport:
        """Create a call frame attached to ``mount_point``.

        Raises ``LookupError`` when the mount point does not exist.
        """
