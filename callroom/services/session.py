"""Call session orchestration.

One orchestrator drives one participant's session through room provisioning, token
issuance, transport attachment, live event relay and teardown:

    idle -> joining -> joined -> leaving -> idle
              |          |
              +-> error <+   (join() retries from error)

All state changes happen on the event loop that called ``join()``. Transport callbacks
fired from another thread are marshalled back onto that loop.
"""
from __future__ import annotations

import asyncio
import enum
import inspect
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable

from ..core.config import Settings
from .daily import DailyClient
from .errors import (
    CallroomError,
    RoomProvisioningError,
    SessionStateError,
    TokenIssuanceError,
    TransportAttachError,
)
from .rooms import RoomProvisioningService
from .rtc import TokenIssuanceService
from .transport import CallTransport, EventPayload, TransportEvent, TransportFactory

logger = logging.getLogger(__name__)

NO_TOKEN_MESSAGE = "no token obtained"
DEFAULT_TRANSPORT_ERROR = "Connection error"


class CallStatus(str, enum.Enum):
    IDLE = "idle"
    JOINING = "joining"
    JOINED = "joined"
    LEAVING = "leaving"
    ERROR = "error"


@dataclass(slots=True)
class CallSession:
    status: CallStatus = CallStatus.IDLE
    error: str | None = None
    participant_count: int = 1
    is_muted: bool = False
    is_video_off: bool = False
    is_screen_sharing: bool = False
    room_id: str | None = None
    user_name: str | None = None


SessionListener = Callable[[CallSession], None]

_JOINABLE = (CallStatus.IDLE, CallStatus.ERROR)
_MEDIA_RESET: dict[str, Any] = {
    "participant_count": 1,
    "is_muted": False,
    "is_video_off": False,
    "is_screen_sharing": False,
}


class CallSessionOrchestrator:
    """State machine for a single participant's call."""

    def __init__(
        self,
        rooms: RoomProvisioningService,
        tokens: TokenIssuanceService,
        transport_factory: TransportFactory,
        *,
        mount_point: str = "call-container",
        default_user_name: str = "Guest",
    ) -> None:
        self._rooms = rooms
        self._tokens = tokens
        self._transport_factory = transport_factory
        self._mount_point = mount_point
        self._default_user_name = default_user_name

        self._session = CallSession()
        self._handle: CallTransport | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._listeners: list[SessionListener] = []
        self._disposed = False
        self._tearing_down = False
        self._share_in_flight = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport_factory: TransportFactory,
        client: DailyClient | None = None,
    ) -> "CallSessionOrchestrator":
        client = client or DailyClient.from_settings(settings)
        return cls(
            RoomProvisioningService(client),
            TokenIssuanceService.from_settings(client, settings),
            transport_factory,
            mount_point=settings.call_mount_point,
            default_user_name=settings.default_user_name,
        )

    async def __aenter__(self) -> "CallSessionOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    @property
    def session(self) -> CallSession:
        """Copy of the current session state."""

        return replace(self._session)

    @property
    def status(self) -> CallStatus:
        return self._session.status

    @property
    def has_transport(self) -> bool:
        return self._handle is not None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call ``listener`` with a snapshot after every state change."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def join(self, room_id: str, user_name: str | None = None) -> CallSession:
        """Provision, authorize and attach; failures land in ``error`` state."""

        if self._disposed:
            raise SessionStateError("Call session has been disposed")
        if self._session.status not in _JOINABLE:
            raise SessionStateError(f"Cannot join while {self._session.status.value}")

        self._loop = asyncio.get_running_loop()
        self._release_handle()
        display_name = user_name or self._default_user_name
        self._update(
            status=CallStatus.JOINING,
            error=None,
            room_id=room_id,
            user_name=display_name,
            **_MEDIA_RESET,
        )

        try:
            room_name = await self._provision_room(room_id)
            if self._disposed:
                return self.session
            token = await self._tokens.issue_token(room_name, display_name, is_owner=False)
            if self._disposed:
                return self.session
            if not token.token:
                raise TokenIssuanceError(NO_TOKEN_MESSAGE)

            handle = self._attach()
            self._handle = handle
            self._register_listeners(handle)

            logger.info("Joining %s as %s", token.room_url, display_name)
            try:
                result = handle.join(url=token.room_url, token=token.token, user_name=display_name)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:  # noqa: BLE001 - SDK rejections are not typed
                raise TransportAttachError(str(exc) or "Failed to join call") from exc
        except CallroomError as exc:
            logger.warning("Failed to join call %s: %s", room_id, exc)
            self._fail(str(exc))
        except Exception as exc:  # noqa: BLE001 - every join failure is reported through state
            logger.exception("Unexpected failure joining call %s", room_id)
            self._fail(str(exc) or exc.__class__.__name__)

        return self.session

    async def leave(self) -> None:
        handle = self._handle
        if handle is None:
            return
        if self._session.status is not CallStatus.JOINED:
            logger.warning("Ignoring leave while %s", self._session.status.value)
            return

        self._update(status=CallStatus.LEAVING)
        self._tearing_down = True
        try:
            await handle.leave()
        finally:
            self._tearing_down = False
            self._release_handle()
            self._update(status=CallStatus.IDLE, error=None, **_MEDIA_RESET)
            logger.info("Left call %s", self._session.room_id)

    def toggle_mute(self) -> bool:
        handle = self._require_joined("toggle_mute")
        if handle is None:
            return self._session.is_muted
        muted = not self._session.is_muted
        handle.set_local_audio(not muted)
        self._update(is_muted=muted)
        return muted

    def toggle_video(self) -> bool:
        handle = self._require_joined("toggle_video")
        if handle is None:
            return self._session.is_video_off
        video_off = not self._session.is_video_off
        handle.set_local_video(not video_off)
        self._update(is_video_off=video_off)
        return video_off

    async def toggle_screen_share(self) -> bool:
        """Start or stop sharing; the flag flips only once the command has resolved."""

        handle = self._require_joined("toggle_screen_share")
        if handle is None:
            return self._session.is_screen_sharing
        if self._share_in_flight:
            logger.warning("Screen share command already in flight")
            return self._session.is_screen_sharing

        sharing = self._session.is_screen_sharing
        self._share_in_flight = True
        try:
            if sharing:
                await handle.stop_screen_share()
            else:
                await handle.start_screen_share()
        except Exception:
            logger.warning("Screen share %s failed", "stop" if sharing else "start", exc_info=True)
            raise
        finally:
            self._share_in_flight = False

        if handle is not self._handle:
            return self._session.is_screen_sharing
        self._update(is_screen_sharing=not sharing)
        return not sharing

    def dispose(self) -> None:
        """Destroy any retained transport handle, whatever the current state."""

        self._disposed = True
        self._release_handle()
        if self._session.status is not CallStatus.IDLE:
            self._update(status=CallStatus.IDLE, **_MEDIA_RESET)
        self._listeners.clear()

    async def _provision_room(self, room_id: str) -> str:
        try:
            room = await self._rooms.ensure_room(room_id)
        except RoomProvisioningError as exc:
            # Provider answered with an error body that still identifies the room.
            name = exc.payload.get("name")
            if not (exc.payload.get("url") or name):
                raise
            logger.warning("Room provisioning reported %s but returned room data", exc)
            return name or self._rooms.resolve_name(room_id)
        return room.name

    def _attach(self) -> CallTransport:
        if self._disposed:
            raise SessionStateError("Call session has been disposed")
        if not self._mount_point:
            raise TransportAttachError("Container not found")
        try:
            return self._transport_factory(self._mount_point)
        except LookupError as exc:
            raise TransportAttachError(f"Container not found: {self._mount_point}") from exc

    def _register_listeners(self, handle: CallTransport) -> None:
        handlers: dict[TransportEvent, Callable[[EventPayload], None]] = {
            TransportEvent.JOINED: self._on_joined,
            TransportEvent.LEFT: self._on_left,
            TransportEvent.ERROR: self._on_error,
            TransportEvent.PARTICIPANT_COUNTS: self._on_participant_counts,
            TransportEvent.LOADING: self._on_loading,
            TransportEvent.LOADED: self._on_loaded,
        }
        for event, handler in handlers.items():
            handle.on(event.value, self._bind(handle, handler))

    def _bind(self, handle: CallTransport, handler: Callable[[EventPayload], None]) -> Callable[..., None]:
        def callback(payload: EventPayload | None = None) -> None:
            loop = self._loop
            if loop is not None and not loop.is_closed() and not _running_on(loop):
                loop.call_soon_threadsafe(self._dispatch, handle, handler, payload)
            else:
                self._dispatch(handle, handler, payload)

        return callback

    def _dispatch(
        self,
        handle: CallTransport,
        handler: Callable[[EventPayload], None],
        payload: EventPayload | None,
    ) -> None:
        if handle is not self._handle:
            logger.debug("Dropping event from released transport")
            return
        handler(payload or {})

    def _on_joined(self, payload: EventPayload) -> None:
        if self._session.status not in (CallStatus.JOINING, CallStatus.ERROR, CallStatus.JOINED):
            logger.debug("Ignoring joined event while %s", self._session.status.value)
            return
        logger.info("Joined call %s", self._session.room_id)
        self._update(status=CallStatus.JOINED, error=None)

    def _on_left(self, payload: EventPayload) -> None:
        if self._tearing_down:
            return
        logger.info("Transport left call %s", self._session.room_id)
        self._release_handle()
        self._update(status=CallStatus.IDLE, error=None, **_MEDIA_RESET)

    def _on_error(self, payload: EventPayload) -> None:
        message = payload.get("errorMsg") or DEFAULT_TRANSPORT_ERROR
        logger.error("Transport error in call %s: %s", self._session.room_id, message)
        self._fail(message)

    def _on_participant_counts(self, payload: EventPayload) -> None:
        counts = payload.get("participantCounts") or {}
        present = counts.get("present")
        if not isinstance(present, int):
            return
        self._update(participant_count=max(1, present))

    def _on_loading(self, payload: EventPayload) -> None:
        logger.debug("Call frame loading")

    def _on_loaded(self, payload: EventPayload) -> None:
        logger.debug("Call frame loaded")

    def _require_joined(self, action: str) -> CallTransport | None:
        if self._handle is None or self._session.status is not CallStatus.JOINED:
            logger.debug("Ignoring %s while %s", action, self._session.status.value)
            return None
        return self._handle

    def _release_handle(self) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            handle.destroy()
        except Exception:  # noqa: BLE001 - teardown must finish
            logger.exception("Failed to destroy call transport")

    def _fail(self, message: str) -> None:
        if self._disposed:
            return
        self._update(status=CallStatus.ERROR, error=message)

    def _update(self, **changes: Any) -> None:
        for name, value in changes.items():
            setattr(self._session, name, value)
        snapshot = self.session
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:  # noqa: BLE001 - one listener must not break the others
                logger.exception("Session listener failed")


def _running_on(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False
