"""Tests for room name normalization and create-or-fetch provisioning."""
from __future__ import annotations

import re

import pytest

from callroom.services.errors import (
    ProviderConnectionError,
    ProviderError,
    RoomNotFoundError,
    RoomProvisioningError,
)
from callroom.services.rooms import RoomProvisioningService, invite_url, normalize_room_name


class FakeDailyClient:
    """In-memory provider that reports conflicts the way Daily does."""

    def __init__(self) -> None:
        self.rooms: dict[str, dict] = {}
        self.calls: list[tuple[str, str]] = []
        self.create_error: Exception | None = None
        self.get_error: Exception | None = None

    async def create_room(self, name: str, properties: dict | None = None) -> dict:
        self.calls.append(("create", name))
        if self.create_error:
            raise self.create_error
        if name in self.rooms:
            info = f"a room named {name} already exists"
            raise ProviderError(info, kind="invalid-request-error", info=info, status_code=400)
        record = {
            "id": f"id-{name}",
            "name": name,
            "url": f"https://acme.daily.co/{name}",
            "privacy": "public",
            "config": {"exp": 4600},
        }
        self.rooms[name] = record
        return record

    async def get_room(self, name: str) -> dict:
        self.calls.append(("get", name))
        if self.get_error:
            raise self.get_error
        if name not in self.rooms:
            raise RoomNotFoundError("not found", kind="not-found", status_code=404)
        return self.rooms[name]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Team Sync!!", "team-sync"),
        ("  Demo  ", "demo"),
        ("a--b__c", "a-b_c"),
        ("hello_-world", "hello_world"),
        ("Ünïcode Room", "n-code-room"),
        ("already-clean_1", "already-clean_1"),
        ("!!!", ""),
        (None, ""),
    ],
)
def test_normalize_room_name(raw, expected):
    assert normalize_room_name(raw) == expected


def test_normalized_names_use_restricted_alphabet():
    samples = ["Q3 Planning", "foo///bar", "__init__", "Hello, World!", "x - y _ z", "ÅÄÖ", "a\tb\nc", "UPPER_case-Mix 99"]
    for sample in samples:
        name = normalize_room_name(sample)
        assert re.fullmatch(r"[a-z0-9_-]*", name), sample
        assert not re.search(r"[-_]{2,}", name), sample


def test_invite_url_normalizes_room():
    assert invite_url("https://meet.example.com/", "Team Sync!!") == "https://meet.example.com/room/team-sync"


@pytest.mark.asyncio
async def test_ensure_room_twice_resolves_same_room():
    client = FakeDailyClient()
    service = RoomProvisioningService(client)

    first = await service.ensure_room("demo")
    second = await service.ensure_room("demo")

    assert first.id == second.id == "id-demo"
    assert second.url == "https://acme.daily.co/demo"
    assert client.calls == [("create", "demo"), ("create", "demo"), ("get", "demo")]


@pytest.mark.asyncio
async def test_conflict_falls_back_to_existing_record():
    client = FakeDailyClient()
    client.rooms["standup"] = {"id": "existing", "name": "standup", "url": "https://acme.daily.co/standup"}
    service = RoomProvisioningService(client)

    room = await service.ensure_room("standup")

    assert room.id == "existing"
    assert room.expires_at is None
    assert client.calls == [("create", "standup"), ("get", "standup")]


@pytest.mark.asyncio
async def test_ensure_room_normalizes_before_provisioning():
    client = FakeDailyClient()
    service = RoomProvisioningService(client)

    room = await service.ensure_room("Team Sync!!")

    assert room.name == "team-sync"
    assert room.expires_at == 4600
    assert client.calls == [("create", "team-sync")]


@pytest.mark.asyncio
async def test_empty_name_is_synthesized_from_clock():
    client = FakeDailyClient()
    service = RoomProvisioningService(client, clock=lambda: 1_700_000_000.5)

    room = await service.ensure_room("  ")

    assert room.name == "room-1700000000500"


@pytest.mark.asyncio
async def test_other_provider_failures_propagate_with_message():
    client = FakeDailyClient()
    client.create_error = ProviderError(
        "bad",
        kind="authentication-error",
        info="authorization header missing",
        status_code=401,
        payload={"error": "authentication-error", "info": "authorization header missing"},
    )
    service = RoomProvisioningService(client)

    with pytest.raises(RoomProvisioningError) as exc:
        await service.ensure_room("demo")

    assert str(exc.value) == "authorization header missing"
    assert exc.value.payload["error"] == "authentication-error"
    assert ("get", "demo") not in client.calls


@pytest.mark.asyncio
async def test_failed_fallback_fetch_is_provisioning_error():
    client = FakeDailyClient()
    client.rooms["demo"] = {"name": "demo"}
    client.get_error = RoomNotFoundError("gone", kind="not-found", info="room demo was deleted", status_code=404)
    service = RoomProvisioningService(client)

    with pytest.raises(RoomProvisioningError) as exc:
        await service.ensure_room("demo")

    assert str(exc.value) == "room demo was deleted"


@pytest.mark.asyncio
async def test_connection_errors_are_not_wrapped():
    client = FakeDailyClient()
    client.create_error = ProviderConnectionError("offline")
    service = RoomProvisioningService(client)

    with pytest.raises(ProviderConnectionError):
        await service.ensure_room("demo")


@pytest.mark.asyncio
async def test_get_room_requires_a_name():
    service = RoomProvisioningService(FakeDailyClient())

    with pytest.raises(RoomNotFoundError):
        await service.get_room("!!!")
