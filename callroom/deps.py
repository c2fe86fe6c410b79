"""FastAPI dependency providers wiring settings into the provisioning services."""
from __future__ import annotations

from fastapi import Depends

from .core.config import Settings, get_settings
from .services.daily import DailyClient
from .services.rooms import RoomProvisioningService
from .services.rtc import TokenIssuanceService


def get_daily_client(settings: Settings = Depends(get_settings)) -> DailyClient:
    return DailyClient.from_settings(settings)


def get_room_service(client: DailyClient = Depends(get_daily_client)) -> RoomProvisioningService:
    return RoomProvisioningService(client)


def get_token_service(
    client: DailyClient = Depends(get_daily_client),
    settings: Settings = Depends(get_settings),
) -> TokenIssuanceService:
    return TokenIssuanceService.from_settings(client, settings)
