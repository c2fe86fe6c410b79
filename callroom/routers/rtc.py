"""Meeting token endpoint."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..deps import get_token_service
from ..schemas.rtc import TokenRequest, TokenResponse
from ..services.rtc import TokenIssuanceService

router = APIRouter()


@router.post("/token", response_model=TokenResponse)
async def create_token(
    payload: TokenRequest,
    tokens: TokenIssuanceService = Depends(get_token_service),
) -> TokenResponse:
    """Mint a meeting token and the room URL it is valid for."""

    token = await tokens.issue_token(payload.room_name, payload.user_name, payload.is_owner)
    return TokenResponse(token=token.token, room_url=token.room_url)
