"""Channel API routes (v1)"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from roboct.api.core.dependencies import force_flag, get_channel_service, require_numeric_id
from roboct.api.services import ChannelService

router = APIRouter(prefix="/api/v1/channels", tags=["channels"])


class ToggleRequest(BaseModel):
    enabled: bool | None = None


def channel_id_param(channel_id: str) -> str:
    return require_numeric_id(channel_id, "Invalid channel ID.")


@router.get("")
async def search_channels(
    search: str = "",
    limit: int = 20,
    offset: int = 0,
    force: bool = Depends(force_flag),
    service: ChannelService = Depends(get_channel_service),
) -> dict:
    """Search registered channels by username"""
    return {"success": True, "data": await service.search(search, limit, offset, force)}


@router.get("/{channel_id}")
async def get_channel(
    channel_id: str = Depends(channel_id_param),
    force: bool = Depends(force_flag),
    service: ChannelService = Depends(get_channel_service),
) -> dict:
    return {"success": True, "data": await service.get(channel_id, force)}


@router.patch("/{channel_id}")
async def toggle_channel(
    body: ToggleRequest | None = None,
    channel_id: str = Depends(channel_id_param),
    service: ChannelService = Depends(get_channel_service),
) -> dict:
    """Enable/disable a channel; flips the flag when ``enabled`` is omitted"""
    enabled = body.enabled if body else None
    return {"success": True, "data": await service.toggle(channel_id, enabled)}


@router.delete("/{channel_id}")
async def delete_channel(
    channel_id: str = Depends(channel_id_param),
    service: ChannelService = Depends(get_channel_service),
) -> dict:
    return {"success": True, "data": await service.delete(channel_id)}


@router.get("/{channel_id}/token")
async def get_channel_token(
    channel_id: str = Depends(channel_id_param),
    force: bool = Depends(force_flag),
    service: ChannelService = Depends(get_channel_service),
) -> dict:
    """Return the channel's access token, refreshed first if it is stale"""
    return {"success": True, "data": await service.get_token(channel_id, force)}
