"""Guild API routes (v1)"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from roboct.api.core.dependencies import force_flag, get_guild_service, require_numeric_id
from roboct.api.services import GuildService

router = APIRouter(prefix="/api/v1/guilds", tags=["guilds"])


class ToggleRequest(BaseModel):
    enabled: bool | None = None


def guild_id_param(guild_id: str) -> str:
    return require_numeric_id(guild_id, "Invalid guild ID.")


@router.get("/{guild_id}")
async def get_guild(
    guild_id: str = Depends(guild_id_param),
    force: bool = Depends(force_flag),
    service: GuildService = Depends(get_guild_service),
) -> dict:
    return {"success": True, "data": await service.get(guild_id, force)}


@router.patch("/{guild_id}")
async def toggle_guild(
    body: ToggleRequest | None = None,
    guild_id: str = Depends(guild_id_param),
    service: GuildService = Depends(get_guild_service),
) -> dict:
    enabled = body.enabled if body else None
    return {"success": True, "data": await service.toggle(guild_id, enabled)}


@router.delete("/{guild_id}")
async def delete_guild(
    guild_id: str = Depends(guild_id_param),
    service: GuildService = Depends(get_guild_service),
) -> dict:
    return {"success": True, "data": await service.delete(guild_id)}


@router.get("/{guild_id}/token")
async def get_guild_token(
    guild_id: str = Depends(guild_id_param),
    force: bool = Depends(force_flag),
    service: GuildService = Depends(get_guild_service),
) -> dict:
    return {"success": True, "data": await service.get_token(guild_id, force)}
