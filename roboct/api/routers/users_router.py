"""User directory and account link routes (v1)"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from roboct.api.core.dependencies import force_flag, get_user_service, require_numeric_id
from roboct.api.services import UserService

router = APIRouter(prefix="/api/v1/users", tags=["users"])


class UnlinkRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    discord_id: str | None = Field(default=None, alias="discordId", pattern=r"^[0-9]+$")
    twitch_id: str | None = Field(default=None, alias="twitchId", pattern=r"^[0-9]+$")


class OptOutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    opt_out: bool | None = Field(default=None, alias="optOut")


def twitch_id_param(twitch_id: str) -> str:
    return require_numeric_id(twitch_id, "Invalid user ID.")


@router.get("")
async def get_discord_user(
    discord_id: str = Query(alias="discordId", pattern=r"^[0-9]+$"),
    force: bool = Depends(force_flag),
    service: UserService = Depends(get_user_service),
) -> dict:
    """Look up the Twitch user linked to a Discord account"""
    return {"success": True, "data": await service.get_discord_user_info(discord_id, force)}


@router.get("/link")
async def generate_link_url(
    discord_id: str = Query(alias="discordId", pattern=r"^[0-9]+$"),
    service: UserService = Depends(get_user_service),
) -> dict:
    """Start an account link; returns the Twitch URL to send to the Discord user"""
    return {"success": True, "data": await service.generate_link_url(discord_id)}


@router.delete("/link")
async def unlink_account(
    body: UnlinkRequest,
    service: UserService = Depends(get_user_service),
) -> dict:
    return {"success": True, "data": await service.unlink(body.discord_id, body.twitch_id)}


@router.get("/twitch/{twitch_id}")
async def get_twitch_user(
    twitch_id: str = Depends(twitch_id_param),
    force: bool = Depends(force_flag),
    service: UserService = Depends(get_user_service),
) -> dict:
    return {"success": True, "data": await service.get_twitch_user_info(twitch_id, force)}


@router.patch("/{twitch_id}/opt-out")
async def set_opt_out(
    body: OptOutRequest | None = None,
    twitch_id: str = Depends(twitch_id_param),
    service: UserService = Depends(get_user_service),
) -> dict:
    """Opt a user in or out; toggles when ``optOut`` is omitted"""
    opt_out = body.opt_out if body else None
    return {"success": True, "data": await service.set_opt_out(twitch_id, opt_out)}
