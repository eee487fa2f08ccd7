"""OAuth invite redirects and provider callbacks"""

import logging

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, RedirectResponse
from pydantic import BaseModel, ValidationError

from roboct.api.core.dependencies import OAuthPlatform, Services, get_services
from roboct.api.core.errors import APIError
from roboct.api.services import ExchangeError
from roboct.api.services.entity_service import PROVIDER_TIMEOUT_MESSAGE

logger = logging.getLogger(__name__)

router = APIRouter(tags=["oauth"])

INVALID_STATE_MESSAGE = "The 'state' query parameter is invalid."


# ============================================
# Query Models
# ============================================


class TwitchCallbackQuery(BaseModel):
    code: str
    state: str
    scope: str | None = None


class DiscordCallbackQuery(BaseModel):
    code: str
    state: str
    guild_id: str


class LinkCallbackQuery(BaseModel):
    code: str
    state: str


# ============================================
# Helpers
# ============================================


def _parse_callback(request: Request, model: type[BaseModel]) -> BaseModel:
    """Validate the callback query, honouring a provider-sent ``error`` first."""
    params = request.query_params
    if "error" in params:
        raise APIError(params.get("error_description") or params["error"], 401)
    try:
        return model.model_validate(dict(params))
    except ValidationError:
        raise APIError("The query parameters are invalid.", 400)


async def _register(
    services: Services,
    platform: OAuthPlatform,
    query: TwitchCallbackQuery | DiscordCallbackQuery,
) -> None:
    """Consume the state, exchange the code and upsert the entity."""
    if not await services.states.consume_state(query.state):
        raise APIError(INVALID_STATE_MESSAGE, 401)

    try:
        grant = await platform.exchange.get_access_token(query.code)
        if isinstance(query, DiscordCallbackQuery):
            await platform.updater.upsert_from_callback(query.guild_id, grant)
        else:
            user = await platform.exchange.get_user_info(grant.access_token)
            await platform.updater.upsert_from_callback(user.id, grant, username=user.login)
    except httpx.TimeoutException:
        logger.warning(f"[{platform.name}] Provider timed out during callback")
        raise APIError(PROVIDER_TIMEOUT_MESSAGE, 503)
    except (ExchangeError, ValidationError, httpx.HTTPError) as e:
        logger.error(f"[{platform.name}] Callback failed: {type(e).__name__}: {e}")
        raise APIError()


# ============================================
# Invite redirects
# ============================================


@router.get("/twitch/invite")
async def twitch_invite(services: Services = Depends(get_services)) -> RedirectResponse:
    """Redirect a broadcaster to the Twitch authorization page"""
    state = await services.states.create_state()
    return RedirectResponse(services.twitch.provider.authorize_url(state))


@router.get("/discord/invite")
async def discord_invite(services: Services = Depends(get_services)) -> RedirectResponse:
    """Redirect a guild admin to the Discord bot invite page"""
    state = await services.states.create_state()
    return RedirectResponse(services.discord.provider.authorize_url(state))


# ============================================
# Callbacks
# ============================================


@router.get("/twitch/callback", status_code=201)
async def twitch_callback(request: Request, services: Services = Depends(get_services)) -> dict:
    query = _parse_callback(request, TwitchCallbackQuery)
    await _register(services, services.twitch, query)
    return {"success": True, "message": "The channel was successfully registered."}


@router.get("/discord/callback", status_code=201)
async def discord_callback(request: Request, services: Services = Depends(get_services)) -> dict:
    query = _parse_callback(request, DiscordCallbackQuery)
    await _register(services, services.discord, query)
    return {"success": True, "message": "The guild was successfully registered."}


@router.get("/oauth/v1/users/callback", response_class=PlainTextResponse)
async def link_callback(request: Request, services: Services = Depends(get_services)):
    """Twitch side of a Discord -> Twitch account link. Answers in plain text."""
    try:
        query = _parse_callback(request, LinkCallbackQuery)
        await services.users.link_account(query.code, query.state)
    except APIError as e:
        return PlainTextResponse(e.message, status_code=e.status_code)
    return PlainTextResponse("Congratulations, your accounts were successfully linked.")

