"""Service wiring and dependency injection utilities for FastAPI"""

import re
from dataclasses import dataclass
from datetime import timedelta

import asyncpg
import httpx
from fastapi import Request

from roboct.api.services import (
    BotTokenService,
    ChannelService,
    DiscordAPIClient,
    EntityTokenUpdater,
    GuildService,
    OAuthProviderClient,
    StateService,
    TokenExchangeClient,
    TokenSweep,
    TwitchAPIClient,
    UserService,
)
from roboct.api.services.token_updater import Clock
from roboct.shared.models.bot_token import DISCORD, TWITCH
from roboct.shared.repositories import (
    BotTokenRepository,
    ChannelRepository,
    GuildRepository,
    LinkedEntityRepository,
    StateRepository,
    UserRepository,
)

from .config import Settings
from .errors import APIError


# ============================================
# Service container
# ============================================


@dataclass
class OAuthPlatform:
    """Everything the token lifecycle needs for one platform."""

    name: str
    provider: OAuthProviderClient
    repo: LinkedEntityRepository
    updater: EntityTokenUpdater
    exchange: TokenExchangeClient
    sweep: TokenSweep


@dataclass
class Services:
    """Process-wide services, built once in the lifespan and stored on app.state."""

    states: StateService
    twitch: OAuthPlatform
    discord: OAuthPlatform
    bot_tokens: BotTokenService
    channels: ChannelService
    guilds: GuildService
    users: UserService

    @property
    def platforms(self) -> list[OAuthPlatform]:
        return [self.twitch, self.discord]

    async def close(self) -> None:
        """Close the shared provider HTTP clients. Call on app shutdown."""
        for platform in self.platforms:
            await platform.provider.close()


def _build_platform(
    name: str,
    provider: OAuthProviderClient,
    repo: LinkedEntityRepository,
    settings: Settings,
    clock: Clock | None,
) -> OAuthPlatform:
    updater = EntityTokenUpdater(repo, clock=clock)
    return OAuthPlatform(
        name=name,
        provider=provider,
        repo=repo,
        updater=updater,
        exchange=TokenExchangeClient(
            provider, updater, development_mode=settings.is_development
        ),
        sweep=TokenSweep(
            provider,
            repo,
            refresh_window=timedelta(minutes=settings.refresh_window_minutes),
            concurrency=settings.sweep_concurrency,
            clock=clock,
        ),
    )


def build_services(
    settings: Settings,
    pool: asyncpg.Pool,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    clock: Clock | None = None,
) -> Services:
    """Create repositories, provider clients and services over *pool*."""
    twitch_api = TwitchAPIClient(
        settings.twitch_client_id,
        settings.twitch_client_secret,
        settings.api_url,
        timeout=settings.http_timeout,
        transport=transport,
    )
    discord_api = DiscordAPIClient(
        settings.discord_client_id,
        settings.discord_client_secret,
        settings.api_url,
        timeout=settings.http_timeout,
        transport=transport,
        permissions=settings.discord_bot_permissions,
    )

    twitch = _build_platform(TWITCH, twitch_api, ChannelRepository(pool), settings, clock)
    discord = _build_platform(DISCORD, discord_api, GuildRepository(pool), settings, clock)

    states = StateService(
        StateRepository(pool), ttl=timedelta(seconds=settings.state_ttl_seconds), clock=clock
    )
    bot_tokens = BotTokenService(
        {TWITCH: twitch_api, DISCORD: discord_api},
        BotTokenRepository(pool),
        refresh_window=timedelta(minutes=settings.refresh_window_minutes),
        clock=clock,
    )

    return Services(
        states=states,
        twitch=twitch,
        discord=discord,
        bot_tokens=bot_tokens,
        channels=ChannelService(twitch.repo, twitch.exchange, twitch.sweep),
        guilds=GuildService(discord.repo, discord.exchange, discord.sweep),
        users=UserService(UserRepository(pool), states, twitch_api, bot_tokens, clock=clock),
    )


# ============================================
# Service Dependencies
# ============================================


def get_services(request: Request) -> Services:
    services: Services | None = getattr(request.app.state, "services", None)
    if services is None:
        raise APIError("The service is starting up. Please try again shortly.", 503)
    return services


def get_channel_service(request: Request) -> ChannelService:
    return get_services(request).channels


def get_guild_service(request: Request) -> GuildService:
    return get_services(request).guilds


def get_user_service(request: Request) -> UserService:
    return get_services(request).users


# ============================================
# Request parameter helpers
# ============================================


_NUMERIC_ID = re.compile(r"[0-9]+")


def require_numeric_id(value: str, message: str) -> str:
    """Platform ids are decimal snowflakes; reject anything else with 400."""
    if not _NUMERIC_ID.fullmatch(value):
        raise APIError(message, 400)
    return value


def force_flag(force: str | None = None) -> bool:
    """``?force`` counts as set whatever its value, even empty."""
    return force is not None
