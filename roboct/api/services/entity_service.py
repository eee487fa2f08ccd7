"""Channel and guild management for the v1 API.

All SQL operations are delegated to the entity repositories; token
freshness goes through the platform's sweep and exchange client.
"""

import logging
from typing import Any, ClassVar

import httpx

from roboct.api.core.errors import APIError
from roboct.shared.models.channel import Channel, Guild
from roboct.shared.repositories.channel import (
    ChannelRepository,
    GuildRepository,
    LinkedEntityRepository,
)

from .oauth_provider import EntityNotFoundError
from .token_exchange import TokenExchangeClient
from .token_sweep import TokenSweep

logger = logging.getLogger(__name__)

PROVIDER_TIMEOUT_MESSAGE = "The provider took too long to respond. Please try again."


class EntityService:
    """API-facing operations shared by channels and guilds."""

    NOT_FOUND_MESSAGE: ClassVar[str]
    DISABLED_MESSAGE: ClassVar[str]

    def __init__(
        self,
        repo: LinkedEntityRepository,
        exchange: TokenExchangeClient,
        sweep: TokenSweep,
    ) -> None:
        self.repo = repo
        self.exchange = exchange
        self.sweep = sweep

    def to_dict(self, entity: Any) -> dict:
        raise NotImplementedError

    async def _get_entity(self, external_id: str, force: bool = False) -> Any:
        entity = await self.repo.get(external_id)
        if entity is None:
            raise APIError(self.NOT_FOUND_MESSAGE, 404)
        if not entity.enabled and not force:
            raise APIError(self.DISABLED_MESSAGE, 403)
        return entity

    async def get(self, external_id: str, force: bool = False) -> dict:
        return self.to_dict(await self._get_entity(external_id, force))

    async def toggle(self, external_id: str, enabled: bool | None = None) -> dict:
        """Set the enabled flag, or flip it when *enabled* is None."""
        if enabled is None:
            entity = await self._get_entity(external_id, force=True)
            enabled = not entity.enabled

        entity = await self.repo.set_enabled(external_id, enabled)
        if entity is None:
            raise APIError(self.NOT_FOUND_MESSAGE, 404)

        action = "enabled" if enabled else "disabled"
        logger.info(f"[{self.repo.TABLE}] {entity.label} {action}")
        return self.to_dict(entity)

    async def delete(self, external_id: str) -> dict:
        entity = await self.repo.delete(external_id)
        if entity is None:
            raise APIError(self.NOT_FOUND_MESSAGE, 404)
        logger.info(f"[{self.repo.TABLE}] {entity.label} deleted")
        return self.to_dict(entity)

    async def get_token(self, external_id: str, force: bool = False) -> dict:
        """
        Return a usable access token, refreshing it first if needed.

        The stored token is checked with ``verify_token`` (expiry window,
        then live introspection). When that fails the pair is refreshed;
        a refresh failure may disable the entity, in which case the
        disabled check applies again.
        """
        entity = await self._get_entity(external_id, force)
        try:
            if not await self.sweep.verify_token(external_id):
                entity = await self.exchange.refresh_token(entity)
        except EntityNotFoundError:
            raise APIError(self.NOT_FOUND_MESSAGE, 404)
        except httpx.TimeoutException:
            raise APIError(PROVIDER_TIMEOUT_MESSAGE, 503)

        if not entity.enabled and not force:
            raise APIError(self.DISABLED_MESSAGE, 403)

        return {
            self.repo.KEY: entity.external_id,
            "access_token": entity.access_token,
            "expires_at": entity.expires_at,
        }


class ChannelService(EntityService):
    NOT_FOUND_MESSAGE = "This Twitch channel isn't registered with us."
    DISABLED_MESSAGE = "This Twitch channel is disabled."

    repo: ChannelRepository

    def to_dict(self, entity: Channel) -> dict:
        return {
            "channel_id": entity.channel_id,
            "username": entity.username,
            "registered_at": entity.registered_at,
            "enabled": entity.enabled,
        }

    async def search(
        self,
        query: str = "",
        limit: int = 20,
        offset: int = 0,
        force: bool = False,
    ) -> list[dict]:
        """Case-insensitive username search. Disabled channels only with *force*."""
        if limit < 1:
            raise APIError("Limit must be a positive non-null integer.", 400)
        if offset < 0:
            raise APIError("Offset must be a positive integer.", 400)

        channels = await self.repo.search(query, limit, offset, include_disabled=force)
        return [self.to_dict(c) for c in channels]


class GuildService(EntityService):
    NOT_FOUND_MESSAGE = "This guild isn't registered with us."
    DISABLED_MESSAGE = "This guild is disabled."

    repo: GuildRepository

    def to_dict(self, entity: Guild) -> dict:
        return {
            "guild_id": entity.guild_id,
            "registered_at": entity.registered_at,
            "enabled": entity.enabled,
        }
