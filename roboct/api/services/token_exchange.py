"""Token exchange and refresh for one OAuth platform."""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from .oauth_provider import (
    EntityNotFoundError,
    ExchangeError,
    OAuthProviderClient,
    TokenGrant,
    UserInfo,
)
from .token_updater import EntityTokenUpdater

logger = logging.getLogger(__name__)


class TokenExchangeClient:
    """Authorization-code exchange plus refresh-with-fallback for an entity table."""

    def __init__(
        self,
        provider: OAuthProviderClient,
        updater: EntityTokenUpdater,
        *,
        development_mode: bool = False,
    ) -> None:
        self.provider = provider
        self.updater = updater
        self.development_mode = development_mode

    @property
    def platform(self) -> str:
        return self.provider.name

    async def get_access_token(self, code: str, redirect_uri: str | None = None) -> TokenGrant:
        return await self.provider.exchange_code(code, redirect_uri)

    async def get_user_info(self, access_token: str) -> UserInfo:
        return await self.provider.get_user_info(access_token)

    async def refresh_token(self, entity: Any) -> Any:
        """Refresh *entity*'s token pair. Never raises on provider failure.

        - success: new pair stored with ``last_refresh = now``
        - timeout: entity returned unchanged, retried next cycle
        - rejected/malformed/network error: entity disabled, except in
          development where it is returned unchanged
        """
        try:
            grant = await self.provider.refresh(entity.refresh_token)
        except httpx.TimeoutException:
            logger.warning(
                f"[{self.platform}] Refresh timed out for {entity.label}; will retry next cycle"
            )
            return entity
        except (ExchangeError, ValidationError, httpx.HTTPError) as e:
            logger.error(f"[{self.platform}] Failed to refresh token for {entity.label}: {e}")
            if self.development_mode:
                logger.warning(f"[{self.platform}] Development mode: {entity.label} stays enabled")
                return entity
            return await self.updater.disable(entity)

        refreshed = await self.updater.apply_refresh(entity, grant)
        logger.info(f"[{self.platform}] Refreshed token for {entity.label}")
        return refreshed

    async def refresh_token_by_external_id(self, external_id: str) -> Any:
        entity = await self.updater.repo.get(external_id)
        if entity is None:
            raise EntityNotFoundError(external_id)
        return await self.refresh_token(entity)
