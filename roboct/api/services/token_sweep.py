"""Periodic revalidation of stored user tokens."""

import asyncio
import logging
from datetime import timedelta
from typing import Any

import httpx

from roboct.shared.repositories.channel import LinkedEntityRepository

from .oauth_provider import EntityNotFoundError, ExchangeError, OAuthProviderClient
from .token_updater import Clock, utcnow

logger = logging.getLogger(__name__)


class TokenSweep:
    """Find enabled entities whose token is rejected or about to expire."""

    def __init__(
        self,
        provider: OAuthProviderClient,
        repo: LinkedEntityRepository,
        *,
        refresh_window: timedelta = timedelta(minutes=30),
        concurrency: int = 1,
        clock: Clock | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.provider = provider
        self.repo = repo
        self.refresh_window = refresh_window
        self.concurrency = concurrency
        self._now = clock or utcnow

    @property
    def platform(self) -> str:
        return self.provider.name

    def expires_soon(self, entity: Any) -> bool:
        return entity.expires_at < self._now() + self.refresh_window

    async def _needs_refresh(self, entity: Any, semaphore: asyncio.Semaphore) -> bool:
        async with semaphore:
            try:
                if not await self.provider.validate_token(entity.access_token):
                    logger.info(f"[{self.platform}] Token of {entity.label} was rejected")
                    return True
                return self.expires_soon(entity)
            except (ExchangeError, httpx.HTTPError) as e:
                logger.error(f"[{self.platform}] Could not verify {entity.label}, skipping: {e}")
                return False
            except Exception:
                logger.exception(f"[{self.platform}] Unexpected error verifying {entity.label}")
                return False

    async def verify_all_tokens(self) -> list[Any]:
        """Return the enabled entities that need a refresh, in table order."""
        entities = await self.repo.list_enabled()
        semaphore = asyncio.Semaphore(self.concurrency)
        results = await asyncio.gather(*(self._needs_refresh(e, semaphore) for e in entities))

        flagged = [entity for entity, needs in zip(entities, results) if needs]
        logger.info(
            f"[{self.platform}] Verified {len(entities)} token(s), {len(flagged)} need a refresh"
        )
        return flagged

    async def verify_token(self, external_id: str) -> bool:
        """False when the token expires soon or is rejected; True otherwise."""
        entity = await self.repo.get(external_id)
        if entity is None:
            raise EntityNotFoundError(external_id)
        if self.expires_soon(entity):
            return False
        return await self.provider.validate_token(entity.access_token)
