"""Persistence of OAuth token pairs on channels and guilds."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from roboct.shared.repositories.channel import LinkedEntityRepository

from .oauth_provider import TokenGrant

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


class EntityTokenUpdater:
    """Write token grants onto an entity table.

    Refresh and disable writes are conditional on the stored refresh
    token still being the one the caller read. When a concurrent writer
    (usually a re-link through the invite flow) replaced the pair first,
    its row wins and is returned unchanged.
    """

    def __init__(self, repo: LinkedEntityRepository, clock: Clock | None = None) -> None:
        self.repo = repo
        self._now = clock or utcnow

    def expires_at(self, grant: TokenGrant) -> datetime:
        return self._now() + timedelta(seconds=grant.expires_in)

    async def upsert_from_callback(
        self, external_id: str, grant: TokenGrant, **attributes: str
    ) -> Any:
        """Create the entity, or re-enable it with the new token pair."""
        entity = await self.repo.upsert_tokens(
            external_id,
            grant.access_token,
            grant.refresh_token,
            self.expires_at(grant),
            **attributes,
        )
        logger.info(f"[{self.repo.TABLE}] Stored tokens for {entity.label}")
        return entity

    async def apply_refresh(self, entity: Any, grant: TokenGrant) -> Any:
        now = self._now()
        updated = await self.repo.update_tokens(
            entity.id,
            entity.refresh_token,
            grant.access_token,
            grant.refresh_token,
            now + timedelta(seconds=grant.expires_in),
            now,
        )
        if updated is None:
            return await self._reload(entity, "refresh")
        return updated

    async def disable(self, entity: Any) -> Any:
        updated = await self.repo.disable(entity.id, entity.refresh_token)
        if updated is None:
            return await self._reload(entity, "disable")
        logger.warning(f"[{self.repo.TABLE}] Disabled {entity.label}")
        return updated

    async def _reload(self, entity: Any, action: str) -> Any:
        logger.info(
            f"[{self.repo.TABLE}] Tokens of {entity.label} changed during {action}; "
            f"keeping the stored pair"
        )
        current = await self.repo.get_by_id(entity.id)
        return current or entity
