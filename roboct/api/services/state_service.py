"""OAuth state tokens.

A state value is a random 20-byte hex string issued with every authorize
redirect. It is valid for one hour and can be used only once.
"""

import logging
import secrets
from datetime import timedelta

from roboct.shared.repositories.state import StateRepository

from .token_updater import Clock, utcnow

logger = logging.getLogger(__name__)


class StateService:
    """Issue, check and consume anti-CSRF state values."""

    def __init__(
        self,
        repo: StateRepository,
        ttl: timedelta = timedelta(hours=1),
        clock: Clock | None = None,
    ) -> None:
        self.repo = repo
        self.ttl = ttl
        self._now = clock or utcnow

    def _is_fresh(self, created_at) -> bool:
        return created_at > self._now() - self.ttl

    async def create_state(self) -> str:
        """Generate and persist a new state value."""
        value = secrets.token_hex(20)
        await self.repo.create(value, self._now())
        return value

    async def is_valid_state(self, value: str) -> bool:
        """True when *value* exists and is younger than the TTL. Does not consume it."""
        if not value:
            return False
        state = await self.repo.get(value)
        return state is not None and self._is_fresh(state.created_at)

    async def delete_state(self, value: str) -> None:
        await self.repo.pop(value)

    async def consume_state(self, value: str) -> bool:
        """Atomically delete *value*; True only if it existed and had not expired.

        Two callbacks racing on the same state cannot both succeed: only
        one DELETE returns the row.
        """
        if not value:
            return False
        state = await self.repo.pop(value)
        if state is None:
            return False
        if not self._is_fresh(state.created_at):
            logger.info("Rejected expired OAuth state")
            return False
        return True

    async def purge_expired(self) -> int:
        """Delete every state older than the TTL. Returns the number removed."""
        removed = await self.repo.delete_older_than(self._now() - self.ttl)
        if removed:
            logger.info(f"Purged {removed} expired OAuth state(s)")
        return removed
