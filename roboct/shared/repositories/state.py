"""Repository for the oauth_states table."""

from __future__ import annotations

from datetime import datetime

import asyncpg

from roboct.shared.models.state import OAuthState


class StateRepository:
    """Pure SQL operations for OAuth state values."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def create(self, value: str, created_at: datetime) -> OAuthState:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "INSERT INTO oauth_states (value, created_at) VALUES ($1, $2) "
                "RETURNING id, value, created_at",
                value,
                created_at,
            )
        return OAuthState(**dict(row))

    async def get(self, value: str) -> OAuthState | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT id, value, created_at FROM oauth_states WHERE value = $1",
                value,
            )
        return OAuthState(**dict(row)) if row else None

    async def pop(self, value: str) -> OAuthState | None:
        """Delete and return a state in one statement."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "DELETE FROM oauth_states WHERE value = $1 RETURNING id, value, created_at",
                value,
            )
        return OAuthState(**dict(row)) if row else None

    async def delete_older_than(self, cutoff: datetime) -> int:
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                "DELETE FROM oauth_states WHERE created_at <= $1",
                cutoff,
            )
        # asyncpg returns the command tag, e.g. "DELETE 3"
        return int(result.split()[-1])
