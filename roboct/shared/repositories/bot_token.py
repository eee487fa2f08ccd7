"""Repository for the bot_tokens table."""

from __future__ import annotations

from datetime import datetime

import asyncpg

from roboct.shared.models.bot_token import BotToken


class BotTokenRepository:
    """One client-credentials token row per platform."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def get(self, platform: str) -> BotToken | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT platform, access_token, expires_at, updated_at "
                "FROM bot_tokens WHERE platform = $1",
                platform,
            )
        return BotToken(**dict(row)) if row else None

    async def upsert(self, platform: str, access_token: str, expires_at: datetime) -> BotToken:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO bot_tokens (platform, access_token, expires_at)
                VALUES ($1, $2, $3)
                ON CONFLICT (platform) DO UPDATE SET
                    access_token = EXCLUDED.access_token,
                    expires_at   = EXCLUDED.expires_at,
                    updated_at   = NOW()
                RETURNING platform, access_token, expires_at, updated_at
                """,
                platform,
                access_token,
                expires_at,
            )
        return BotToken(**dict(row))
