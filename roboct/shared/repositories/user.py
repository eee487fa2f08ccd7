"""Repository for users and pending_account_links tables."""

from __future__ import annotations

from datetime import datetime

import asyncpg

from roboct.shared.models.state import PendingAccountLink
from roboct.shared.models.user import User


_USER_COLUMNS = "id, twitch_id, discord_id, linked_at, opt_out, registered_at"


class UserRepository:
    """Pure SQL operations for cross-platform users and link requests."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    # ==================== Users ====================

    async def get_by_twitch_id(self, twitch_id: str) -> User | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_USER_COLUMNS} FROM users WHERE twitch_id = $1",
                twitch_id,
            )
        return User(**dict(row)) if row else None

    async def get_by_discord_id(self, discord_id: str) -> User | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_USER_COLUMNS} FROM users WHERE discord_id = $1",
                discord_id,
            )
        return User(**dict(row)) if row else None

    async def create(self, twitch_id: str) -> User:
        """Insert a Twitch user, returning the existing row on conflict."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO users (twitch_id) VALUES ($1)
                ON CONFLICT (twitch_id) DO UPDATE SET twitch_id = EXCLUDED.twitch_id
                RETURNING {_USER_COLUMNS}
                """,
                twitch_id,
            )
        return User(**dict(row))

    async def link(self, discord_id: str, twitch_id: str, linked_at: datetime) -> User:
        """Attach a Discord account to a Twitch user (created if missing)."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO users (twitch_id, discord_id, linked_at)
                VALUES ($1, $2, $3)
                ON CONFLICT (twitch_id) DO UPDATE SET
                    discord_id = EXCLUDED.discord_id,
                    linked_at  = EXCLUDED.linked_at
                RETURNING {_USER_COLUMNS}
                """,
                twitch_id,
                discord_id,
                linked_at,
            )
        return User(**dict(row))

    async def unlink(self, discord_id: str | None, twitch_id: str | None) -> User | None:
        """Clear the Discord side of a link matched by either id."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE users SET discord_id = NULL, linked_at = NULL
                WHERE discord_id IS NOT NULL
                  AND ($1::text IS NULL OR discord_id = $1)
                  AND ($2::text IS NULL OR twitch_id = $2)
                RETURNING {_USER_COLUMNS}
                """,
                discord_id,
                twitch_id,
            )
        return User(**dict(row)) if row else None

    async def set_opt_out(self, twitch_id: str, opt_out: bool) -> User | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"UPDATE users SET opt_out = $2 WHERE twitch_id = $1 RETURNING {_USER_COLUMNS}",
                twitch_id,
                opt_out,
            )
        return User(**dict(row)) if row else None

    # ==================== Pending account links ====================

    async def replace_pending_link(self, discord_id: str, state_value: str) -> PendingAccountLink:
        """Drop older link requests of *discord_id* and record a new one."""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(
                    "DELETE FROM pending_account_links WHERE discord_id = $1",
                    discord_id,
                )
                row = await conn.fetchrow(
                    """
                    INSERT INTO pending_account_links (discord_id, state_value)
                    VALUES ($1, $2)
                    RETURNING id, discord_id, state_value, created_at
                    """,
                    discord_id,
                    state_value,
                )
        return PendingAccountLink(**dict(row))

    async def get_pending_link(self, state_value: str) -> PendingAccountLink | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT id, discord_id, state_value, created_at "
                "FROM pending_account_links WHERE state_value = $1",
                state_value,
            )
        return PendingAccountLink(**dict(row)) if row else None

    async def delete_pending_links(self, discord_id: str) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                "DELETE FROM pending_account_links WHERE discord_id = $1",
                discord_id,
            )
