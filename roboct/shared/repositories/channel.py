"""Repositories for the channels and guilds tables.

Both tables carry the same OAuth token columns; only the external key
(and, for channels, the Twitch login) differ.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar

import asyncpg

from roboct.shared.models.channel import Channel, Guild


class LinkedEntityRepository:
    """Pure SQL operations shared by token-carrying entity tables."""

    TABLE: ClassVar[str]
    KEY: ClassVar[str]
    MODEL: ClassVar[type]
    EXTRA_COLUMNS: ClassVar[tuple[str, ...]] = ()

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    @property
    def columns(self) -> str:
        return ", ".join(
            [
                "id",
                self.KEY,
                *self.EXTRA_COLUMNS,
                "access_token",
                "refresh_token",
                "expires_at",
                "enabled",
                "last_refresh",
                "registered_at",
            ]
        )

    def _to_model(self, row: asyncpg.Record | None) -> Any:
        if not row:
            return None
        return self.MODEL(**dict(row))

    # ==================== Reads ====================

    async def get(self, external_id: str) -> Any:
        """Get one entity by its platform id."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {self.columns} FROM {self.TABLE} WHERE {self.KEY} = $1",
                external_id,
            )
        return self._to_model(row)

    async def get_by_id(self, entity_id: int) -> Any:
        """Get one entity by its row id."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {self.columns} FROM {self.TABLE} WHERE id = $1",
                entity_id,
            )
        return self._to_model(row)

    async def list_enabled(self) -> list[Any]:
        """Return all enabled entities."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {self.columns} FROM {self.TABLE} WHERE enabled = TRUE ORDER BY id"
            )
        return [self._to_model(r) for r in rows]

    # ==================== Token writes ====================

    async def upsert_tokens(
        self,
        external_id: str,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
        **extra: str,
    ) -> Any:
        """Insert an entity or replace its token pair and re-enable it."""
        extra_values = [extra.get(column, "") for column in self.EXTRA_COLUMNS]
        insert_columns = [
            self.KEY, *self.EXTRA_COLUMNS, "access_token", "refresh_token", "expires_at"
        ]
        placeholders = ", ".join(f"${i}" for i in range(1, len(insert_columns) + 1))
        updates = ",\n".join(
            f"{column} = EXCLUDED.{column}" for column in insert_columns[1:]
        )

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO {self.TABLE} ({", ".join(insert_columns)}, enabled)
                VALUES ({placeholders}, TRUE)
                ON CONFLICT ({self.KEY}) DO UPDATE SET
                    {updates},
                    enabled = TRUE
                RETURNING {self.columns}
                """,
                external_id,
                *extra_values,
                access_token,
                refresh_token,
                expires_at,
            )
        return self._to_model(row)

    async def update_tokens(
        self,
        entity_id: int,
        expected_refresh_token: str,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
        last_refresh: datetime,
    ) -> Any:
        """Replace the token pair if the stored refresh token is still *expected_refresh_token*.

        Returns None when another writer replaced the pair first.
        """
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE {self.TABLE} SET
                    access_token  = $3,
                    refresh_token = $4,
                    expires_at    = $5,
                    last_refresh  = $6
                WHERE id = $1 AND refresh_token = $2
                RETURNING {self.columns}
                """,
                entity_id,
                expected_refresh_token,
                access_token,
                refresh_token,
                expires_at,
                last_refresh,
            )
        return self._to_model(row)

    async def disable(self, entity_id: int, expected_refresh_token: str) -> Any:
        """Disable an entity unless its token pair was replaced meanwhile."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE {self.TABLE} SET enabled = FALSE
                WHERE id = $1 AND refresh_token = $2
                RETURNING {self.columns}
                """,
                entity_id,
                expected_refresh_token,
            )
        return self._to_model(row)

    # ==================== Admin operations ====================

    async def set_enabled(self, external_id: str, enabled: bool) -> Any:
        """Toggle an entity's enabled state."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"UPDATE {self.TABLE} SET enabled = $2 WHERE {self.KEY} = $1 "
                f"RETURNING {self.columns}",
                external_id,
                enabled,
            )
        return self._to_model(row)

    async def delete(self, external_id: str) -> Any:
        """Hard-delete an entity. Returns the deleted row, if any."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"DELETE FROM {self.TABLE} WHERE {self.KEY} = $1 RETURNING {self.columns}",
                external_id,
            )
        return self._to_model(row)


class ChannelRepository(LinkedEntityRepository):
    """Twitch channels keyed by channel_id."""

    TABLE = "channels"
    KEY = "channel_id"
    MODEL = Channel
    EXTRA_COLUMNS = ("username",)

    async def search(
        self,
        query: str,
        limit: int = 20,
        offset: int = 0,
        include_disabled: bool = False,
    ) -> list[Channel]:
        """Case-insensitive substring search; `%` and `_` match literally."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {self.columns} FROM channels
                WHERE ($4 OR enabled = TRUE)
                  AND strpos(lower(username), lower($1)) > 0
                ORDER BY registered_at, id
                LIMIT $2 OFFSET $3
                """,
                query,
                limit,
                offset,
                include_disabled,
            )
        return [Channel(**dict(r)) for r in rows]


class GuildRepository(LinkedEntityRepository):
    """Discord guilds keyed by guild_id."""

    TABLE = "guilds"
    KEY = "guild_id"
    MODEL = Guild
