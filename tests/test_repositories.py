"""SQL repositories against a mocked asyncpg pool."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from roboct.shared.database import DatabaseManager
from roboct.shared.migrations.runner import MigrationRunner
from roboct.shared.models import Channel, Guild, OAuthState
from roboct.shared.repositories import (
    ChannelRepository,
    GuildRepository,
    StateRepository,
    UserRepository,
)

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def channel_row(**overrides) -> dict:
    row = {
        "id": 1,
        "channel_id": "1001",
        "username": "streamer",
        "access_token": "at",
        "refresh_token": "rt",
        "expires_at": NOW,
        "enabled": True,
        "last_refresh": None,
        "registered_at": NOW,
    }
    row.update(overrides)
    return row


@pytest.fixture
def conn():
    conn = AsyncMock()
    conn.transaction = MagicMock()
    return conn


@pytest.fixture
def pool(conn):
    pool = MagicMock()
    pool.acquire.return_value.__aenter__.return_value = conn
    return pool


class TestStateRepository:
    async def test_pop_deletes_and_returns(self, pool, conn):
        conn.fetchrow.return_value = {"id": 1, "value": "abc", "created_at": NOW}

        state = await StateRepository(pool).pop("abc")

        assert state == OAuthState(id=1, value="abc", created_at=NOW)
        sql = conn.fetchrow.await_args.args[0]
        assert sql.startswith("DELETE FROM oauth_states")
        assert "RETURNING" in sql

    async def test_pop_missing_returns_none(self, pool, conn):
        conn.fetchrow.return_value = None

        assert await StateRepository(pool).pop("abc") is None

    async def test_delete_older_than_parses_command_tag(self, pool, conn):
        conn.execute.return_value = "DELETE 3"

        assert await StateRepository(pool).delete_older_than(NOW) == 3


class TestChannelRepository:
    async def test_upsert_tokens_conflicts_on_channel_id(self, pool, conn):
        conn.fetchrow.return_value = channel_row()

        channel = await ChannelRepository(pool).upsert_tokens(
            "1001", "at", "rt", NOW, username="streamer"
        )

        assert isinstance(channel, Channel)
        sql, *args = conn.fetchrow.await_args.args
        assert "ON CONFLICT (channel_id) DO UPDATE" in sql
        assert "enabled = TRUE" in sql
        assert args == ["1001", "streamer", "at", "rt", NOW]

    async def test_update_tokens_is_conditional(self, pool, conn):
        conn.fetchrow.return_value = None

        result = await ChannelRepository(pool).update_tokens(1, "old-rt", "a2", "r2", NOW, NOW)

        assert result is None
        sql, *args = conn.fetchrow.await_args.args
        assert "WHERE id = $1 AND refresh_token = $2" in sql
        assert args[:2] == [1, "old-rt"]

    async def test_list_enabled(self, pool, conn):
        conn.fetch.return_value = [channel_row(), channel_row(id=2, channel_id="1002")]

        channels = await ChannelRepository(pool).list_enabled()

        assert [c.channel_id for c in channels] == ["1001", "1002"]
        assert "enabled = TRUE" in conn.fetch.await_args.args[0]

    async def test_search_passes_include_disabled(self, pool, conn):
        conn.fetch.return_value = []

        await ChannelRepository(pool).search("cool", 5, 10, include_disabled=True)

        assert conn.fetch.await_args.args[1:] == ("cool", 5, 10, True)

    async def test_search_treats_wildcards_literally(self, pool, conn):
        conn.fetch.return_value = []

        await ChannelRepository(pool).search("a_b%")

        sql = conn.fetch.await_args.args[0]
        assert "LIKE" not in sql
        assert "strpos(lower(username), lower($1))" in sql
        assert conn.fetch.await_args.args[1] == "a_b%"


class TestGuildRepository:
    async def test_upsert_has_no_extra_columns(self, pool, conn):
        row = channel_row(guild_id="555")
        del row["channel_id"], row["username"]
        conn.fetchrow.return_value = row

        guild = await GuildRepository(pool).upsert_tokens("555", "at", "rt", NOW)

        assert isinstance(guild, Guild)
        sql, *args = conn.fetchrow.await_args.args
        assert "ON CONFLICT (guild_id)" in sql
        assert args == ["555", "at", "rt", NOW]


class TestUserRepository:
    async def test_replace_pending_link_runs_in_transaction(self, pool, conn):
        conn.fetchrow.return_value = {
            "id": 1,
            "discord_id": "777",
            "state_value": "abc",
            "created_at": NOW,
        }

        link = await UserRepository(pool).replace_pending_link("777", "abc")

        conn.transaction.assert_called_once()
        assert conn.execute.await_args.args == (
            "DELETE FROM pending_account_links WHERE discord_id = $1",
            "777",
        )
        assert link.state_value == "abc"


class TestMigrationRunner:
    async def test_pending_skips_applied_versions(self, pool, conn, tmp_path):
        (tmp_path / "000_initial.sql").write_text("SELECT 1;")
        (tmp_path / "001_next.sql").write_text("SELECT 2;")
        conn.fetch.return_value = [{"version": "000_initial"}]

        pending = await MigrationRunner(pool, tmp_path).pending()

        assert [p.stem for p in pending] == ["001_next"]

    async def test_run_pending_records_each_version(self, pool, conn, tmp_path):
        (tmp_path / "000_initial.sql").write_text("CREATE TABLE t (id INT);")
        conn.fetch.return_value = []

        applied = await MigrationRunner(pool, tmp_path).run_pending()

        assert applied == ["000_initial"]
        executed = [call.args for call in conn.execute.await_args_list]
        assert ("CREATE TABLE t (id INT);",) in executed
        assert any("INSERT INTO schema_migrations" in args[0] for args in executed)

    def test_bundled_schema_is_found(self):
        versions = MigrationRunner(MagicMock()).migrations_dir
        assert (versions / "000_initial_schema.sql").exists()


class TestDatabaseManager:
    def test_transaction_pooler_disables_statement_cache(self):
        manager = DatabaseManager("postgresql://u:p@db.example.com:6543/postgres")

        kwargs = manager._pool_kwargs()

        assert kwargs["statement_cache_size"] == 0
        assert kwargs["min_size"] == 0

    def test_session_mode_keeps_statement_cache(self):
        kwargs = DatabaseManager("postgresql://u:p@localhost:5432/roboct")._pool_kwargs()

        assert kwargs["statement_cache_size"] == 100

    def test_pool_before_connect_raises(self):
        with pytest.raises(RuntimeError):
            DatabaseManager("postgresql://localhost/roboct").pool

    async def test_health_without_pool_is_false(self):
        assert await DatabaseManager("postgresql://localhost/roboct").check_health() is False
