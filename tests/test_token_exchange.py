"""Tests for token refresh with disable-on-failure."""

from datetime import timedelta

import httpx
import pytest

from roboct.api.services import (
    EntityNotFoundError,
    EntityTokenUpdater,
    ExchangeError,
    TokenExchangeClient,
    TokenGrant,
    TwitchAPIClient,
)
from tests.fakes import make_grant, make_provider


@pytest.fixture
def provider():
    return make_provider(TwitchAPIClient)


def make_client(provider, repo, clock, development_mode=False) -> TokenExchangeClient:
    return TokenExchangeClient(
        provider, EntityTokenUpdater(repo, clock=clock), development_mode=development_mode
    )


def _malformed_grant(*args):
    # raises pydantic.ValidationError, like a token body without refresh_token
    return TokenGrant.model_validate({"access_token": "only-access"})


class TestDelegation:
    async def test_get_access_token(self, provider, channel_repo, clock):
        client = make_client(provider, channel_repo, clock)

        grant = await client.get_access_token("the-code")

        assert grant == make_grant()
        provider.exchange_code.assert_awaited_once_with("the-code", None)

    async def test_get_user_info(self, provider, channel_repo, clock):
        client = make_client(provider, channel_repo, clock)

        info = await client.get_user_info("token")

        assert info.id == "1001"
        provider.get_user_info.assert_awaited_once_with("token")


class TestRefreshToken:
    async def test_success_persists_new_pair(self, provider, channel_repo, clock):
        channel = channel_repo.add("1001")
        provider.refresh.return_value = make_grant("a2", "r2", 7200)
        client = make_client(provider, channel_repo, clock)

        result = await client.refresh_token(channel)

        provider.refresh.assert_awaited_once_with("refresh-1001")
        assert result.access_token == "a2"
        assert result.refresh_token == "r2"
        assert result.expires_at == clock.now + timedelta(hours=2)
        assert result.last_refresh == clock.now
        assert result.enabled is True

    @pytest.mark.parametrize(
        "failure",
        [
            ExchangeError("twitch token endpoint returned 400", status_code=400),
            _malformed_grant,
            httpx.ConnectError("connection refused"),
        ],
        ids=["rejected", "malformed", "network"],
    )
    async def test_failure_disables_in_production(self, provider, channel_repo, clock, failure):
        channel = channel_repo.add("1001")
        provider.refresh.side_effect = failure
        client = make_client(provider, channel_repo, clock)

        result = await client.refresh_token(channel)

        assert result.enabled is False
        assert channel_repo.rows["1001"].enabled is False

    async def test_failure_keeps_entity_in_development(self, provider, channel_repo, clock):
        channel = channel_repo.add("1001")
        provider.refresh.side_effect = ExchangeError("rejected", status_code=400)
        client = make_client(provider, channel_repo, clock, development_mode=True)

        result = await client.refresh_token(channel)

        assert result == channel
        assert channel_repo.rows["1001"].enabled is True

    async def test_timeout_is_transient(self, provider, channel_repo, clock):
        channel = channel_repo.add("1001")
        provider.refresh.side_effect = httpx.ReadTimeout("timed out")
        client = make_client(provider, channel_repo, clock)

        result = await client.refresh_token(channel)

        assert result == channel
        assert channel_repo.rows["1001"].enabled is True
        assert channel_repo.rows["1001"].access_token == "access-1001"


class TestRefreshByExternalId:
    async def test_refreshes_stored_entity(self, provider, channel_repo, clock):
        channel_repo.add("1001")
        client = make_client(provider, channel_repo, clock)

        result = await client.refresh_token_by_external_id("1001")

        assert result.access_token == "new-access"

    async def test_unknown_id_raises(self, provider, channel_repo, clock):
        client = make_client(provider, channel_repo, clock)

        with pytest.raises(EntityNotFoundError):
            await client.refresh_token_by_external_id("404")
        provider.refresh.assert_not_awaited()
