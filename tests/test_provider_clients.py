"""Tests for the Twitch and Discord HTTP clients, using httpx.MockTransport."""

from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from pydantic import ValidationError

from roboct.api.services import DiscordAPIClient, ExchangeError, TwitchAPIClient

TOKEN_BODY = {"access_token": "at", "refresh_token": "rt", "expires_in": 14400, "scope": []}


class Recorder:
    """MockTransport handler that records requests and replays a fixed response."""

    def __init__(self, status_code: int = 200, json=None, exc: Exception | None = None):
        self.requests: list[httpx.Request] = []
        self.status_code = status_code
        self.json = json if json is not None else TOKEN_BODY
        self.exc = exc

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return httpx.Response(self.status_code, json=self.json)

    @property
    def form(self) -> dict[str, str]:
        return {k: v[0] for k, v in parse_qs(self.requests[-1].content.decode()).items()}


def twitch_client(handler) -> TwitchAPIClient:
    return TwitchAPIClient(
        "tid", "tsecret", "http://api.test/", transport=httpx.MockTransport(handler)
    )


def discord_client(handler) -> DiscordAPIClient:
    return DiscordAPIClient(
        "did",
        "dsecret",
        "http://api.test",
        transport=httpx.MockTransport(handler),
        permissions="8",
    )


def query_of(url: str) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query).items()}


class TestAuthorizeUrl:
    def test_twitch_invite_url(self):
        url = twitch_client(Recorder()).authorize_url("abc123")
        query = query_of(url)

        assert url.startswith("https://id.twitch.tv/oauth2/authorize?")
        assert query == {
            "client_id": "tid",
            "redirect_uri": "http://api.test/twitch/callback",
            "response_type": "code",
            "scope": "channel:manage:broadcast clips:edit chat:read chat:edit",
            "state": "abc123",
        }
        assert "%20" in url

    def test_twitch_link_url_forces_verify_without_scopes(self):
        query = query_of(twitch_client(Recorder()).link_authorize_url("s1"))

        assert query["force_verify"] == "true"
        assert query["redirect_uri"] == "http://api.test/oauth/v1/users/callback"
        assert "scope" not in query

    def test_discord_invite_url(self):
        url = discord_client(Recorder()).authorize_url("xyz")
        query = query_of(url)

        assert url.startswith("https://discord.com/oauth2/authorize?")
        assert query["scope"] == "identify bot applications.commands"
        assert query["permissions"] == "8"
        assert query["redirect_uri"] == "http://api.test/discord/callback"
        assert query["state"] == "xyz"

    def test_missing_credentials_rejected(self):
        with pytest.raises(ValueError):
            TwitchAPIClient("", "secret", "http://api.test")


class TestTokenEndpoint:
    async def test_exchange_code_posts_form(self):
        recorder = Recorder()
        client = twitch_client(recorder)

        grant = await client.exchange_code("the-code")

        request = recorder.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://id.twitch.tv/oauth2/token"
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert recorder.form == {
            "client_id": "tid",
            "client_secret": "tsecret",
            "grant_type": "authorization_code",
            "code": "the-code",
            "redirect_uri": "http://api.test/twitch/callback",
        }
        assert (grant.access_token, grant.refresh_token, grant.expires_in) == ("at", "rt", 14400)

    async def test_refresh_posts_refresh_token(self):
        recorder = Recorder()
        client = discord_client(recorder)

        await client.refresh("old-refresh")

        assert str(recorder.requests[0].url) == "https://discord.com/api/v10/oauth2/token"
        assert recorder.form["grant_type"] == "refresh_token"
        assert recorder.form["refresh_token"] == "old-refresh"

    async def test_non_2xx_raises_exchange_error(self):
        client = twitch_client(Recorder(400, {"status": 400, "message": "Invalid refresh token"}))

        with pytest.raises(ExchangeError) as exc_info:
            await client.refresh("bad")
        assert exc_info.value.status_code == 400

    async def test_schema_mismatch_raises_validation_error(self):
        client = twitch_client(Recorder(json={"access_token": "at", "expires_in": 10}))

        with pytest.raises(ValidationError):
            await client.exchange_code("code")

    async def test_timeout_propagates(self):
        client = twitch_client(Recorder(exc=httpx.ReadTimeout("slow")))

        with pytest.raises(httpx.TimeoutException):
            await client.refresh("rt")

    async def test_discord_client_credentials_requests_identify(self):
        recorder = Recorder(json={"access_token": "app", "expires_in": 604800})
        client = discord_client(recorder)

        grant = await client.client_credentials()

        assert recorder.form["grant_type"] == "client_credentials"
        assert recorder.form["scope"] == "identify"
        assert grant.access_token == "app"


class TestValidateToken:
    @pytest.mark.parametrize("status, expected", [(200, True), (401, False)])
    async def test_twitch_introspection(self, status, expected):
        recorder = Recorder(status, {})
        client = twitch_client(recorder)

        assert await client.validate_token("tok") is expected
        request = recorder.requests[0]
        assert str(request.url) == "https://id.twitch.tv/oauth2/validate"
        assert request.headers["authorization"] == "OAuth tok"

    async def test_discord_introspection_uses_bearer(self):
        recorder = Recorder(200, {"id": "1", "username": "bot"})
        client = discord_client(recorder)

        assert await client.validate_token("tok") is True
        assert str(recorder.requests[0].url) == "https://discord.com/api/v10/users/@me"
        assert recorder.requests[0].headers["authorization"] == "Bearer tok"

    async def test_other_status_raises(self):
        client = discord_client(Recorder(503, {}))

        with pytest.raises(ExchangeError):
            await client.validate_token("tok")


class TestUserInfo:
    async def test_twitch_user_info_from_helix(self):
        recorder = Recorder(json={"data": [{"id": "1001", "login": "streamer"}]})
        client = twitch_client(recorder)

        info = await client.get_user_info("user-token")

        request = recorder.requests[0]
        assert str(request.url) == "https://api.twitch.tv/helix/users"
        assert request.headers["authorization"] == "Bearer user-token"
        assert request.headers["client-id"] == "tid"
        assert (info.id, info.login) == ("1001", "streamer")

    async def test_twitch_user_info_empty_raises(self):
        client = twitch_client(Recorder(json={"data": []}))

        with pytest.raises(ExchangeError):
            await client.get_user_info("user-token")

    async def test_discord_user_info(self):
        client = discord_client(Recorder(json={"id": "42", "username": "admin"}))

        info = await client.get_user_info("tok")

        assert (info.id, info.login) == ("42", "admin")

    @pytest.mark.parametrize(
        "body", [{"id": "42"}, {"username": "admin"}, []], ids=["no-username", "no-id", "list"]
    )
    async def test_discord_user_info_malformed_body_raises(self, body):
        client = discord_client(Recorder(json=body))

        with pytest.raises(ExchangeError):
            await client.get_user_info("tok")

    async def test_twitch_user_info_without_login_raises(self):
        client = twitch_client(Recorder(json={"data": [{"id": "1001"}]}))

        with pytest.raises(ExchangeError):
            await client.get_user_info("user-token")

    async def test_get_users_batches_by_100(self):
        recorder = Recorder(json={"data": [{"id": "x"}]})
        client = twitch_client(recorder)
        ids = [str(i) for i in range(150)]

        users = await client.get_users(token="app", ids=ids)

        assert len(recorder.requests) == 2
        assert len(recorder.requests[0].url.params.get_list("id")) == 100
        assert len(recorder.requests[1].url.params.get_list("id")) == 50
        assert len(users) == 2
