"""Twitch API client service.

Token types:
- User Access Token: broadcaster token from the channel invite flow,
  stored in the channels table and refreshed by the sweep.
- App Access Token: client-credentials bot token, stored in bot_tokens
  and used for public Helix lookups (user directory).
"""

import logging

from .oauth_provider import ExchangeError, OAuthProviderClient, UserInfo

logger = logging.getLogger(__name__)

HELIX_BASE = "https://api.twitch.tv/helix"
OAUTH_BASE = "https://id.twitch.tv/oauth2"

# Helix accepts at most 100 id/login query params per request
HELIX_BATCH_SIZE = 100


class TwitchAPIClient(OAuthProviderClient):
    """Client for the Twitch OAuth and Helix endpoints."""

    name = "twitch"
    AUTHORIZE_URL = f"{OAUTH_BASE}/authorize"
    TOKEN_URL = f"{OAUTH_BASE}/token"
    VALIDATE_URL = f"{OAUTH_BASE}/validate"

    SCOPES = [
        "channel:manage:broadcast",
        "clips:edit",
        "chat:read",
        "chat:edit",
    ]

    def _introspection_headers(self, access_token: str) -> dict[str, str]:
        # id.twitch.tv/oauth2/validate expects the "OAuth" scheme
        return {"Authorization": f"OAuth {access_token}"}

    def _helix_headers(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}", "Client-Id": self.client_id}

    @property
    def link_redirect_uri(self) -> str:
        return f"{self.api_url}/oauth/v1/users/callback"

    def link_authorize_url(self, state: str) -> str:
        """Authorize URL for the Discord -> Twitch account link (identity only)."""
        return self.authorize_url(
            state,
            redirect_uri=self.link_redirect_uri,
            scopes=[],
            force_verify="true",
        )

    # ------------------------------------------------------------------
    # Helix
    # ------------------------------------------------------------------

    async def _helix_get(self, path: str, params: list[tuple[str, str]] | None, token: str) -> dict:
        response = await self._http.get(
            f"{HELIX_BASE}/{path}",
            params=params,
            headers=self._helix_headers(token),
        )
        if response.is_error:
            logger.error(f"[twitch] Helix GET /{path} returned {response.status_code}")
            raise ExchangeError(
                f"Helix /{path} returned {response.status_code}",
                status_code=response.status_code,
            )
        return response.json()

    async def get_user_info(self, access_token: str) -> UserInfo:
        """Identity of the user owning *access_token*."""
        data = await self._helix_get("users", None, access_token)
        users = data.get("data", [])
        if not users:
            raise ExchangeError("Helix /users returned no user for this token")
        try:
            return UserInfo.model_validate(users[0])
        except ValueError as e:
            raise ExchangeError("Helix /users returned an unusable user") from e

    async def get_users(
        self,
        *,
        token: str,
        ids: list[str] | None = None,
        logins: list[str] | None = None,
    ) -> list[dict]:
        """Look up Twitch users by id and/or login with an app token.

        Queries are split into batches of 100 keys.
        """
        keys = [("id", i) for i in ids or []] + [("login", name) for name in logins or []]
        users: list[dict] = []
        for start in range(0, len(keys), HELIX_BATCH_SIZE):
            batch = keys[start : start + HELIX_BATCH_SIZE]
            data = await self._helix_get("users", batch, token)
            users.extend(data.get("data", []))
        return users
