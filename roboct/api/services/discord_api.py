"""Discord API client service"""

import logging

from pydantic import BaseModel

from .oauth_provider import ExchangeError, OAuthProviderClient, UserInfo

logger = logging.getLogger(__name__)


class DiscordUser(BaseModel):
    id: str
    username: str


class DiscordAPIClient(OAuthProviderClient):
    """Client for the Discord OAuth2 endpoints used by the bot invite flow"""

    DISCORD_API_URL = "https://discord.com/api/v10"

    name = "discord"
    AUTHORIZE_URL = "https://discord.com/oauth2/authorize"
    TOKEN_URL = f"{DISCORD_API_URL}/oauth2/token"
    VALIDATE_URL = f"{DISCORD_API_URL}/users/@me"

    # Discord OAuth scopes
    SCOPES = [
        "identify",
        "bot",
        "applications.commands",
    ]

    def __init__(self, *args, permissions: str = "309237902400", **kwargs):
        super().__init__(*args, **kwargs)
        self.permissions = permissions

    def _extra_authorize_params(self) -> dict[str, str]:
        return {"permissions": self.permissions}

    def _client_credentials_params(self) -> dict[str, str]:
        return {"scope": "identify"}

    async def get_user_info(self, access_token: str) -> UserInfo:
        """Fetch the Discord user owning *access_token*"""
        response = await self._http.get(
            self.VALIDATE_URL,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if response.is_error:
            logger.error(f"[discord] Failed to get user info: {response.status_code}")
            raise ExchangeError(
                f"Discord /users/@me returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            user = DiscordUser.model_validate(response.json())
        except ValueError as e:
            raise ExchangeError("Discord /users/@me returned an unusable body") from e
        return UserInfo(id=user.id, login=user.username)
