"""Client-credentials tokens of the bot itself."""

import logging
from datetime import timedelta

from roboct.api.core.errors import APIError
from roboct.shared.models.bot_token import BotToken
from roboct.shared.repositories.bot_token import BotTokenRepository

from .oauth_provider import OAuthProviderClient
from .token_updater import Clock, utcnow

logger = logging.getLogger(__name__)


class BotTokenService:
    """Keep one valid app access token per platform in ``bot_tokens``."""

    def __init__(
        self,
        providers: dict[str, OAuthProviderClient],
        repo: BotTokenRepository,
        *,
        refresh_window: timedelta = timedelta(minutes=30),
        clock: Clock | None = None,
    ) -> None:
        self.providers = providers
        self.repo = repo
        self.refresh_window = refresh_window
        self._now = clock or utcnow

    async def check_and_refresh(self) -> None:
        """Refetch every missing or soon-expiring bot token. Errors propagate."""
        for platform in self.providers:
            token = await self.repo.get(platform)
            if token is None:
                logger.info(f"[{platform}] No bot token stored, fetching one")
                await self.fetch(platform)
            elif token.expires_at < self._now() + self.refresh_window:
                logger.info(f"[{platform}] Bot token expires soon, fetching a new one")
                await self.fetch(platform)
            else:
                logger.info(
                    f"[{platform}] Bot token valid until {token.expires_at:%Y-%m-%d %H:%M:%S %Z}"
                )

    async def fetch(self, platform: str) -> BotToken:
        grant = await self.providers[platform].client_credentials()
        token = await self.repo.upsert(
            platform,
            grant.access_token,
            self._now() + timedelta(seconds=grant.expires_in),
        )
        logger.info(f"[{platform}] Bot token refreshed")
        return token

    async def get_access_token(self, platform: str) -> str:
        token = await self.repo.get(platform)
        if token is None:
            logger.error(f"[{platform}] No bot token was found")
            raise APIError()
        return token.access_token
