"""Business logic services"""

from .bot_token_service import BotTokenService
from .discord_api import DiscordAPIClient
from .entity_service import ChannelService, EntityService, GuildService
from .oauth_provider import (
    AppTokenGrant,
    EntityNotFoundError,
    ExchangeError,
    OAuthProviderClient,
    TokenGrant,
    UserInfo,
)
from .state_service import StateService
from .token_exchange import TokenExchangeClient
from .token_sweep import TokenSweep
from .token_updater import EntityTokenUpdater
from .twitch_api import TwitchAPIClient
from .user_service import UserService

__all__ = [
    "AppTokenGrant",
    "BotTokenService",
    "ChannelService",
    "DiscordAPIClient",
    "EntityNotFoundError",
    "EntityService",
    "EntityTokenUpdater",
    "ExchangeError",
    "GuildService",
    "OAuthProviderClient",
    "StateService",
    "TokenExchangeClient",
    "TokenGrant",
    "TokenSweep",
    "TwitchAPIClient",
    "UserInfo",
    "UserService",
]
