"""Shared data models for the RobOct backend."""

from .bot_token import DISCORD, PLATFORMS, TWITCH, BotToken
from .channel import Channel, Guild, LinkedEntity
from .state import OAuthState, PendingAccountLink
from .user import User

__all__ = [
    "DISCORD",
    "PLATFORMS",
    "TWITCH",
    "BotToken",
    "Channel",
    "Guild",
    "LinkedEntity",
    "OAuthState",
    "PendingAccountLink",
    "User",
]
