"""Shared repository layer for the RobOct backend."""

from .bot_token import BotTokenRepository
from .channel import ChannelRepository, GuildRepository, LinkedEntityRepository
from .state import StateRepository
from .user import UserRepository

__all__ = [
    "BotTokenRepository",
    "ChannelRepository",
    "GuildRepository",
    "LinkedEntityRepository",
    "StateRepository",
    "UserRepository",
]
