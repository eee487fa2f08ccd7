"""Data models for linked Twitch channels and Discord guilds."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Channel:
    """Twitch channel linked through the broadcaster OAuth flow."""

    id: int
    channel_id: str
    username: str
    access_token: str
    refresh_token: str
    expires_at: datetime
    enabled: bool = True
    last_refresh: datetime | None = None
    registered_at: datetime | None = None

    @property
    def external_id(self) -> str:
        return self.channel_id

    @property
    def label(self) -> str:
        return self.username or self.channel_id


@dataclass
class Guild:
    """Discord guild linked through the bot invite OAuth flow."""

    id: int
    guild_id: str
    access_token: str
    refresh_token: str
    expires_at: datetime
    enabled: bool = True
    last_refresh: datetime | None = None
    registered_at: datetime | None = None

    @property
    def external_id(self) -> str:
        return self.guild_id

    @property
    def label(self) -> str:
        return f"guild {self.guild_id}"


LinkedEntity = Channel | Guild
