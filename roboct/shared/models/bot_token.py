"""Platform-level bot token model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

TWITCH = "twitch"
DISCORD = "discord"
PLATFORMS = (TWITCH, DISCORD)


@dataclass
class BotToken:
    """Client-credentials token, one row per platform."""

    platform: str
    access_token: str
    expires_at: datetime
    updated_at: datetime | None = None
