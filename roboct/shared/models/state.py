"""OAuth state and pending account link models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class OAuthState:
    """Single-use anti-CSRF value embedded in an authorize redirect."""

    id: int
    value: str
    created_at: datetime


@dataclass
class PendingAccountLink:
    """Discord user waiting for the Twitch side of an account link."""

    id: int
    discord_id: str
    state_value: str
    created_at: datetime | None = None
