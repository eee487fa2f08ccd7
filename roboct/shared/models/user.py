"""Cross-platform user model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """A Twitch user, optionally linked to a Discord account."""

    id: int
    twitch_id: str
    discord_id: str | None = None
    linked_at: datetime | None = None
    opt_out: bool = False
    registered_at: datetime | None = None
