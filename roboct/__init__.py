"""RobOct - Twitch/Discord community bot platform backend."""
