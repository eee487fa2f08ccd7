"""API routers"""

from . import channels_router, guilds_router, oauth_router, users_router

__all__ = ["channels_router", "guilds_router", "oauth_router", "users_router"]
