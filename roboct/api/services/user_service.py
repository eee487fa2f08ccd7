"""Cross-platform users and the Discord -> Twitch account link."""

import logging
from dataclasses import asdict

import httpx
from pydantic import ValidationError

from roboct.api.core.errors import APIError
from roboct.shared.models.bot_token import TWITCH
from roboct.shared.models.user import User
from roboct.shared.repositories.user import UserRepository

from .bot_token_service import BotTokenService
from .entity_service import PROVIDER_TIMEOUT_MESSAGE
from .oauth_provider import ExchangeError
from .state_service import StateService
from .token_updater import Clock, utcnow
from .twitch_api import TwitchAPIClient

logger = logging.getLogger(__name__)


def user_to_dict(user: User) -> dict:
    data = asdict(user)
    data.pop("id")
    return data


class UserService:
    """User directory, opt-out and account linking."""

    def __init__(
        self,
        repo: UserRepository,
        states: StateService,
        twitch: TwitchAPIClient,
        bot_tokens: BotTokenService,
        clock: Clock | None = None,
    ) -> None:
        self.repo = repo
        self.states = states
        self.twitch = twitch
        self.bot_tokens = bot_tokens
        self._now = clock or utcnow

    # ==================== Account linking ====================

    async def generate_link_url(self, discord_id: str) -> str:
        """Start a link for *discord_id* and return the Twitch authorize URL."""
        if await self.repo.get_by_discord_id(discord_id) is not None:
            raise APIError("This user is already linked to a Twitch account.", 409)

        state = await self.states.create_state()
        await self.repo.replace_pending_link(discord_id, state)
        return self.twitch.link_authorize_url(state)

    async def link_account(self, code: str, state: str) -> dict:
        """Complete a link from the Twitch callback.

        The pending link is read before the state is consumed: deleting
        the state cascades to its pending row.
        """
        pending = await self.repo.get_pending_link(state)
        if not await self.states.consume_state(state):
            raise APIError("The 'state' query parameter is invalid.", 401)
        if pending is None:
            raise APIError("This attempt to link accounts has failed. Please try again.", 400)

        try:
            grant = await self.twitch.exchange_code(code, self.twitch.link_redirect_uri)
            info = await self.twitch.get_user_info(grant.access_token)
        except httpx.TimeoutException:
            raise APIError(PROVIDER_TIMEOUT_MESSAGE, 503)
        except (ExchangeError, ValidationError, httpx.HTTPError) as e:
            logger.error(f"[twitch] Account link for Discord user {pending.discord_id} failed: {e}")
            raise APIError()

        await self.repo.delete_pending_links(pending.discord_id)
        await self.repo.link(pending.discord_id, info.id, self._now())
        logger.info(f"Linked Discord user {pending.discord_id} to Twitch user {info.login}")
        return {"discord_id": pending.discord_id, "twitch_id": info.id}

    async def unlink(self, discord_id: str | None = None, twitch_id: str | None = None) -> dict:
        if discord_id is None and twitch_id is None:
            raise APIError("No Discord or Twitch ID was provided.", 400)

        user = await self.repo.unlink(discord_id, twitch_id)
        if user is None:
            raise APIError("This account isn't linked to any other.", 404)
        return user_to_dict(user)

    # ==================== Directory ====================

    async def get_discord_user_info(self, discord_id: str, force: bool = False) -> dict:
        user = await self.repo.get_by_discord_id(discord_id)
        if user is None:
            raise APIError("This account isn't linked with any Twitch account.", 404)
        if user.opt_out and not force:
            raise APIError("This user has opted out.", 403)
        return user_to_dict(user)

    async def get_twitch_user_info(self, twitch_id: str, force: bool = False) -> dict:
        """Return a Twitch user, registering it on first lookup if it exists on Twitch."""
        user = await self.repo.get_by_twitch_id(twitch_id)
        if user is None:
            token = await self.bot_tokens.get_access_token(TWITCH)
            try:
                found = await self.twitch.get_users(token=token, ids=[twitch_id])
            except httpx.TimeoutException:
                raise APIError(PROVIDER_TIMEOUT_MESSAGE, 503)
            if not found:
                raise APIError("This Twitch user does not exist.", 404)
            user = await self.repo.create(twitch_id)

        if user.opt_out and not force:
            raise APIError("This user has opted out.", 403)
        return user_to_dict(user)

    async def set_opt_out(self, twitch_id: str, opt_out: bool | None = None) -> dict:
        """Set the opt-out flag, or flip it when *opt_out* is None."""
        user = await self.repo.get_by_twitch_id(twitch_id)
        if user is None:
            raise APIError("User not found.", 404)

        if opt_out is None:
            opt_out = not user.opt_out

        user = await self.repo.set_opt_out(twitch_id, opt_out)
        if user is None:
            raise APIError("User not found.", 404)
        return user_to_dict(user)
