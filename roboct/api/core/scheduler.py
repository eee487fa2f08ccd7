"""Background token maintenance loops.

- one revalidation loop: for each platform verify every enabled entity's
  token and refresh the flagged ones one at a time, then purge expired
  states once
- one bot token loop: keep the client-credentials tokens fresh; any
  failure there is fatal for the process
"""

import asyncio
import logging
import os
import signal
from collections.abc import Callable
from typing import Any

from roboct.api.services import BotTokenService, StateService

from .dependencies import OAuthPlatform

logger = logging.getLogger(__name__)

FatalHandler = Callable[[BaseException], None]


def terminate_process(exc: BaseException) -> None:
    """Default fatal handler: log and ask uvicorn for a graceful shutdown."""
    logger.critical(f"Bot token maintenance failed, shutting down: {type(exc).__name__}: {exc}")
    os.kill(os.getpid(), signal.SIGTERM)


class TokenScheduler:
    """Owns the asyncio tasks of the token lifecycle."""

    def __init__(
        self,
        platforms: list[OAuthPlatform],
        bot_tokens: BotTokenService,
        states: StateService,
        *,
        sweep_interval: float = 3600,
        bot_token_interval: float = 3600,
        on_fatal: FatalHandler | None = None,
    ) -> None:
        self.platforms = platforms
        self.bot_tokens = bot_tokens
        self.states = states
        self.sweep_interval = sweep_interval
        self.bot_token_interval = bot_token_interval
        self.on_fatal = on_fatal or terminate_process
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def start(self) -> None:
        if self._tasks:
            logger.warning("Token scheduler already started")
            return

        self._tasks.append(asyncio.create_task(self._sweep_loop(), name="token-sweep"))
        self._tasks.append(asyncio.create_task(self._bot_token_loop(), name="bot-token-refresh"))
        logger.info(
            f"Token scheduler started (sweep={self.sweep_interval}s, "
            f"bot_tokens={self.bot_token_interval}s)"
        )

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("Token scheduler stopped")

    async def run_sweep(self, platform: OAuthPlatform) -> list[Any]:
        """One revalidation cycle. Returns the entities after their refresh attempt."""
        flagged = await platform.sweep.verify_all_tokens()
        refreshed = []
        for entity in flagged:
            refreshed.append(await platform.exchange.refresh_token(entity))
        return refreshed

    async def _sweep_loop(self) -> None:
        while True:
            for platform in self.platforms:
                try:
                    await self.run_sweep(platform)
                except Exception as e:
                    logger.exception(
                        f"[{platform.name}] Token sweep failed: {type(e).__name__}: {e}"
                    )
            try:
                await self.states.purge_expired()
            except Exception as e:
                logger.exception(f"State purge failed: {type(e).__name__}: {e}")
            await asyncio.sleep(self.sweep_interval)

    async def _bot_token_loop(self) -> None:
        while True:
            try:
                await self.bot_tokens.check_and_refresh()
            except Exception as e:
                self.on_fatal(e)
                return
            await asyncio.sleep(self.bot_token_interval)
