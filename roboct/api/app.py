"""FastAPI application factory"""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from roboct.shared.database import DatabaseManager
from roboct.shared.migrations.runner import MigrationRunner

from .core.config import Settings, get_settings
from .core.dependencies import build_services
from .core.errors import register_error_handlers
from .core.logging import setup_logging
from .core.scheduler import TokenScheduler
from .routers import channels_router, guilds_router, oauth_router, users_router

logger = logging.getLogger(__name__)

SERVICE_NAME = "roboct-api"
VERSION = "2.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle startup and shutdown"""
    settings: Settings = app.state.settings
    app.state.start_time = time.time()

    # Startup
    logger.info("Starting RobOct API server")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Public API URL: {settings.api_url}")

    db_manager = DatabaseManager(settings.database_url)
    await db_manager.connect()
    app.state.db = db_manager

    if settings.run_migrations:
        await MigrationRunner(db_manager.pool).run_pending()

    services = build_services(settings, db_manager.pool)
    app.state.services = services
    await services.states.purge_expired()

    scheduler = TokenScheduler(
        services.platforms,
        services.bot_tokens,
        services.states,
        sweep_interval=settings.token_sweep_interval,
        bot_token_interval=settings.bot_token_interval,
    )
    scheduler.start()
    app.state.scheduler = scheduler

    yield

    # Shutdown
    logger.info("Shutting down RobOct API server")
    try:
        await scheduler.stop()
        await services.close()
        await db_manager.disconnect()
        logger.info("Database disconnected")
    except Exception as e:
        logger.exception(f"Error during shutdown: {e}")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure FastAPI application"""
    settings = settings or get_settings()

    # Setup logging first
    setup_logging(settings)

    app = FastAPI(
        title="RobOct API",
        description="Twitch/Discord account registration and OAuth token lifecycle",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.settings = settings
    app.state.start_time = time.time()

    register_error_handlers(app)

    # Register routers
    app.include_router(oauth_router.router)
    app.include_router(channels_router.router)
    app.include_router(guilds_router.router)
    app.include_router(users_router.router)

    # Root endpoint
    @app.get("/")
    async def root():
        """Root endpoint - minimal service info"""
        return {"service": SERVICE_NAME, "status": "running"}

    # Liveness probe, always 200, no external dependency
    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "uptime_seconds": int(time.time() - app.state.start_time),
        }

    @app.get("/status")
    async def status():
        """Readiness / status endpoint, includes an actual DB health check"""
        db_manager: DatabaseManager | None = getattr(app.state, "db", None)
        db_ok = db_manager is not None and await db_manager.check_health()
        scheduler: TokenScheduler | None = getattr(app.state, "scheduler", None)
        return {
            "service": SERVICE_NAME,
            "version": VERSION,
            "uptime_seconds": int(time.time() - app.state.start_time),
            "db_connected": db_ok,
            "scheduler_running": scheduler is not None and scheduler.running,
            "environment": settings.environment,
        }

    logger.info("FastAPI application configured")

    return app
