import asyncio
import logging
import os
import signal
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI

from app.api.v1.api import api_router
from app.core.config import settings, validate_settings
from app.core.logging import configure_logging
from app.db.init_db import init_database
from app.db.mongodb import mongodb
from app.exceptions import ConfigurationError
from app.services import get_telegram_service
from app.services.cleanup_service import MatchRetentionTask
from app.telegram_bot import telegram_bot

logger = logging.getLogger(__name__)

# Set by the loop exception handler so run() can exit non-zero after a graceful shutdown
_fatal_error = {"raised": False}


def handle_loop_exception(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    """Unhandled asyncio errors are fatal: log, then ask uvicorn to shut down"""
    error = context.get("exception")
    logger.critical("Unhandled asyncio error: %s", error or context.get("message"))
    _fatal_error["raised"] = True
    os.kill(os.getpid(), signal.SIGTERM)


async def _shutdown_step(name: str, step) -> None:
    try:
        await step()
    except Exception as e:
        logger.error("Error during shutdown of %s: %s", name, e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    configure_logging(settings.LOG_LEVEL)
    validate_settings(settings)
    asyncio.get_running_loop().set_exception_handler(handle_loop_exception)

    logger.info("Starting application lifespan")
    telegram_service = get_telegram_service()
    retention_task = MatchRetentionTask(
        interval_seconds=settings.CLEANUP_INTERVAL_HOURS * 60 * 60,
        retention_days=settings.MATCH_RETENTION_DAYS,
    )
    started = set()

    try:
        started.add("storage")
        await mongodb.connect_to_mongo()
        await init_database()
        logger.info("Database initialized")

        await telegram_bot.start_bot()
        started.add("bot")

        started.add("monitoring")
        try:
            if not await telegram_service.start_monitoring():
                logger.warning("No authorised monitoring session yet; monitoring starts after the first /login")
        except Exception as e:
            logger.error("Failed to start Telegram monitoring: %s", e)

        retention_task.start()
        started.add("retention task")
        app.state.retention_task = retention_task

        yield
    finally:
        # Shutdown, only for the components that came up
        logger.info("Shutting down")
        for name, step in (
            ("monitoring", telegram_service.stop_monitoring),
            ("bot", telegram_bot.stop_bot),
            ("retention task", retention_task.stop),
            ("storage", mongodb.close_mongo_connection),
        ):
            if name in started:
                await _shutdown_step(name, step)
        logger.info("Shutdown complete")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Telegram keyword monitoring: statistics and recorded matches",
    version="0.1.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)

# Export app for use in other modules
__all__ = ["app", "run"]


@app.get("/")
async def root():
    return {"message": f"{settings.PROJECT_NAME} is running"}


@app.get("/health")
async def health_check():
    """Health check endpoint that verifies system components"""
    health_status = {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat(), "components": {}}

    if await mongodb.ping():
        health_status["components"]["mongodb"] = "healthy"
    else:
        health_status["components"]["mongodb"] = "unhealthy"
        health_status["status"] = "unhealthy"

    application = telegram_bot.application
    health_status["components"]["telegram_bot"] = "running" if application and application.running else "stopped"

    try:
        health_status["components"]["monitoring"] = get_telegram_service().get_status()
    except Exception as e:
        health_status["components"]["monitoring"] = f"unhealthy: {str(e)}"
        health_status["status"] = "unhealthy"

    return health_status


def run() -> None:
    """Console entry point"""
    configure_logging(settings.LOG_LEVEL)
    try:
        validate_settings(settings)
    except ConfigurationError as e:
        logger.critical("%s", e.message)
        sys.exit(1)

    config = uvicorn.Config(
        app,
        host=settings.HTTP_HOST,
        port=settings.HTTP_PORT,
        log_config=None,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=not settings.is_production,
    )
    server = uvicorn.Server(config)
    server.run()

    if not server.started:
        logger.critical("Application failed to start")
        sys.exit(1)
    if _fatal_error["raised"]:
        sys.exit(1)


if __name__ == "__main__":
    run()
