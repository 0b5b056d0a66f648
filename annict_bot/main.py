from contextlib import asynccontextmanager
import logging
import os

from fastapi import FastAPI
import uvicorn

from annict_bot.config import get_settings, setup_logging
from annict_bot.dependencies import get_container, reset_container
from annict_bot.routers import main_router


setup_logging(os.environ.get("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    logger.info("Starting Annict Slack Bot...")

    try:
        settings = get_settings()
        logging.getLogger().setLevel(settings.log_level)

        container = get_container()

        logger.info("Starting Slack bot...")
        await container.bot.start()
        logger.info("Annict Slack Bot started successfully")
    except Exception as e:
        logger.error(f"Failed to start Annict Slack Bot: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down Annict Slack Bot...")

    try:
        await container.bot.stop()
        logger.info("Slack bot stopped")
    except Exception as e:
        logger.error(f"Error during Slack bot shutdown: {e}", exc_info=True)
    finally:
        await container.aclose()
        reset_container()

    logger.info("Annict Slack Bot stopped")


app = FastAPI(
    title="Annict Slack Bot",
    version="0.1.0",
    lifespan=lifespan
)

app.include_router(main_router)


def run() -> None:
    """Console entry point"""
    uvicorn.run(
        "annict_bot.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
        log_config=None,
    )
