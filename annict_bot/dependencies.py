"""
Dependency wiring

Builds the object graph (HTTP clients, repository, validator, aggregator,
presenter, Slack bot) from Settings and owns the lifetime of the network
clients. Components only see each other through their Protocols, so tests
can swap any of them.
"""
import logging

import httpx
from slack_sdk.socket_mode.aiohttp import SocketModeClient
from slack_sdk.web.async_client import AsyncWebClient

from annict_bot.config import Settings, get_settings
from annict_bot.services.annict_client import AnnictClient, create_annict_http_client
from annict_bot.services.image_validator import HTTPImageValidator, create_image_check_client
from annict_bot.services.info_aggregator import AnnictInfoAggregator
from annict_bot.services.program_repository import AnnictProgramRepository
from annict_bot.services.slack_bot import AnnictSlackBot
from annict_bot.services.slack_presenter import SlackProgramPresenter


logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Holds the configured services for the running process.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        annict_http_client: httpx.AsyncClient | None = None,
        image_http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self.annict_http_client = annict_http_client or create_annict_http_client(
            settings.annict_access_token,
            timeout=settings.annict_request_timeout_sec,
        )
        self.image_http_client = image_http_client or create_image_check_client(
            settings.image_check_timeout_sec
        )

        self.repository = AnnictProgramRepository(
            AnnictClient(self.annict_http_client, settings.annict_endpoint)
        )
        self.validator = HTTPImageValidator(
            self.image_http_client,
            timeout=settings.image_check_timeout_sec,
        )
        self.aggregator = AnnictInfoAggregator(
            self.repository,
            self.validator,
            max_concurrency=settings.image_validation_concurrency,
        )
        self.presenter = SlackProgramPresenter(settings.annict_limit_num_to_display)
        self._bot: AnnictSlackBot | None = None
        logger.debug("Service container built")

    @property
    def bot(self) -> AnnictSlackBot:
        """Slack bot, created on first access."""
        if self._bot is None:
            web_client = AsyncWebClient(token=self.settings.slack_bot_token)
            socket_client = SocketModeClient(
                app_token=self.settings.slack_app_token,
                web_client=web_client,
                trace_enabled=self.settings.is_development,
            )
            self._bot = AnnictSlackBot(
                web_client,
                socket_client,
                self.aggregator,
                self.presenter,
                request_deadline_sec=self.settings.request_deadline_sec,
            )
        return self._bot

    async def aclose(self) -> None:
        """Close network clients."""
        await self.annict_http_client.aclose()
        await self.image_http_client.aclose()
        logger.debug("HTTP clients closed")


# Global container instance
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """
    Get or create the global service container.

    Returns:
        The global ServiceContainer
    """
    global _container
    if _container is None:
        _container = ServiceContainer(get_settings())
    return _container


def reset_container() -> None:
    """
    Reset the service container (mainly for testing).

    WARNING: Does not close network clients; call aclose() first.
    """
    global _container
    _container = None


def get_info_aggregator() -> AnnictInfoAggregator:
    """FastAPI dependency returning the aggregator."""
    return get_container().aggregator


def get_presenter() -> SlackProgramPresenter:
    """FastAPI dependency returning the presenter."""
    return get_container().presenter
