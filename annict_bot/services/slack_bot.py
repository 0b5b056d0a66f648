"""
Slack Socket Mode bot

Listens for app mentions and answers the trigger phrase with the aggregated
Annict notification. Each trigger runs as its own task under a single deadline
covering both fetches and every image check.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

import aiohttp
from slack_sdk.errors import SlackClientError
from slack_sdk.models.blocks import Block
from slack_sdk.socket_mode.async_client import AsyncBaseSocketModeClient
from slack_sdk.socket_mode.request import SocketModeRequest
from slack_sdk.socket_mode.response import SocketModeResponse
from slack_sdk.web.async_client import AsyncWebClient

from annict_bot.services.info_aggregator import AnnictInfoAggregator
from annict_bot.services.program_repository import FetchError
from annict_bot.services.slack_presenter import SlackProgramPresenter
from annict_bot.utils import timezone as jst


logger = logging.getLogger(__name__)

ANNICT_TODAY = "annict today"
FALLBACK_TEXT = "{date} のアニメ情報 + 未視聴"
UNKNOWN_COMMAND = "Receive unknown command: {text}"


class AnnictSlackBot:
    """Routes Slack mentions to the Annict aggregation and posts the result."""

    def __init__(
        self,
        web_client: AsyncWebClient,
        socket_client: AsyncBaseSocketModeClient | None,
        aggregator: AnnictInfoAggregator,
        presenter: SlackProgramPresenter,
        *,
        request_deadline_sec: float = 60.0,
        clock: Callable[[], datetime] = jst.now,
    ) -> None:
        self._web_client = web_client
        self._socket_client = socket_client
        self._aggregator = aggregator
        self._presenter = presenter
        self._request_deadline_sec = request_deadline_sec
        self._clock = clock
        self._tasks: set[asyncio.Task] = set()
        self.bot_user_id: str | None = None
        self.connected = False

    async def start(self) -> None:
        """Authenticate, register the event listener and open the socket."""
        auth = await self._web_client.auth_test()
        self.bot_user_id = auth.get("user_id")
        logger.info("Slack Bot User ID: %s", self.bot_user_id)

        if self._socket_client is None:
            logger.warning("No Socket Mode client configured - bot will not receive events")
            return

        self._socket_client.socket_mode_request_listeners.append(self._on_socket_mode_request)
        logger.info("Starting Slack Socket Mode client...")
        await self._socket_client.connect()
        self.connected = True
        logger.info("Connected to Slack.")

    async def stop(self) -> None:
        """Cancel in-flight triggers and close the socket."""
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        if self._socket_client is not None:
            await self._socket_client.close()
        self.connected = False
        logger.info("Slack Socket Mode client disconnected.")

    async def _on_socket_mode_request(
        self,
        client: AsyncBaseSocketModeClient,
        req: SocketModeRequest
    ) -> None:
        if req.type != "events_api":
            logger.debug("Skipped event type: %s", req.type)
            return

        await client.send_socket_mode_response(SocketModeResponse(envelope_id=req.envelope_id))

        payload = req.payload or {}
        if payload.get("type") != "event_callback":
            return
        event = payload.get("event") or {}
        if event.get("type") == "app_mention":
            self._spawn(self.handle_app_mention(event))

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Unhandled error while handling mention: %s", exc, exc_info=exc)

    async def handle_app_mention(self, event: dict[str, Any]) -> None:
        user = event.get("user")
        channel = event.get("channel", "")
        text = event.get("text", "")
        logger.info("Received mention from user %s in channel %s with text: %r", user, channel, text)
        if user is not None and user == self.bot_user_id:
            return

        text_content = text.strip().lower()
        if ANNICT_TODAY in text_content:
            logger.info("Received command: '%s'", ANNICT_TODAY)
            await self.post_annict_info(channel)
        else:
            logger.info("Receive unknown command: %s", text_content)
            await self._post_text_message(channel, UNKNOWN_COMMAND.format(text=text_content))

    async def post_annict_info(self, channel: str) -> None:
        """Run one aggregation and post either the blocks or the error text."""
        try:
            output = await asyncio.wait_for(
                self._aggregator.execute(),
                timeout=self._request_deadline_sec,
            )
        except FetchError as exc:
            logger.info("Error fetching Annict info: %s", exc)
            error = FetchError(f"annictからの情報取得エラー: {exc}")
            await self._post_text_message(channel, self._presenter.format_error(error))
            return
        except asyncio.TimeoutError:
            logger.warning("Annict info request exceeded %ss deadline", self._request_deadline_sec)
            error = TimeoutError(
                f"annictからの情報取得がタイムアウトしました ({self._request_deadline_sec}s)"
            )
            await self._post_text_message(channel, self._presenter.format_error(error))
            return

        now = self._clock()
        blocks = self._presenter.format_combined_programs(
            output.today_programs,
            output.library_entries,
            now,
        )
        await self._post_block_message(channel, FALLBACK_TEXT.format(date=jst.format_date(now)), blocks)

    async def _post_text_message(self, channel: str, text: str) -> None:
        try:
            await self._web_client.chat_postMessage(channel=channel, text=text)
        except (SlackClientError, aiohttp.ClientError) as exc:
            logger.error("Error posting text message to channel %s: %s", channel, exc)

    async def _post_block_message(self, channel: str, fallback_text: str, blocks: list[Block]) -> None:
        try:
            await self._web_client.chat_postMessage(
                channel=channel,
                text=fallback_text,
                blocks=blocks,
            )
        except (SlackClientError, aiohttp.ClientError) as exc:
            logger.error("Error posting block message to channel %s: %s", channel, exc)
