"""
Program Repository

Maps Annict viewer query responses into domain Programs. Source records are
partially optional; every gap is resolved with a fallback value here so that
nothing downstream has to inspect raw payloads.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any, Protocol

from pydantic import BaseModel, ValidationError

from annict_bot.models import Channel, Episode, Program, Work
from annict_bot.schemas import (
    EpisodeNode,
    LibraryEntryNode,
    NodeConnection,
    ProgramNode,
    ViewerResponse,
    WorkNode,
)
from annict_bot.services.annict_client import AnnictAPIError, AnnictClient
from annict_bot.utils.timezone import DateFormatError, parse_rfc3339_to_jst


logger = logging.getLogger(__name__)

UNKNOWN_EPISODE_NUMBER = "不明"
EPISODE_NUMBER_FORMAT = "第{number}話"


class FetchError(RuntimeError):
    """Raised when program data could not be fetched from the source"""
    pass


class ProgramRepository(Protocol):
    async def fetch_today_programs(self) -> list[Program]:
        ...

    async def fetch_library_entries(self, season: str) -> list[Program]:
        ...


class AnnictProgramRepository:
    """ProgramRepository backed by the Annict GraphQL API."""

    def __init__(self, client: AnnictClient) -> None:
        self._client = client

    async def fetch_today_programs(self) -> list[Program]:
        logger.debug("Fetching unwatched programs from Annict API")
        try:
            data = await self._client.get_programs()
        except AnnictAPIError as exc:
            logger.error("Failed to call GetPrograms: %s", exc)
            raise FetchError(f"GetPrograms failed: {exc}") from exc

        nodes = _connection_nodes(data, "programs")
        if nodes is None:
            logger.info("No program data returned from Annict API (viewer/programs is empty)")
            return []

        programs = [
            map_program_node(node)
            for node in _validate_nodes(nodes, ProgramNode)
        ]
        logger.info("Successfully fetched %s unwatched programs", len(programs))
        return programs

    async def fetch_library_entries(self, season: str) -> list[Program]:
        logger.debug("Fetching library entries from Annict API (season: %s)", season)
        try:
            data = await self._client.get_library_entries([season])
        except AnnictAPIError as exc:
            logger.error("Failed to call GetLibraryEntries: %s", exc)
            raise FetchError(f"GetLibraryEntries failed: {exc}") from exc

        nodes = _connection_nodes(data, "library_entries")
        if nodes is None:
            logger.info("No library entry data returned from Annict API (viewer/libraryEntries is empty)")
            return []

        entries = sort_library_entries(
            map_library_entry_node(node)
            for node in _validate_nodes(nodes, LibraryEntryNode)
        )
        logger.info("Successfully fetched %s library entries for %s", len(entries), season)
        return entries


def _connection_nodes(data: dict[str, Any], connection: str) -> list[Any] | None:
    """Return viewer.<connection>.nodes, or None when any level is missing."""
    try:
        response = ViewerResponse.model_validate(data)
    except ValidationError as exc:
        logger.warning("Unexpected viewer payload shape, treating as empty: %s", exc)
        return None

    if response.viewer is None:
        return None
    container: NodeConnection | None = getattr(response.viewer, connection)
    if container is None:
        return None
    return container.nodes


def _validate_nodes(nodes: list[Any], node_type: type[BaseModel]) -> list[Any]:
    validated = []
    for index, raw in enumerate(nodes):
        if raw is None:
            continue
        try:
            validated.append(node_type.model_validate(raw))
        except ValidationError as exc:
            logger.warning(
                "Skipping malformed %s at index %s: %s",
                node_type.__name__,
                index,
                exc.errors()[:1],
            )
    return validated


def map_work(node: WorkNode | None) -> Work:
    if node is None:
        return Work(title="")

    image_url = None
    if node.image is not None:
        # Prefer the recommended image, fall back to the OGP image
        image_url = node.image.recommended_image_url or node.image.facebook_og_image_url or None

    return Work(
        title=node.title or "",
        official_site_url=node.official_site_url or None,
        image_url=image_url,
    )


def map_episode(node: EpisodeNode | None) -> Episode:
    if node is None:
        return Episode(number_text=UNKNOWN_EPISODE_NUMBER)

    if node.number_text:
        number_text = node.number_text
    elif node.number is not None:
        number_text = EPISODE_NUMBER_FORMAT.format(number=node.number)
    else:
        number_text = UNKNOWN_EPISODE_NUMBER

    return Episode(number_text=number_text, title=node.title or None)


def parse_start_time(value: str | None) -> datetime | None:
    """Parse startedAt; unparseable values leave the start time unset."""
    if not value:
        return None
    try:
        return parse_rfc3339_to_jst(value)
    except DateFormatError as exc:
        logger.debug("Ignoring start time: %s", exc)
        return None


def map_program_node(node: ProgramNode) -> Program:
    return Program(
        work=map_work(node.work),
        episode=map_episode(node.episode),
        channel=Channel(name=(node.channel.name or "") if node.channel else ""),
        start_time=parse_start_time(node.started_at),
    )


def map_library_entry_node(node: LibraryEntryNode) -> Program:
    next_program = node.next_program
    channel_name = ""
    started_at = None
    if next_program is not None:
        if next_program.channel is not None:
            channel_name = next_program.channel.name or ""
        started_at = next_program.started_at

    return Program(
        work=map_work(node.work),
        episode=map_episode(node.next_episode),
        channel=Channel(name=channel_name),
        start_time=parse_start_time(started_at),
    )


def sort_library_entries(entries: Iterable[Program]) -> list[Program]:
    """Entries without a start time first, then most-future first."""
    entries = list(entries)
    unscheduled = [entry for entry in entries if entry.start_time is None]
    scheduled = sorted(
        (entry for entry in entries if entry.start_time is not None),
        key=lambda entry: entry.start_time,
        reverse=True,
    )
    return unscheduled + scheduled
