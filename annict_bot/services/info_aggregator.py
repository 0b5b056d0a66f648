"""
Annict info aggregation

Combines today's programs and the viewer's unwatched library entries into a
single result, dropping broadcasts not airing today (JST) and images that fail
validation. Either fetch failing aborts the whole run.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import datetime

from annict_bot.models import CombinedOutput, Program
from annict_bot.services.image_validator import ImageValidator
from annict_bot.services.program_repository import ProgramRepository
from annict_bot.utils import timezone as jst
from annict_bot.utils.logging_helpers import (
    log_date_filter_summary,
    log_section_end,
    log_section_start,
    log_validation_summary,
)


logger = logging.getLogger(__name__)

DEFAULT_VALIDATION_CONCURRENCY = 4


class AnnictInfoAggregator:
    """Runs the fetch, filter and image validation stages for one request."""

    def __init__(
        self,
        repository: ProgramRepository,
        validator: ImageValidator,
        *,
        max_concurrency: int = DEFAULT_VALIDATION_CONCURRENCY,
        clock: Callable[[], datetime] = jst.now,
    ) -> None:
        self._repository = repository
        self._validator = validator
        self._max_concurrency = max(1, max_concurrency)
        self._clock = clock

    async def execute(self) -> CombinedOutput:
        """
        Fetch, filter and validate Annict programs.

        Returns:
            CombinedOutput with today's programs and library entries

        Raises:
            FetchError: If either repository fetch fails
        """
        log_section_start(logger, "Annict info aggregation")
        now = self._clock()
        # One semaphore per run keeps invocations independent
        semaphore = asyncio.Semaphore(self._max_concurrency)

        programs = await self._repository.fetch_today_programs()
        today_programs = filter_programs_on_date(programs, now)
        log_date_filter_summary(logger, len(programs), len(today_programs), jst.format_date(now))
        await self._validate_images(today_programs, semaphore, "today")

        season = jst.get_annict_season(now)
        library_entries = await self._repository.fetch_library_entries(season)
        await self._validate_images(library_entries, semaphore, "library")

        log_section_end(logger, "Annict info aggregation")
        return CombinedOutput(
            today_programs=today_programs,
            library_entries=library_entries,
        )

    async def _validate_images(
        self,
        programs: Sequence[Program],
        semaphore: asyncio.Semaphore,
        label: str
    ) -> None:
        targets = [program for program in programs if program.work.image_url]
        if not targets:
            return

        results = await asyncio.gather(
            *(self._validate_program_image(program, semaphore) for program in targets)
        )
        log_validation_summary(logger, label, len(targets), results.count(False))

    async def _validate_program_image(
        self,
        program: Program,
        semaphore: asyncio.Semaphore
    ) -> bool:
        async with semaphore:
            is_valid, _ = await self._validator.validate_url(program.work.image_url)
        if not is_valid:
            logger.debug("Clearing invalid image for %s", program.work.title)
            program.work.clear_image()
        return is_valid


def filter_programs_on_date(programs: Sequence[Program], reference: datetime) -> list[Program]:
    """Keep programs with a start time on the reference JST date."""
    return [
        program
        for program in programs
        if program.start_time is not None and jst.is_same_date(program.start_time, reference)
    ]
