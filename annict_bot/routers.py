from typing import Annotated
from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from annict_bot.dependencies import get_container, get_info_aggregator, get_presenter
from annict_bot.models import Program
from annict_bot.schemas import ErrorDetail, ProgramResponse, ProgramsResponse, WorkResponse
from annict_bot.services.info_aggregator import AnnictInfoAggregator
from annict_bot.services.program_repository import FetchError
from annict_bot.services.slack_presenter import SlackProgramPresenter
from annict_bot.utils import timezone as jst


logger = logging.getLogger(__name__)

main_router = APIRouter()


@main_router.get("/")
async def root() -> dict:
    """Root endpoint with service information"""
    return {
        "service": "Annict Slack Bot",
        "version": "0.1.0",
        "endpoints": {
            "programs": "/programs - Preview today's and unwatched programs",
            "health": "/health - Health check"
        }
    }


@main_router.get("/health")
async def health_check() -> dict:
    """Health check endpoint"""
    bot = get_container().bot
    return {
        "status": "ok",
        "slack_connected": bot.connected,
        "bot_user_id": bot.bot_user_id,
    }


@main_router.get("/programs", response_model=ProgramsResponse)
async def preview_programs(
    aggregator: Annotated[AnnictInfoAggregator, Depends(get_info_aggregator)],
    presenter: Annotated[SlackProgramPresenter, Depends(get_presenter)],
):
    """
    Run one aggregation and return it as JSON

    Returns:
        Programs airing today (JST) and unwatched library entries
    """
    logger.info("Program preview requested via API")
    try:
        output = await aggregator.execute()
    except FetchError as exc:
        logger.error("Program preview failed: %s", exc)
        detail = ErrorDetail(code="FETCH_FAILED", message=presenter.format_error(exc))
        return JSONResponse(status_code=502, content={"detail": detail.model_dump()})

    now = jst.now()
    return ProgramsResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        date=jst.format_date(now),
        today_programs=[_to_response(program) for program in output.today_programs],
        library_entries=[_to_response(program) for program in output.library_entries],
    )


def _to_response(program: Program) -> ProgramResponse:
    return ProgramResponse(
        work=WorkResponse(
            title=program.work.title,
            official_site_url=program.work.official_site_url,
            image_url=program.work.image_url,
        ),
        episode_number_text=program.episode.number_text,
        episode_title=program.episode.title,
        channel_name=program.channel.name,
        start_time=program.start_time.isoformat() if program.start_time else None,
    )
