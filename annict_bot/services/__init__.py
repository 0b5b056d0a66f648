"""
Services package for Annict Slack Bot

This package contains the aggregation pipeline and its collaborators.
"""
from annict_bot.services.annict_client import AnnictAPIError, AnnictClient
from annict_bot.services.image_validator import HTTPImageValidator, ImageValidator
from annict_bot.services.info_aggregator import AnnictInfoAggregator
from annict_bot.services.program_repository import (
    AnnictProgramRepository,
    FetchError,
    ProgramRepository,
)
from annict_bot.services.slack_presenter import SlackProgramPresenter

__all__ = [
    'AnnictAPIError',
    'AnnictClient',
    'HTTPImageValidator',
    'ImageValidator',
    'AnnictInfoAggregator',
    'AnnictProgramRepository',
    'FetchError',
    'ProgramRepository',
    'SlackProgramPresenter',
]
