"""
Date and Time utilities

All "today" and display computations happen in Japan Standard Time, independent
of the host locale. Centralizes RFC3339 parsing so every start time entering the
domain model is timezone-aware and expressed in JST.
"""
from datetime import datetime
from zoneinfo import ZoneInfo
import logging

logger = logging.getLogger(__name__)

JST = ZoneInfo("Asia/Tokyo")

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


class DateFormatError(ValueError):
    """Raised when date format is invalid"""
    pass


def _normalize_rfc3339_string(date_str: str) -> str:
    """Normalize RFC3339 string by replacing a trailing 'Z' with '+00:00'

    Args:
        date_str: RFC3339 datetime string

    Returns:
        Normalized string with explicit timezone offset
    """
    return date_str[:-1] + '+00:00' if date_str.endswith(('Z', 'z')) else date_str


def now() -> datetime:
    """Current time in JST."""
    return datetime.now(JST)


def to_jst(dt: datetime) -> datetime:
    """Convert an aware datetime to JST."""
    return dt.astimezone(JST)


def parse_rfc3339_to_jst(date_str: str) -> datetime:
    """
    Parse RFC3339 date string and convert to JST datetime

    Values without an explicit offset are rejected: a naive timestamp cannot be
    placed on a calendar date without guessing its zone.

    Args:
        date_str: RFC3339 datetime string (e.g., '2025-10-09T11:00:00Z' or '2025-10-09T20:00:00+09:00')

    Returns:
        Timezone-aware datetime in JST

    Raises:
        DateFormatError: If the date string format is invalid or has no offset
    """
    try:
        normalized = _normalize_rfc3339_string(date_str.strip())
        dt = datetime.fromisoformat(normalized)
    except (ValueError, AttributeError) as e:
        raise DateFormatError(f"Invalid RFC3339 datetime format: '{date_str}'") from e

    if dt.tzinfo is None:
        raise DateFormatError(f"RFC3339 datetime has no timezone offset: '{date_str}'")
    return to_jst(dt)


def format_date(dt: datetime) -> str:
    """Format as YYYY-MM-DD in JST."""
    return to_jst(dt).strftime(DATE_FORMAT)


def format_time(dt: datetime) -> str:
    """Format as HH:MM in JST."""
    return to_jst(dt).strftime(TIME_FORMAT)


def get_annict_season(dt: datetime) -> str:
    """
    Season bucket used by Annict library queries

    Args:
        dt: Reference instant

    Returns:
        Season slug such as '2025-autumn'
    """
    jst_time = to_jst(dt)
    if jst_time.month <= 3:
        season = "winter"
    elif jst_time.month <= 6:
        season = "spring"
    elif jst_time.month <= 9:
        season = "summer"
    else:
        season = "autumn"
    return f"{jst_time.year}-{season}"


def is_same_date(first: datetime, second: datetime) -> bool:
    """Check whether two instants fall on the same JST calendar date."""
    return to_jst(first).date() == to_jst(second).date()
