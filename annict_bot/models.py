"""
Domain model shared across the notification pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True)
class Work:
    """An anime work. Empty URLs are normalized to None."""
    title: str
    official_site_url: str | None = None
    image_url: str | None = None

    def __post_init__(self) -> None:
        self.official_site_url = self.official_site_url or None
        self.image_url = self.image_url or None

    def clear_image(self) -> None:
        """Drop the image after it failed validation."""
        self.image_url = None


@dataclass(frozen=True, slots=True)
class Episode:
    number_text: str
    title: str | None = None


@dataclass(frozen=True, slots=True)
class Channel:
    name: str = ""


@dataclass(frozen=True, slots=True)
class Program:
    """A scheduled broadcast of an episode.

    start_time is None when the source gave no parseable time; otherwise it is
    timezone-aware and expressed in JST.
    """
    work: Work
    episode: Episode
    channel: Channel = field(default_factory=Channel)
    start_time: datetime | None = None

    def __post_init__(self) -> None:
        if self.start_time is not None and self.start_time.tzinfo is None:
            raise ValueError("Program.start_time must be timezone-aware")


@dataclass(slots=True)
class CombinedOutput:
    """Result of one aggregation run."""
    today_programs: list[Program] = field(default_factory=list)
    library_entries: list[Program] = field(default_factory=list)


__all__ = ["Work", "Episode", "Channel", "Program", "CombinedOutput"]
