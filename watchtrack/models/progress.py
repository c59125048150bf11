from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Literal
from uuid import UUID, uuid4

MediaType = Literal["movie", "tv"]
Quality = Literal["360p", "480p", "720p", "1080p"]

MEDIA_TYPES: tuple[str, ...] = ("movie", "tv")
QUALITIES: tuple[str, ...] = ("360p", "480p", "720p", "1080p")
DEFAULT_QUALITY: Quality = "720p"

# completed means progress_percent > COMPLETION_THRESHOLD, so exactly 90 is
# not completed.  Continue-watching lists 0 < p < CONTINUE_WATCHING_CEILING,
# which leaves a 90% item in neither list.
COMPLETION_THRESHOLD = 90
CONTINUE_WATCHING_CEILING = 90


def compute_progress(current_time: float, duration: float) -> tuple[int, bool]:
    """Return (progress_percent, completed) for a playback position.

    The only place these two fields are derived.  A zero or negative
    duration yields (0, False) instead of dividing by zero.  Rounding is
    half-up, so 12.5% becomes 13 rather than banker's 12.
    """
    if duration <= 0:
        return 0, False
    ratio = current_time / duration
    # also catches ratios that would overflow to inf once scaled
    if ratio >= 1:
        return 100, True
    percent = max(0, math.floor(ratio * 100 + 0.5))
    return percent, percent > COMPLETION_THRESHOLD


@dataclass(frozen=True, slots=True)
class ProgressWrite:
    """One validated progress report, ready for the repo's atomic upsert."""

    user_id: str
    media_id: int
    media_type: MediaType
    current_time_seconds: float
    total_duration_seconds: float
    progress_percent: int
    completed: bool
    played_at: datetime
    season_number: int | None = None
    episode_number: int | None = None
    quality: Quality | None = None
    title: str | None = None
    poster_path: str | None = None


@dataclass(frozen=True, slots=True)
class ProgressRecord:
    """How far one user got through one movie or show.

    Unique per (user_id, media_id, media_type).  For tv the season and
    episode fields record the episode last reported.
    """

    id: UUID
    user_id: str
    media_id: int
    media_type: MediaType
    current_time_seconds: float
    total_duration_seconds: float
    progress_percent: int
    completed: bool
    watched_at: datetime
    last_played_at: datetime
    quality: Quality = DEFAULT_QUALITY
    season_number: int | None = None
    episode_number: int | None = None
    title: str | None = None
    poster_path: str | None = None

    @staticmethod
    def new(write: ProgressWrite) -> ProgressRecord:
        return ProgressRecord(
            id=uuid4(),
            user_id=write.user_id,
            media_id=write.media_id,
            media_type=write.media_type,
            current_time_seconds=write.current_time_seconds,
            total_duration_seconds=write.total_duration_seconds,
            progress_percent=write.progress_percent,
            completed=write.completed,
            watched_at=write.played_at,
            last_played_at=write.played_at,
            quality=write.quality or DEFAULT_QUALITY,
            season_number=write.season_number,
            episode_number=write.episode_number,
            title=write.title,
            poster_path=write.poster_path,
        )

    @property
    def key(self) -> tuple[str, int, str]:
        return (self.user_id, self.media_id, self.media_type)

    @property
    def is_in_progress(self) -> bool:
        return not self.completed and 0 < self.progress_percent < CONTINUE_WATCHING_CEILING


@dataclass(frozen=True, slots=True)
class ProgressFilter:
    """Selection handed to ProgressRepo.list_for_user.

    progress_above / progress_below are exclusive bounds on
    progress_percent; None means unbounded.
    """

    user_id: str
    media_type: MediaType | None = None
    completed: bool | None = None
    progress_above: int | None = None
    progress_below: int | None = None

    def matches(self, record: ProgressRecord) -> bool:
        if record.user_id != self.user_id:
            return False
        if self.media_type is not None and record.media_type != self.media_type:
            return False
        if self.completed is not None and record.completed is not self.completed:
            return False
        if (
            self.progress_above is not None
            and record.progress_percent <= self.progress_above
        ):
            return False
        if (
            self.progress_below is not None
            and record.progress_percent >= self.progress_below
        ):
            return False
        return True
