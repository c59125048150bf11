"""ProgressStore: the write side of watch-progress tracking.

Owns input validation, the completion decision (via compute_progress)
and the single atomic upsert per (user_id, media_id, media_type).
"""

from __future__ import annotations

import datetime
import logging
import math
from collections.abc import Callable

from watchtrack.core.config import Settings
from watchtrack.core.errors import StorageError, ValidationError
from watchtrack.core.metrics import PROGRESS_UPSERTS, STORAGE_ERRORS
from watchtrack.models.progress import (
    MEDIA_TYPES,
    QUALITIES,
    MediaType,
    ProgressRecord,
    ProgressWrite,
    Quality,
    compute_progress,
)
from watchtrack.repos.progress_repo import InMemoryProgressRepo, ProgressRepo

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime.datetime]


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


# ---------------------------------------------------------------------------
# Validation helpers (shared with the query engine)
# ---------------------------------------------------------------------------


# Column bounds of watch_progress; anything larger is the caller's fault
# and must not surface as a storage failure.
USER_ID_MAX_LENGTH = 128
TEXT_MAX_LENGTH = 500
INT32_MAX = 2**31 - 1


def validate_user_id(user_id: object) -> str:
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError("user_id must be a non-empty string")
    if len(user_id) > USER_ID_MAX_LENGTH:
        raise ValidationError(
            f"user_id must be at most {USER_ID_MAX_LENGTH} characters"
        )
    return user_id


def _validate_text(name: str, value: object) -> str | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    if len(value) > TEXT_MAX_LENGTH:
        raise ValidationError(f"{name} must be at most {TEXT_MAX_LENGTH} characters")
    return value


def validate_media_type(media_type: object) -> MediaType:
    if media_type not in MEDIA_TYPES:
        raise ValidationError(f"media_type must be movie|tv (got {media_type!r})")
    return media_type  # type: ignore[return-value]


def _validate_positive_int(name: str, value: object) -> int:
    # bool is an int subclass; True is not a media id
    if (
        isinstance(value, bool)
        or not isinstance(value, int)
        or not 0 < value <= INT32_MAX
    ):
        raise ValidationError(
            f"{name} must be an integer in [1, {INT32_MAX}] (got {value!r})"
        )
    return value


def validate_seconds(name: str, value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValidationError(f"{name} must be a number (got {value!r})")
    seconds = float(value)
    if not math.isfinite(seconds) or seconds < 0:
        raise ValidationError(f"{name} must be a finite, non-negative number")
    return seconds


class ProgressStore:
    """Record-keeper for per-user playback progress.

    Constructed explicitly around a ProgressRepo and closed explicitly;
    the app does both in its lifespan.  `clock` is injectable so tests
    can control last_played_at.
    """

    def __init__(self, repo: ProgressRepo, *, clock: Clock = utcnow) -> None:
        self._repo = repo
        self._clock = clock

    @property
    def repo(self) -> ProgressRepo:
        return self._repo

    async def upsert(
        self,
        user_id: str,
        media_id: int,
        media_type: MediaType,
        current_time: float,
        duration: float,
        season_number: int | None = None,
        episode_number: int | None = None,
        *,
        title: str | None = None,
        poster_path: str | None = None,
        quality: Quality | None = None,
    ) -> ProgressRecord:
        """Record a playback position and return the post-update record.

        Creates the record on first report for the tuple, otherwise
        overwrites position, duration and the derived fields in one
        atomic repo operation.

        Raises:
            ValidationError: malformed input, before touching storage.
            StorageError: the repo failed; not retried here.
        """
        user_id = validate_user_id(user_id)
        media_id = _validate_positive_int("media_id", media_id)
        media_type = validate_media_type(media_type)
        if current_time is None:
            raise ValidationError("current_time is required")
        current_time = validate_seconds("current_time", current_time)
        if duration is None:
            raise ValidationError("duration is required")
        duration = validate_seconds("duration", duration)
        if duration <= 0:
            raise ValidationError("duration must be greater than zero")
        if season_number is not None:
            season_number = _validate_positive_int("season_number", season_number)
        if episode_number is not None:
            episode_number = _validate_positive_int("episode_number", episode_number)
        if quality is not None and quality not in QUALITIES:
            raise ValidationError(
                f"quality must be one of {', '.join(QUALITIES)} (got {quality!r})"
            )
        title = _validate_text("title", title)
        poster_path = _validate_text("poster_path", poster_path)

        progress_percent, completed = compute_progress(current_time, duration)
        write = ProgressWrite(
            user_id=user_id,
            media_id=media_id,
            media_type=media_type,
            current_time_seconds=current_time,
            total_duration_seconds=duration,
            progress_percent=progress_percent,
            completed=completed,
            played_at=self._clock(),
            season_number=season_number,
            episode_number=episode_number,
            quality=quality,
            title=title,
            poster_path=poster_path,
        )

        try:
            record = await self._repo.upsert(write)
        except StorageError:
            STORAGE_ERRORS.labels(operation="upsert").inc()
            raise

        PROGRESS_UPSERTS.labels(
            media_type=media_type, completed=str(completed).lower()
        ).inc()
        logger.debug(
            "Progress recorded user=%s media=%s/%d progress=%d%% completed=%s",
            user_id,
            media_type,
            media_id,
            record.progress_percent,
            record.completed,
            extra={"user_id": user_id, "media_id": media_id, "media_type": media_type},
        )
        return record

    async def get(
        self, user_id: str, media_id: int, media_type: MediaType
    ) -> ProgressRecord | None:
        """Look up one record; None when the tuple has never been reported."""
        user_id = validate_user_id(user_id)
        media_id = _validate_positive_int("media_id", media_id)
        media_type = validate_media_type(media_type)
        try:
            return await self._repo.get(user_id, media_id, media_type)
        except StorageError:
            STORAGE_ERRORS.labels(operation="get").inc()
            raise

    async def ping(self) -> None:
        try:
            await self._repo.ping()
        except StorageError:
            STORAGE_ERRORS.labels(operation="ping").inc()
            raise

    async def close(self) -> None:
        await self._repo.close()


def build_progress_store(settings: Settings) -> ProgressStore:
    """Pick the backing repo from settings and wrap it in a ProgressStore.

    DATABASE_URL set → PostgreSQL; otherwise an in-memory repo that lives
    as long as the process.
    """
    if not settings.database_url:
        logger.info("No DATABASE_URL configured, using in-memory progress repo")
        return ProgressStore(InMemoryProgressRepo())

    from watchtrack.db.engine import create_engine, create_session_factory
    from watchtrack.repos.pg_progress_repo import PgProgressRepo

    engine = create_engine(settings.database_url, echo=settings.is_dev)
    logger.info("Database engine created: %s", engine.url)
    return ProgressStore(PgProgressRepo(engine, create_session_factory(engine)))
