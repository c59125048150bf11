"""Read-side views over watch progress.

Every call is a fresh query against the repo: nothing is cached and no
cursor is kept, so a view always reflects upserts that finished before
it started.
"""

from __future__ import annotations

from watchtrack.core.errors import StorageError, ValidationError
from watchtrack.core.metrics import STORAGE_ERRORS
from watchtrack.models.progress import (
    CONTINUE_WATCHING_CEILING,
    MediaType,
    ProgressFilter,
    ProgressRecord,
)
from watchtrack.repos.progress_repo import ProgressRepo
from watchtrack.services.progress_store import validate_media_type, validate_user_id

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def _validate_limit(limit: object) -> int:
    if (
        isinstance(limit, bool)
        or not isinstance(limit, int)
        or not 1 <= limit <= MAX_LIMIT
    ):
        raise ValidationError(f"limit must be an integer in [1, {MAX_LIMIT}]")
    return limit


class ProgressQueryEngine:
    def __init__(self, repo: ProgressRepo) -> None:
        self._repo = repo

    async def continue_watching(
        self,
        user_id: str,
        media_type: MediaType | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> list[ProgressRecord]:
        """Started but unfinished items, most recently played first.

        Zero progress means playback never advanced, so there is nothing
        to resume; 90% and above is treated as watched.
        """
        return await self._select(
            ProgressFilter(
                user_id=validate_user_id(user_id),
                media_type=_optional_media_type(media_type),
                completed=False,
                progress_above=0,
                progress_below=CONTINUE_WATCHING_CEILING,
            ),
            limit,
        )

    async def history(
        self, user_id: str, limit: int = DEFAULT_LIMIT
    ) -> list[ProgressRecord]:
        """Everything the user played, most recently played first."""
        return await self._select(
            ProgressFilter(user_id=validate_user_id(user_id)), limit
        )

    async def completed(
        self,
        user_id: str,
        media_type: MediaType | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> list[ProgressRecord]:
        """Finished items, most recently played first."""
        return await self._select(
            ProgressFilter(
                user_id=validate_user_id(user_id),
                media_type=_optional_media_type(media_type),
                completed=True,
            ),
            limit,
        )

    async def _select(
        self, selection: ProgressFilter, limit: int
    ) -> list[ProgressRecord]:
        limit = _validate_limit(limit)
        try:
            return await self._repo.list_for_user(selection, limit)
        except StorageError:
            STORAGE_ERRORS.labels(operation="query").inc()
            raise


def _optional_media_type(media_type: object) -> MediaType | None:
    if media_type is None:
        return None
    return validate_media_type(media_type)
