"""Watch-progress operations exposed to callers.

Transport-agnostic: the HTTP routes in watchtrack.api.progress are a
thin layer over this class.
"""

from __future__ import annotations

import logging

from watchtrack.core.errors import NotFoundError, ValidationError
from watchtrack.models.progress import MediaType, ProgressRecord, Quality
from watchtrack.services.catalog import CatalogProvider, MediaSnapshot
from watchtrack.services.progress_queries import DEFAULT_LIMIT, ProgressQueryEngine
from watchtrack.services.progress_store import (
    TEXT_MAX_LENGTH,
    ProgressStore,
    validate_seconds,
)

logger = logging.getLogger(__name__)


def _clip(value: str | None) -> str | None:
    # catalog text is trusted but must still fit the column
    return value[:TEXT_MAX_LENGTH] if value else value


class WatchProgressService:
    def __init__(
        self,
        store: ProgressStore,
        queries: ProgressQueryEngine | None = None,
        catalog: CatalogProvider | None = None,
    ) -> None:
        self.store = store
        self.queries = queries or ProgressQueryEngine(store.repo)
        self.catalog = catalog

    async def upsert_progress(
        self,
        user_id: str,
        media_id: int,
        media_type: MediaType,
        current_time: float,
        duration: float | None = None,
        season_number: int | None = None,
        episode_number: int | None = None,
        quality: Quality | None = None,
        title: str | None = None,
        poster_path: str | None = None,
    ) -> ProgressRecord:
        """Report a playback position.

        The catalog is consulted only on the first report for a tuple,
        and only for what the caller left out.  A report without a
        duration for an existing record reuses the stored duration.
        """
        # Reject a bad position before the lookup below touches storage.
        if current_time is None:
            raise ValidationError("current_time is required")
        validate_seconds("current_time", current_time)

        needs_snapshot = duration is None or title is None or poster_path is None
        if needs_snapshot:
            existing = await self.store.get(user_id, media_id, media_type)
            if existing is not None:
                if duration is None:
                    duration = existing.total_duration_seconds
            else:
                snapshot = await self._snapshot(
                    media_id, media_type, season_number, episode_number
                )
                if snapshot is not None:
                    title = title or _clip(snapshot.title)
                    poster_path = poster_path or _clip(snapshot.poster_path)
                    if duration is None:
                        duration = snapshot.duration_seconds

        return await self.store.upsert(
            user_id,
            media_id,
            media_type,
            current_time,
            duration,  # type: ignore[arg-type]
            season_number,
            episode_number,
            title=title,
            poster_path=poster_path,
            quality=quality,
        )

    async def get_progress(
        self, user_id: str, media_id: int, media_type: MediaType
    ) -> ProgressRecord:
        record = await self.store.get(user_id, media_id, media_type)
        if record is None:
            raise NotFoundError(f"no progress for {media_type}/{media_id}")
        return record

    async def get_continue_watching(
        self,
        user_id: str,
        media_type: MediaType | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> list[ProgressRecord]:
        return await self.queries.continue_watching(user_id, media_type, limit)

    async def get_history(
        self, user_id: str, limit: int = DEFAULT_LIMIT
    ) -> list[ProgressRecord]:
        return await self.queries.history(user_id, limit)

    async def get_completed(
        self,
        user_id: str,
        media_type: MediaType | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> list[ProgressRecord]:
        return await self.queries.completed(user_id, media_type, limit)

    async def _snapshot(
        self,
        media_id: int,
        media_type: MediaType,
        season_number: int | None,
        episode_number: int | None,
    ) -> MediaSnapshot | None:
        if self.catalog is None:
            return None
        snapshot = await self.catalog.lookup(
            media_id, media_type, season_number, episode_number
        )
        if snapshot is None:
            logger.debug("No catalog snapshot for %s/%d", media_type, media_id)
        return snapshot

    async def close(self) -> None:
        if self.catalog is not None:
            await self.catalog.close()
        await self.store.close()
