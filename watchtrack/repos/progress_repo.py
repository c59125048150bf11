from __future__ import annotations

import threading
from dataclasses import replace
from typing import Protocol

from watchtrack.models.progress import ProgressFilter, ProgressRecord, ProgressWrite

_Key = tuple[str, int, str]


class ProgressRepo(Protocol):
    async def upsert(self, write: ProgressWrite) -> ProgressRecord: ...
    async def get(
        self, user_id: str, media_id: int, media_type: str
    ) -> ProgressRecord | None: ...
    async def list_for_user(
        self, selection: ProgressFilter, limit: int
    ) -> list[ProgressRecord]: ...
    async def ping(self) -> None: ...
    async def close(self) -> None: ...


def merge_write(existing: ProgressRecord | None, write: ProgressWrite) -> ProgressRecord:
    """Apply one progress report to the stored record (or create it).

    Playback position and derived fields are always overwritten.
    Season, episode and quality change only when the report carries them.
    Title and poster are a first-write snapshot, filled in later only
    if they were missing.
    """
    if existing is None:
        return ProgressRecord.new(write)

    return replace(
        existing,
        current_time_seconds=write.current_time_seconds,
        total_duration_seconds=write.total_duration_seconds,
        progress_percent=write.progress_percent,
        completed=write.completed,
        last_played_at=max(existing.last_played_at, write.played_at),
        season_number=(
            write.season_number
            if write.season_number is not None
            else existing.season_number
        ),
        episode_number=(
            write.episode_number
            if write.episode_number is not None
            else existing.episode_number
        ),
        quality=write.quality or existing.quality,
        title=existing.title if existing.title is not None else write.title,
        poster_path=(
            existing.poster_path
            if existing.poster_path is not None
            else write.poster_path
        ),
    )


def sort_recent_first(records: list[ProgressRecord]) -> list[ProgressRecord]:
    return sorted(records, key=lambda r: (r.last_played_at, r.id.int), reverse=True)


class InMemoryProgressRepo:
    """Dict-backed ProgressRepo for dev and tests.

    The lock covers the whole read-modify-write of a key and nothing in
    the critical section awaits, so concurrent upserts from event-loop
    tasks or worker threads apply one at a time.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._store: dict[_Key, ProgressRecord] = {}

    async def upsert(self, write: ProgressWrite) -> ProgressRecord:
        key = (write.user_id, write.media_id, write.media_type)
        with self._lock:
            record = merge_write(self._store.get(key), write)
            self._store[record.key] = record
        return record

    async def get(
        self, user_id: str, media_id: int, media_type: str
    ) -> ProgressRecord | None:
        with self._lock:
            return self._store.get((user_id, media_id, media_type))

    async def list_for_user(
        self, selection: ProgressFilter, limit: int
    ) -> list[ProgressRecord]:
        with self._lock:
            snapshot = list(self._store.values())
        matching = [r for r in snapshot if selection.matches(r)]
        return sort_recent_first(matching)[:limit]

    async def ping(self) -> None:
        return None

    async def close(self) -> None:
        return None

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
