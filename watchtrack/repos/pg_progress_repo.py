"""PostgreSQL implementation of ProgressRepo."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any
from uuid import uuid4

from sqlalchemy import Select, func, select, text
from sqlalchemy.dialects.postgresql import Insert, insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from watchtrack.core.errors import StorageError
from watchtrack.db.tables import WatchProgressRow
from watchtrack.models.progress import (
    DEFAULT_QUALITY,
    ProgressFilter,
    ProgressRecord,
    ProgressWrite,
)

logger = logging.getLogger(__name__)


def build_upsert_statement(write: ProgressWrite) -> Insert:
    """INSERT ... ON CONFLICT (user_id, media_id, media_type) DO UPDATE ... RETURNING.

    Postgres takes the row lock on the unique index, so concurrent
    reports for one tuple apply one after another and each sees the
    previous one's result.
    """
    row = WatchProgressRow
    stmt = insert(row).values(
        id=uuid4(),
        user_id=write.user_id,
        media_id=write.media_id,
        media_type=write.media_type,
        season_number=write.season_number,
        episode_number=write.episode_number,
        title=write.title,
        poster_path=write.poster_path,
        current_time_seconds=write.current_time_seconds,
        total_duration_seconds=write.total_duration_seconds,
        progress_percent=write.progress_percent,
        completed=write.completed,
        quality=write.quality or DEFAULT_QUALITY,
        watched_at=write.played_at,
        last_played_at=write.played_at,
    )
    excluded = stmt.excluded
    set_: dict[str, Any] = {
        "current_time_seconds": excluded.current_time_seconds,
        "total_duration_seconds": excluded.total_duration_seconds,
        "progress_percent": excluded.progress_percent,
        "completed": excluded.completed,
        "last_played_at": func.greatest(row.last_played_at, excluded.last_played_at),
        "title": func.coalesce(row.title, excluded.title),
        "poster_path": func.coalesce(row.poster_path, excluded.poster_path),
    }
    # Absent season/episode/quality must not clobber stored values.
    if write.season_number is not None:
        set_["season_number"] = excluded.season_number
    if write.episode_number is not None:
        set_["episode_number"] = excluded.episode_number
    if write.quality is not None:
        set_["quality"] = excluded.quality

    return stmt.on_conflict_do_update(
        constraint="uq_watch_progress_user_media",
        set_=set_,
    ).returning(*row.__table__.c)


def build_list_statement(selection: ProgressFilter, limit: int) -> Select:
    row = WatchProgressRow
    stmt = select(row).where(row.user_id == selection.user_id)
    if selection.media_type is not None:
        stmt = stmt.where(row.media_type == selection.media_type)
    if selection.completed is not None:
        stmt = stmt.where(row.completed.is_(selection.completed))
    if selection.progress_above is not None:
        stmt = stmt.where(row.progress_percent > selection.progress_above)
    if selection.progress_below is not None:
        stmt = stmt.where(row.progress_percent < selection.progress_below)
    return stmt.order_by(row.last_played_at.desc(), row.id.desc()).limit(limit)


class PgProgressRepo:
    """Satisfies the ProgressRepo Protocol using PostgreSQL via SQLAlchemy.

    Each call runs in its own session and transaction and owns nothing
    between calls; the engine is disposed on close().
    """

    def __init__(
        self,
        engine: AsyncEngine,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        self._engine = engine
        self._session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.warning(
                    "watch_progress %s failed: %s", operation, exc.__class__.__name__
                )
                raise StorageError(f"watch_progress {operation} failed") from exc

    async def upsert(self, write: ProgressWrite) -> ProgressRecord:
        stmt = build_upsert_statement(write)
        async with self._transaction("upsert") as session:
            result = await session.execute(stmt)
            mapping = result.mappings().one()
        return _mapping_to_record(mapping)

    async def get(
        self, user_id: str, media_id: int, media_type: str
    ) -> ProgressRecord | None:
        stmt = select(WatchProgressRow).where(
            WatchProgressRow.user_id == user_id,
            WatchProgressRow.media_id == media_id,
            WatchProgressRow.media_type == media_type,
        )
        async with self._transaction("get") as session:
            found = (await session.execute(stmt)).scalar_one_or_none()
        if found is None:
            return None
        return _row_to_record(found)

    async def list_for_user(
        self, selection: ProgressFilter, limit: int
    ) -> list[ProgressRecord]:
        stmt = build_list_statement(selection, limit)
        async with self._transaction("query") as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_row_to_record(r) for r in rows]

    async def ping(self) -> None:
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise StorageError("watch_progress store unreachable") from exc

    async def close(self) -> None:
        await self._engine.dispose()
        logger.info("Database engine disposed")


def _row_to_record(row: WatchProgressRow) -> ProgressRecord:
    return ProgressRecord(
        id=row.id,
        user_id=row.user_id,
        media_id=row.media_id,
        media_type=row.media_type,  # type: ignore[arg-type]
        current_time_seconds=row.current_time_seconds,
        total_duration_seconds=row.total_duration_seconds,
        progress_percent=row.progress_percent,
        completed=row.completed,
        watched_at=row.watched_at,
        last_played_at=row.last_played_at,
        quality=row.quality,  # type: ignore[arg-type]
        season_number=row.season_number,
        episode_number=row.episode_number,
        title=row.title,
        poster_path=row.poster_path,
    )


def _mapping_to_record(m: Mapping[str, Any]) -> ProgressRecord:
    return ProgressRecord(
        id=m["id"],
        user_id=m["user_id"],
        media_id=m["media_id"],
        media_type=m["media_type"],
        current_time_seconds=m["current_time_seconds"],
        total_duration_seconds=m["total_duration_seconds"],
        progress_percent=m["progress_percent"],
        completed=m["completed"],
        watched_at=m["watched_at"],
        last_played_at=m["last_played_at"],
        quality=m["quality"],
        season_number=m["season_number"],
        episode_number=m["episode_number"],
        title=m["title"],
        poster_path=m["poster_path"],
    )
