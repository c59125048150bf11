"""Watch-progress endpoints.

  Player -> PUT /v1/progress (every few seconds while playing)
  -> ProgressStore.upsert (atomic, one row per user+media+type)
  -> 200 with the post-update record

Read side:
  GET /v1/progress/continue-watching   started, not finished
  GET /v1/progress/history             everything, most recent first
  GET /v1/progress/completed           finished
  GET /v1/progress/{media_type}/{media_id}

The caller is always the token subject; there is no way to read or
write another user's progress through these routes.
"""

from __future__ import annotations

import datetime
import logging
from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from watchtrack.api.dependencies import get_progress_service, require_user
from watchtrack.core.errors import NotFoundError, StorageError, ValidationError
from watchtrack.models.principal import Principal
from watchtrack.models.progress import ProgressRecord
from watchtrack.services.progress_queries import DEFAULT_LIMIT, MAX_LIMIT
from watchtrack.services.progress_service import WatchProgressService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/progress", tags=["progress"])

MediaTypeParam = Literal["movie", "tv"]


class ProgressIn(BaseModel):
    media_id: int
    media_type: str
    current_time: float
    duration: float | None = None
    season_number: int | None = None
    episode_number: int | None = None
    quality: str | None = None
    title: str | None = None
    poster_path: str | None = None


class ProgressOut(BaseModel):
    id: UUID
    media_id: int
    media_type: str
    season_number: int | None
    episode_number: int | None
    title: str | None
    poster_path: str | None
    current_time: float
    duration: float
    progress: int
    completed: bool
    quality: str
    watched_at: datetime.datetime
    last_played_at: datetime.datetime

    @staticmethod
    def from_record(record: ProgressRecord) -> ProgressOut:
        return ProgressOut(
            id=record.id,
            media_id=record.media_id,
            media_type=record.media_type,
            season_number=record.season_number,
            episode_number=record.episode_number,
            title=record.title,
            poster_path=record.poster_path,
            current_time=record.current_time_seconds,
            duration=record.total_duration_seconds,
            progress=record.progress_percent,
            completed=record.completed,
            quality=record.quality,
            watched_at=record.watched_at,
            last_played_at=record.last_played_at,
        )


def _to_http(exc: Exception) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    logger.error("Progress store failure", exc_info=exc)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Progress store unavailable",
    )


_HANDLED = (ValidationError, NotFoundError, StorageError)

Limit = Annotated[int, Query(ge=1, le=MAX_LIMIT)]


@router.put("", response_model=ProgressOut)
async def upsert_progress(
    body: ProgressIn,
    principal: Annotated[Principal, Depends(require_user)],
    service: Annotated[WatchProgressService, Depends(get_progress_service)],
) -> ProgressOut:
    try:
        record = await service.upsert_progress(
            principal.user_id,
            body.media_id,
            body.media_type,  # type: ignore[arg-type]
            body.current_time,
            body.duration,
            body.season_number,
            body.episode_number,
            quality=body.quality,  # type: ignore[arg-type]
            title=body.title,
            poster_path=body.poster_path,
        )
    except _HANDLED as exc:
        raise _to_http(exc) from None
    return ProgressOut.from_record(record)


@router.get("/continue-watching", response_model=list[ProgressOut])
async def continue_watching(
    principal: Annotated[Principal, Depends(require_user)],
    service: Annotated[WatchProgressService, Depends(get_progress_service)],
    media_type: MediaTypeParam | None = None,
    limit: Limit = DEFAULT_LIMIT,
) -> list[ProgressOut]:
    try:
        records = await service.get_continue_watching(
            principal.user_id, media_type, limit
        )
    except _HANDLED as exc:
        raise _to_http(exc) from None
    return [ProgressOut.from_record(r) for r in records]


@router.get("/history", response_model=list[ProgressOut])
async def history(
    principal: Annotated[Principal, Depends(require_user)],
    service: Annotated[WatchProgressService, Depends(get_progress_service)],
    limit: Limit = DEFAULT_LIMIT,
) -> list[ProgressOut]:
    try:
        records = await service.get_history(principal.user_id, limit)
    except _HANDLED as exc:
        raise _to_http(exc) from None
    return [ProgressOut.from_record(r) for r in records]


@router.get("/completed", response_model=list[ProgressOut])
async def completed(
    principal: Annotated[Principal, Depends(require_user)],
    service: Annotated[WatchProgressService, Depends(get_progress_service)],
    media_type: MediaTypeParam | None = None,
    limit: Limit = DEFAULT_LIMIT,
) -> list[ProgressOut]:
    try:
        records = await service.get_completed(principal.user_id, media_type, limit)
    except _HANDLED as exc:
        raise _to_http(exc) from None
    return [ProgressOut.from_record(r) for r in records]


@router.get("/{media_type}/{media_id}", response_model=ProgressOut)
async def get_progress(
    media_type: MediaTypeParam,
    media_id: int,
    principal: Annotated[Principal, Depends(require_user)],
    service: Annotated[WatchProgressService, Depends(get_progress_service)],
) -> ProgressOut:
    try:
        record = await service.get_progress(principal.user_id, media_id, media_type)
    except _HANDLED as exc:
        raise _to_http(exc) from None
    return ProgressOut.from_record(record)
