"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in watchtrack/models/.
Repos convert between SQLAlchemy rows and domain dataclasses.
"""

from __future__ import annotations

import datetime
import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from watchtrack.db.engine import Base


class WatchProgressRow(Base):
    __tablename__ = "watch_progress"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    # Opaque id from the identity provider; no FK, users live elsewhere.
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    media_id: Mapped[int] = mapped_column(Integer, nullable=False)
    media_type: Mapped[str] = mapped_column(String(8), nullable=False)  # movie|tv
    season_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    episode_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    poster_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    current_time_seconds: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0
    )
    total_duration_seconds: Mapped[float] = mapped_column(Float, nullable=False)
    progress_percent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    quality: Mapped[str] = mapped_column(
        String(8), nullable=False, default="720p"
    )  # 360p|480p|720p|1080p
    watched_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    last_played_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id", "media_id", "media_type", name="uq_watch_progress_user_media"
        ),
        Index("ix_watch_progress_user_last_played", "user_id", "last_played_at"),
        Index("ix_watch_progress_user_completed", "user_id", "completed"),
        CheckConstraint(
            "media_type IN ('movie', 'tv')", name="ck_watch_progress_media_type"
        ),
        CheckConstraint(
            "progress_percent BETWEEN 0 AND 100",
            name="ck_watch_progress_percent_range",
        ),
        CheckConstraint(
            "last_played_at >= watched_at", name="ck_watch_progress_played_order"
        ),
    )
