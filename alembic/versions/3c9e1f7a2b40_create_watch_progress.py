"""create watch_progress

Revision ID: 3c9e1f7a2b40
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3c9e1f7a2b40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "watch_progress",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("media_id", sa.Integer(), nullable=False),
        sa.Column("media_type", sa.String(length=8), nullable=False),
        sa.Column("season_number", sa.Integer(), nullable=True),
        sa.Column("episode_number", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(length=500), nullable=True),
        sa.Column("poster_path", sa.String(length=500), nullable=True),
        sa.Column(
            "current_time_seconds", sa.Float(), nullable=False, server_default="0"
        ),
        sa.Column("total_duration_seconds", sa.Float(), nullable=False),
        sa.Column("progress_percent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "completed", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("quality", sa.String(length=8), nullable=False, server_default="720p"),
        sa.Column("watched_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_played_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "user_id", "media_id", "media_type", name="uq_watch_progress_user_media"
        ),
        sa.CheckConstraint(
            "media_type IN ('movie', 'tv')", name="ck_watch_progress_media_type"
        ),
        sa.CheckConstraint(
            "progress_percent BETWEEN 0 AND 100",
            name="ck_watch_progress_percent_range",
        ),
        sa.CheckConstraint(
            "last_played_at >= watched_at", name="ck_watch_progress_played_order"
        ),
    )
    op.create_index(
        "ix_watch_progress_user_last_played",
        "watch_progress",
        ["user_id", "last_played_at"],
    )
    op.create_index(
        "ix_watch_progress_user_completed",
        "watch_progress",
        ["user_id", "completed"],
    )


def downgrade() -> None:
    op.drop_index("ix_watch_progress_user_completed", table_name="watch_progress")
    op.drop_index("ix_watch_progress_user_last_played", table_name="watch_progress")
    op.drop_table("watch_progress")
