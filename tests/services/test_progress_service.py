from __future__ import annotations

import asyncio

import pytest

from watchtrack.core.errors import NotFoundError, ValidationError
from watchtrack.services.catalog import MediaSnapshot
from watchtrack.services.progress_service import WatchProgressService
from watchtrack.services.progress_store import ProgressStore


class FakeCatalog:
    def __init__(self, snapshot: MediaSnapshot | None) -> None:
        self.snapshot = snapshot
        self.lookups: list[tuple] = []
        self.closed = False

    async def lookup(self, media_id, media_type, season_number=None, episode_number=None):
        self.lookups.append((media_id, media_type, season_number, episode_number))
        return self.snapshot

    async def close(self) -> None:
        self.closed = True


HEAT = MediaSnapshot(title="Heat", poster_path="/heat.jpg", duration_seconds=170 * 60)


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog(HEAT)


@pytest.fixture
def service(store: ProgressStore, catalog: FakeCatalog) -> WatchProgressService:
    return WatchProgressService(store, catalog=catalog)


# ---- catalog snapshot ----


def test_first_report_takes_snapshot_from_catalog(
    service: WatchProgressService, catalog: FakeCatalog
) -> None:
    record = asyncio.run(service.upsert_progress("1", 949, "movie", 600))

    assert record.title == "Heat"
    assert record.poster_path == "/heat.jpg"
    assert record.total_duration_seconds == 10200
    assert catalog.lookups == [(949, "movie", None, None)]


def test_later_reports_do_not_hit_catalog(
    service: WatchProgressService, catalog: FakeCatalog
) -> None:
    asyncio.run(service.upsert_progress("1", 949, "movie", 600))
    record = asyncio.run(service.upsert_progress("1", 949, "movie", 1200))

    assert len(catalog.lookups) == 1
    # stored duration reused when the player omits it
    assert record.total_duration_seconds == 10200
    assert record.current_time_seconds == 1200


def test_caller_values_win_over_catalog(service: WatchProgressService) -> None:
    record = asyncio.run(
        service.upsert_progress(
            "1", 949, "movie", 50, 100, title="Director's Cut", poster_path="/dc.jpg"
        )
    )
    assert record.title == "Director's Cut"
    assert record.total_duration_seconds == 100
    assert record.progress_percent == 50


def test_fully_specified_report_skips_lookup(
    service: WatchProgressService, catalog: FakeCatalog
) -> None:
    asyncio.run(
        service.upsert_progress("1", 949, "movie", 50, 100, title="T", poster_path="/p")
    )
    assert catalog.lookups == []


def test_tv_lookup_passes_episode(
    service: WatchProgressService, catalog: FakeCatalog
) -> None:
    asyncio.run(service.upsert_progress("1", 1399, "tv", 60, None, 2, 4))
    assert catalog.lookups == [(1399, "tv", 2, 4)]


def test_missing_duration_without_catalog_is_rejected(store: ProgressStore) -> None:
    service = WatchProgressService(store)
    with pytest.raises(ValidationError, match="duration"):
        asyncio.run(service.upsert_progress("1", 42, "movie", 30))


def test_catalog_miss_without_duration_is_rejected(store: ProgressStore) -> None:
    service = WatchProgressService(store, catalog=FakeCatalog(None))
    with pytest.raises(ValidationError, match="duration"):
        asyncio.run(service.upsert_progress("1", 42, "movie", 30))


def test_bad_position_rejected_before_lookup(
    service: WatchProgressService, catalog: FakeCatalog
) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(service.upsert_progress("1", 42, "movie", -5))
    assert catalog.lookups == []


# ---- reads ----


def test_get_progress_raises_not_found(service: WatchProgressService) -> None:
    with pytest.raises(NotFoundError):
        asyncio.run(service.get_progress("1", 42, "movie"))


def test_get_progress_returns_record(service: WatchProgressService) -> None:
    written = asyncio.run(service.upsert_progress("1", 42, "movie", 30, 100))
    assert asyncio.run(service.get_progress("1", 42, "movie")) == written


def test_views_delegate_to_query_engine(service: WatchProgressService) -> None:
    asyncio.run(service.upsert_progress("1", 1, "movie", 30, 100))
    asyncio.run(service.upsert_progress("1", 2, "movie", 95, 100))

    assert [r.media_id for r in asyncio.run(service.get_continue_watching("1"))] == [1]
    assert [r.media_id for r in asyncio.run(service.get_completed("1"))] == [2]
    assert [r.media_id for r in asyncio.run(service.get_history("1"))] == [2, 1]


def test_close_closes_catalog(
    service: WatchProgressService, catalog: FakeCatalog
) -> None:
    asyncio.run(service.close())
    assert catalog.closed is True


def test_catalog_text_is_clipped_to_column_width(store: ProgressStore) -> None:
    long_title = MediaSnapshot(title="x" * 700, poster_path="/p.jpg", duration_seconds=600)
    service = WatchProgressService(store, catalog=FakeCatalog(long_title))
    record = asyncio.run(service.upsert_progress("1", 7, "movie", 60))
    assert record.title == "x" * 500
