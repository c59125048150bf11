from __future__ import annotations

import asyncio

import pytest

from watchtrack.core.errors import ValidationError
from watchtrack.services.progress_queries import ProgressQueryEngine
from watchtrack.services.progress_store import ProgressStore


def _report(store: ProgressStore, media_id: int, current_time: float, **kw) -> None:
    media_type = kw.pop("media_type", "movie")
    user_id = kw.pop("user_id", "1")
    asyncio.run(store.upsert(user_id, media_id, media_type, current_time, 100, **kw))


def _ids(records) -> list[int]:
    return [r.media_id for r in records]


# ---- continue watching ----


def test_continue_watching_lists_partial_watch(
    store: ProgressStore, queries: ProgressQueryEngine
) -> None:
    _report(store, 42, 30)
    assert _ids(asyncio.run(queries.continue_watching("1"))) == [42]


def test_continue_watching_drops_item_once_completed(
    store: ProgressStore, queries: ProgressQueryEngine
) -> None:
    _report(store, 42, 30)
    _report(store, 42, 95)
    assert asyncio.run(queries.continue_watching("1")) == []
    assert _ids(asyncio.run(queries.history("1"))) == [42]


def test_continue_watching_excludes_zero_and_end(
    store: ProgressStore, queries: ProgressQueryEngine
) -> None:
    _report(store, 1, 0)
    _report(store, 2, 100)
    _report(store, 3, 50)
    assert _ids(asyncio.run(queries.continue_watching("1"))) == [3]


def test_exactly_90_is_neither_continuing_nor_completed(
    store: ProgressStore, queries: ProgressQueryEngine
) -> None:
    _report(store, 7, 90)
    assert asyncio.run(queries.continue_watching("1")) == []
    assert asyncio.run(queries.completed("1")) == []
    assert _ids(asyncio.run(queries.history("1"))) == [7]


def test_continue_watching_most_recent_first(
    store: ProgressStore, queries: ProgressQueryEngine
) -> None:
    for media_id in (1, 2, 3):
        _report(store, media_id, 20)
    # resuming 1 bumps it to the front
    _report(store, 1, 40)

    records = asyncio.run(queries.continue_watching("1"))
    assert _ids(records) == [1, 3, 2]
    stamps = [r.last_played_at for r in records]
    assert stamps == sorted(stamps, reverse=True)
    assert len(set(stamps)) == len(stamps)


def test_continue_watching_filters_media_type(
    store: ProgressStore, queries: ProgressQueryEngine
) -> None:
    _report(store, 1, 20, media_type="movie")
    _report(store, 2, 20, media_type="tv", season_number=1, episode_number=1)

    assert _ids(asyncio.run(queries.continue_watching("1", "tv"))) == [2]
    assert _ids(asyncio.run(queries.continue_watching("1", "movie"))) == [1]


def test_continue_watching_respects_limit(
    store: ProgressStore, queries: ProgressQueryEngine
) -> None:
    for media_id in range(1, 16):
        _report(store, media_id, 20)

    assert len(asyncio.run(queries.continue_watching("1"))) == 10
    assert _ids(asyncio.run(queries.continue_watching("1", limit=2))) == [15, 14]


def test_continue_watching_is_per_user(
    store: ProgressStore, queries: ProgressQueryEngine
) -> None:
    _report(store, 42, 30, user_id="alice")
    assert asyncio.run(queries.continue_watching("bob")) == []


def test_continue_watching_empty_for_new_user(queries: ProgressQueryEngine) -> None:
    assert asyncio.run(queries.continue_watching("nobody")) == []


# ---- history ----


def test_history_includes_everything_recent_first(
    store: ProgressStore, queries: ProgressQueryEngine
) -> None:
    _report(store, 1, 0)
    _report(store, 2, 50)
    _report(store, 3, 100)

    assert _ids(asyncio.run(queries.history("1"))) == [3, 2, 1]


def test_history_respects_limit(
    store: ProgressStore, queries: ProgressQueryEngine
) -> None:
    for media_id in range(1, 6):
        _report(store, media_id, 50)
    assert _ids(asyncio.run(queries.history("1", limit=3))) == [5, 4, 3]


def test_history_reflects_latest_upsert_immediately(
    store: ProgressStore, queries: ProgressQueryEngine
) -> None:
    _report(store, 42, 30)
    _report(store, 42, 60)
    (record,) = asyncio.run(queries.history("1"))
    assert record.progress_percent == 60


# ---- completed ----


def test_completed_lists_finished_items(
    store: ProgressStore, queries: ProgressQueryEngine
) -> None:
    _report(store, 1, 95)
    _report(store, 2, 30)
    _report(store, 3, 100, media_type="tv")

    assert _ids(asyncio.run(queries.completed("1"))) == [3, 1]
    assert _ids(asyncio.run(queries.completed("1", "movie"))) == [1]


# ---- validation ----


@pytest.mark.parametrize("limit", [0, -1, 101, True, "5"])
def test_limit_out_of_range_rejected(queries: ProgressQueryEngine, limit) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(queries.history("1", limit=limit))


def test_unknown_media_type_rejected(queries: ProgressQueryEngine) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(queries.continue_watching("1", "podcast"))  # type: ignore[arg-type]


def test_blank_user_rejected(queries: ProgressQueryEngine) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(queries.history(""))
