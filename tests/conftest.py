from __future__ import annotations

import sys
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import watchtrack` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from watchtrack.main import app  # noqa: E402
from watchtrack.models.progress import ProgressWrite, compute_progress  # noqa: E402
from watchtrack.repos.progress_repo import InMemoryProgressRepo  # noqa: E402
from watchtrack.services import token_service  # noqa: E402
from watchtrack.services.progress_queries import ProgressQueryEngine  # noqa: E402
from watchtrack.services.progress_store import ProgressStore  # noqa: E402

T0 = datetime(2026, 1, 1, 20, 0, tzinfo=UTC)


class FakeClock:
    """Each call advances by `step`, so every upsert gets a later timestamp."""

    def __init__(self, start: datetime = T0, step: timedelta = timedelta(seconds=5)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        self.now = self.now + self.step
        return self.now


def make_write(
    current_time: float = 30.0,
    duration: float = 100.0,
    *,
    user_id: str = "user-1",
    media_id: int = 42,
    media_type: str = "movie",
    played_at: datetime = T0,
    **extra: object,
) -> ProgressWrite:
    percent, completed = compute_progress(current_time, duration)
    return ProgressWrite(
        user_id=user_id,
        media_id=media_id,
        media_type=media_type,  # type: ignore[arg-type]
        current_time_seconds=current_time,
        total_duration_seconds=duration,
        progress_percent=percent,
        completed=completed,
        played_at=played_at,
        **extra,  # type: ignore[arg-type]
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repo() -> InMemoryProgressRepo:
    return InMemoryProgressRepo()


@pytest.fixture
def store(repo: InMemoryProgressRepo, clock: FakeClock) -> ProgressStore:
    return ProgressStore(repo, clock=clock)


@pytest.fixture
def queries(repo: InMemoryProgressRepo) -> ProgressQueryEngine:
    return ProgressQueryEngine(repo)


@pytest.fixture
def client() -> Iterator[TestClient]:
    # Entering the context runs the lifespan, which builds a fresh
    # in-memory store per test.
    with TestClient(app) as c:
        yield c


def mint_token(username: str = "test-user") -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username)


@pytest.fixture
def token() -> str:
    return mint_token()


@pytest.fixture
def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
