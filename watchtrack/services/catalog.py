"""Catalog provider port and its TMDB-backed implementation.

The progress store only needs a display snapshot (title, poster) and a
runtime when the player did not report one.  Catalog data is never
re-validated and a catalog outage must not block progress reporting,
so lookup failures are logged and reported as "no snapshot".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from watchtrack.core.config import Settings
from watchtrack.core.metrics import CATALOG_LOOKUPS

logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True, slots=True)
class MediaSnapshot:
    title: str | None
    poster_path: str | None
    duration_seconds: float | None


class CatalogProvider(Protocol):
    async def lookup(
        self,
        media_id: int,
        media_type: str,
        season_number: int | None = None,
        episode_number: int | None = None,
    ) -> MediaSnapshot | None: ...

    async def close(self) -> None: ...


def _runtime_seconds(minutes: Any) -> float | None:
    if isinstance(minutes, bool) or not isinstance(minutes, int | float):
        return None
    if minutes <= 0:
        return None
    return float(minutes) * 60


class TmdbCatalog:
    """Satisfies CatalogProvider against the TMDB v3 REST API.

    movie → /movie/{id} (title, poster_path, runtime)
    tv    → /tv/{id} (name, poster_path, episode_run_time[0]), plus
            /tv/{id}/season/{s}/episode/{e} for the episode runtime when
            both season and episode are known.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._client = client or httpx.AsyncClient(
            base_url=base_url, timeout=_TIMEOUT_SECONDS
        )

    async def _get_json(self, path: str) -> dict[str, Any] | None:
        resp = await self._client.get(path, params={"api_key": self._api_key})
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return resp.json()

    async def lookup(
        self,
        media_id: int,
        media_type: str,
        season_number: int | None = None,
        episode_number: int | None = None,
    ) -> MediaSnapshot | None:
        try:
            if media_type == "movie":
                snapshot = await self._lookup_movie(media_id)
            else:
                snapshot = await self._lookup_tv(
                    media_id, season_number, episode_number
                )
        except (httpx.HTTPError, ValueError) as exc:
            # ValueError covers a non-JSON body
            CATALOG_LOOKUPS.labels(result="error").inc()
            logger.warning(
                "Catalog lookup failed for %s/%d: %s", media_type, media_id, exc
            )
            return None

        CATALOG_LOOKUPS.labels(result="hit" if snapshot else "miss").inc()
        return snapshot

    async def _lookup_movie(self, media_id: int) -> MediaSnapshot | None:
        data = await self._get_json(f"/movie/{media_id}")
        if data is None:
            return None
        return MediaSnapshot(
            title=data.get("title"),
            poster_path=data.get("poster_path"),
            duration_seconds=_runtime_seconds(data.get("runtime")),
        )

    async def _lookup_tv(
        self,
        media_id: int,
        season_number: int | None,
        episode_number: int | None,
    ) -> MediaSnapshot | None:
        data = await self._get_json(f"/tv/{media_id}")
        if data is None:
            return None

        run_times = data.get("episode_run_time") or []
        duration = _runtime_seconds(run_times[0]) if run_times else None

        if season_number is not None and episode_number is not None:
            episode = await self._get_json(
                f"/tv/{media_id}/season/{season_number}/episode/{episode_number}"
            )
            if episode is not None:
                duration = _runtime_seconds(episode.get("runtime")) or duration

        return MediaSnapshot(
            title=data.get("name"),
            poster_path=data.get("poster_path"),
            duration_seconds=duration,
        )

    async def close(self) -> None:
        await self._client.aclose()


def build_catalog(settings: Settings) -> CatalogProvider | None:
    if not settings.catalog_enabled:
        logger.info("No CATALOG_API_KEY configured, catalog snapshots disabled")
        return None
    return TmdbCatalog(settings.catalog_api_key or "", settings.catalog_base_url)
