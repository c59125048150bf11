"""Demo: a player reporting progress, then the continue-watching rows.

Run with:
    python scripts/demo_playback_flow.py

Uses the in-process TestClient and the in-memory store, so no database
or catalog key is needed.
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from watchtrack.main import app
from watchtrack.services import token_service

MOVIE_ID = 42
SHOW_ID = 1399
RUNTIME_SECONDS = 6000.0


def main() -> None:
    token = token_service.create_access_token(sub="demo-viewer")
    headers = {"Authorization": f"Bearer {token}"}

    with TestClient(app) as client:
        # ── Step 1: player heartbeats for a movie ───────────────────────
        for position in (0, 600, 1800):
            r = client.put(
                "/v1/progress",
                json={
                    "media_id": MOVIE_ID,
                    "media_type": "movie",
                    "current_time": position,
                    "duration": RUNTIME_SECONDS,
                    "title": "Demo Movie",
                },
                headers=headers,
            )
            body = r.json()
            print(
                f"1. PUT  movie @ {position:>5}s → {r.status_code}  "
                f"progress={body['progress']}% completed={body['completed']}"
            )

        # ── Step 2: an episode watched almost to the end ────────────────
        r = client.put(
            "/v1/progress",
            json={
                "media_id": SHOW_ID,
                "media_type": "tv",
                "current_time": 3300,
                "duration": 3400,
                "season_number": 1,
                "episode_number": 3,
                "title": "Demo Show",
            },
            headers=headers,
        )
        body = r.json()
        print(
            f"2. PUT  tv S1E3           → {r.status_code}  "
            f"progress={body['progress']}% completed={body['completed']}"
        )

        # ── Step 3: read views ──────────────────────────────────────────
        for view in ("continue-watching", "history", "completed"):
            r = client.get(f"/v1/progress/{view}", headers=headers)
            titles = [f"{e['title']} ({e['progress']}%)" for e in r.json()]
            print(f"3. GET  {view:<18} → {r.status_code}  {titles}")


if __name__ == "__main__":
    main()
