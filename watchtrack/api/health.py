"""Health and readiness endpoints.

  /health (liveness): always 200 while the process can answer; the
    body says whether the progress store is reachable.
  /ready (readiness): 503 while the store is unreachable so the load
    balancer stops routing progress reports here without restarting
    the container.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response, status

from watchtrack.core.errors import StorageError

router = APIRouter(tags=["health"])


async def _store_status(request: Request) -> str:
    service = getattr(request.app.state, "progress_service", None)
    if service is None:
        return "not_initialised"
    try:
        await service.store.ping()
    except StorageError:
        return "degraded"
    return "ok"


@router.get("/health")
async def health(request: Request) -> dict:
    store = await _store_status(request)
    return {
        "status": "ok" if store == "ok" else "degraded",
        "checks": {"store": store},
    }


@router.get("/ready")
async def ready(request: Request) -> Response:
    if await _store_status(request) != "ok":
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)
