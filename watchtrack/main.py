from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from watchtrack.api.health import router as health_router
from watchtrack.api.metrics_endpoint import router as metrics_router
from watchtrack.api.progress import router as progress_router
from watchtrack.core.config import SETTINGS
from watchtrack.core.logging import setup_logging
from watchtrack.middleware.metrics import MetricsMiddleware
from watchtrack.middleware.request_context import (
    RequestContextMiddleware,
    install_log_filter,
)
from watchtrack.services.catalog import build_catalog
from watchtrack.services.progress_queries import ProgressQueryEngine
from watchtrack.services.progress_service import WatchProgressService
from watchtrack.services.progress_store import build_progress_store

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
install_log_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # One store per process, built here and closed here; routes reach it
    # through app.state rather than a module-level global.
    store = build_progress_store(SETTINGS)
    service = WatchProgressService(
        store,
        ProgressQueryEngine(store.repo),
        build_catalog(SETTINGS),
    )
    app.state.progress_service = service
    try:
        yield
    finally:
        app.state.progress_service = None
        await service.close()
        logger.info("Progress store closed")


app = FastAPI(
    title="watchtrack",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Middleware execution order: last-added runs first (outermost layer).
# RequestContext (outermost) → Metrics → CORS → route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(progress_router)

logger.info(
    "watchtrack started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
