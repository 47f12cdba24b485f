"""ASGI entry point.

Run with:
    uvicorn enrollment_service.main:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from enrollment_service.api.enrollments import router as enrollments_router
from enrollment_service.api.health import router as health_router
from enrollment_service.api.metrics_endpoint import router as metrics_router
from enrollment_service.api.progress import router as progress_router
from enrollment_service.api.requests import router as requests_router
from enrollment_service.core.config import SETTINGS
from enrollment_service.core.logging import setup_logging
from enrollment_service.db import engine as db
from enrollment_service.middleware.metrics import MetricsMiddleware
from enrollment_service.middleware.request_context import RequestContextMiddleware
from enrollment_service.services.bootstrap import build_data_manager
from enrollment_service.services.data_manager import DataManager

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    async with db.lifespan_db():
        yield


def create_app(data_manager: DataManager | None = None) -> FastAPI:
    app = FastAPI(
        title="enrollment-service",
        lifespan=lifespan,
        docs_url="/docs" if SETTINGS.is_dev else None,
        redoc_url="/redoc" if SETTINGS.is_dev else None,
    )
    app.state.data_manager = data_manager or build_data_manager()

    # Last added runs first: RequestContext (outermost) -> Metrics -> route
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.include_router(metrics_router)
    app.include_router(health_router)
    app.include_router(enrollments_router)
    app.include_router(progress_router)
    app.include_router(requests_router)
    return app


app = create_app()

logger.info(
    "enrollment-service started  env=%s log_level=%s port=%d store=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "postgres" if db.engine is not None else "memory",
)
