"""Liveness and readiness endpoints.

/health answers "is the process alive" and always returns 200; the body
reports dependency status and in-process operation outcome totals.
/ready returns 503 while a configured database is unreachable, so a
load balancer stops routing here without restarting the container.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response, status
from prometheus_client import REGISTRY
from sqlalchemy import text

from enrollment_service.db import engine as db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

_OUTCOMES = ("success", "validation_error", "operation_error")


def _sum_counter(metric_name: str, label_filter: dict | None = None) -> float:
    """Sum a labelled counter across every label combination matching the filter."""
    total = 0.0
    for metric in REGISTRY.collect():
        for sample in metric.samples:
            if sample.name != metric_name:
                continue
            if label_filter and not all(
                sample.labels.get(k) == v for k, v in label_filter.items()
            ):
                continue
            total += sample.value
    return total


async def _database_status() -> str:
    if db.engine is None:
        return "not_configured"
    try:
        async with db.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Database health check failed", exc_info=True)
        return "degraded"
    return "ok"


@router.get("/health")
async def health() -> dict:
    database = await _database_status()
    operations = {
        outcome: int(
            _sum_counter("data_operations_total", {"outcome": outcome})
        )
        for outcome in _OUTCOMES
    }
    return {
        "status": "ok" if database != "degraded" else "degraded",
        "checks": {"database": database},
        "operations": operations,
    }


@router.get("/ready")
async def ready() -> Response:
    if await _database_status() == "degraded":
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)
