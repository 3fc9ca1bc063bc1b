"""Simple health and readiness endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from catalog.utils.redis_client import create_redis_client

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["health"])

SERVICE_NAME = "catalog-api"


@router.get("/live", summary="Liveness probe")
def live() -> dict[str, str]:
    """Indicates the API process is running."""
    return {"status": "ok", "service": SERVICE_NAME}


def _check_database(request: Request) -> dict[str, str]:
    try:
        with request.app.state.engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        return {"status": "healthy", "message": "Database connection successful"}
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        return {"status": "unhealthy", "message": f"Database connection failed: {e}"}


def _check_redis(url: str) -> dict[str, str]:
    client = None
    try:
        client = create_redis_client(url, decode_responses=True)
        client.ping()
        return {"status": "healthy", "message": "Redis connection successful"}
    except RedisError as e:
        logger.warning(f"Redis health check failed: {e}")
        return {"status": "unhealthy", "message": f"Redis connection failed: {e}"}
    finally:
        if client is not None:
            client.close()


@router.get("/ready", summary="Readiness probe")
def ready(request: Request) -> Any:
    """Check the database and the Celery broker.

    The broker only gates readiness when view counting is deferred to
    Celery; otherwise its status is reported for information.
    """
    settings = request.app.state.settings
    checks: dict[str, Any] = {
        "status": "ok",
        "service": SERVICE_NAME,
        "checks": {"database": _check_database(request)},
    }
    healthy = checks["checks"]["database"]["status"] == "healthy"

    broker_url = settings.celery_broker_url or settings.redis_url
    checks["checks"]["celery_broker"] = _check_redis(broker_url)
    if settings.view_count_async and checks["checks"]["celery_broker"]["status"] != "healthy":
        healthy = False

    if not healthy:
        checks["status"] = "unhealthy"
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=checks)
    return checks
