"""Health check endpoints for EchoCity API v1.

Liveness and readiness probes for container deployments.  Readiness
checks the data service and reports whether AI advisory is configured.
"""

from __future__ import annotations

import time

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class ReadinessResponse(BaseModel):
    status: str
    checks: dict[str, str]


@router.get("", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Liveness probe.  Does *not* check downstream dependencies."""
    start_time: float = getattr(request.app.state, "start_time", time.time())
    return HealthResponse(
        status="healthy",
        version=request.app.version,
        uptime_seconds=round(time.time() - start_time, 2),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request):
    """Readiness probe.

    Returns 503 while the data service is unreachable.  A missing AI
    configuration is reported but does not fail readiness: complaints
    can be filed without it.
    """
    checks: dict[str, str] = {}

    store = getattr(request.app.state, "store", None)
    if store is None:
        checks["store"] = "not_initialised"
    elif hasattr(store, "ping"):
        try:
            checks["store"] = "ok" if await store.ping() else "unreachable"
        except Exception:
            logger.warning("health.store_check_failed", exc_info=True)
            checks["store"] = "error"
    else:
        checks["store"] = "ok (in-memory)"

    advisory = getattr(request.app.state, "advisory", None)
    checks["advisory"] = "ok" if advisory is not None and advisory.available else "disabled"

    ready = checks["store"].startswith("ok")
    body = ReadinessResponse(status="ready" if ready else "not_ready", checks=checks)
    if not ready:
        logger.warning("health.not_ready", checks=checks)
        return ORJSONResponse(status_code=503, content=body.model_dump())
    return body
