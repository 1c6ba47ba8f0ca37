"""Health and readiness endpoints.

  /health  liveness: the process answers.  Reports per-dependency status
           but stays 200 when degraded, so the orchestrator does not
           restart a process that is only missing Redis.
  /ready   readiness: the document store answers a read.  503 takes the
           instance out of rotation without restarting it.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response

from lms.api.dependencies import ServicesDep
from lms.core.errors import StoreError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(services: ServicesDep) -> dict:
    checks: dict[str, str] = {}
    overall = "ok"

    if services.redis is not None:
        try:
            await services.redis.ping()  # type: ignore[misc]
            checks["redis"] = "ok"
        except Exception:
            logger.warning("Redis ping failed", exc_info=True)
            checks["redis"] = "degraded"
            overall = "degraded"
    else:
        checks["redis"] = "not_configured"

    checks["document_store"] = services.settings.document_store
    checks["identity_provider"] = services.settings.identity_provider
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready(services: ServicesDep) -> Response:
    try:
        await services.store.query("courses", limit=1)
    except StoreError:
        logger.warning("Readiness check failed: document store unreachable")
        return Response(status_code=503)
    return Response(status_code=200)
