"""Health and readiness endpoints.

  /health (liveness): the process can answer.  Always 200; the body's
    ``status`` reports "degraded" when a dependency check fails, since a
    restart would not fix an unreachable database.
  /ready (readiness): 503 while the database is unreachable, so the load
    balancer stops routing traffic here until it recovers.
"""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from app.db.engine import engine, ping_database

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    checks: dict[str, str] = {}
    overall = "ok"

    if engine is None:
        checks["database"] = "not_configured"
    elif await ping_database():
        checks["database"] = "ok"
    else:
        checks["database"] = "degraded"
        overall = "degraded"

    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if not await ping_database():
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)
