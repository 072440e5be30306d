"""
localdb_hosting.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide liveness probe (`/healthz`).
- Provide readiness probe (`/readyz`) running every registered resource health check.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from starlette.status import HTTP_503_SERVICE_UNAVAILABLE

from localdb_hosting.api.deps import application_dep
from localdb_hosting.hosting.application import DistributedApplication
from localdb_hosting.model.resources import HealthCheckAnnotation
from localdb_hosting.model.state import HealthStatus

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz", response_model=None)
async def readyz(
    application: DistributedApplication = Depends(application_dep),
) -> dict[str, Any] | JSONResponse:
    keys = [
        annotation.key
        for resource in application.resources
        for annotation in resource.annotations_of(HealthCheckAnnotation)
    ]
    reports = await application.services.health.check_all(keys)
    checks = {r.key: {"status": str(r.status), "description": r.description} for r in reports}
    if all(r.status is HealthStatus.healthy for r in reports):
        return {"status": "ready", "checks": checks}
    return JSONResponse(
        status_code=HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "not_ready", "checks": checks},
    )


# --- Module Notes -----------------------------------------------------------
# `/readyz` runs the checks on demand rather than reading cached snapshot health.
