"""Liveness, readiness and storage health endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request, Response, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from workforce_payroll.api.dependencies import Container

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    storage: str
    open_requests: int | None = None


@router.get("/health", response_model=HealthResponse)
async def health_check(container: Container) -> HealthResponse:
    """Probe storage with a cheap read; degraded rather than failing."""
    try:
        open_requests = len(await container.repositories.approvals.list_open_requests())
    except SQLAlchemyError:
        logger.exception("Storage health check failed")
        return HealthResponse(
            status="degraded",
            timestamp=datetime.now(timezone.utc),
            storage="unreachable",
        )
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        storage="ok",
        open_requests=open_requests,
    )


@router.get("/ready")
async def readiness_check(request: Request, response: Response) -> dict[str, str]:
    """Ready once the service container is wired."""
    if getattr(request.app.state, "container", None) is None:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "starting"}
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
