"""Health check endpoints."""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel

from core import __version__
from core.observability.metrics import get_metrics


router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: str
    version: str
    services: Dict[str, str]


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Health check endpoint."""
    connector = getattr(request.app.state, "connector", None)
    if connector is None:
        fakturownia = "not_configured"
    elif connector.client.is_connected:
        fakturownia = "up"
    else:
        fakturownia = "disconnected"

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=__version__,
        services={
            "api": "up",
            "fakturownia": fakturownia,
        }
    )


@router.get("/ready")
async def readiness_check(request: Request, response: Response) -> Dict[str, str]:
    """Readiness probe: the connector session must be open."""
    connector = getattr(request.app.state, "connector", None)
    if connector is None or not connector.client.is_connected:
        response.status_code = 503
        return {"status": "not_ready"}
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> Dict[str, str]:
    """Liveness probe."""
    return {"status": "alive"}


@router.get("/metrics")
async def metrics_summary() -> Dict[str, Any]:
    """In-memory request metrics."""
    return get_metrics().get_summary()
