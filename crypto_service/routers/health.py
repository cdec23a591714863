"""Health check routes"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from crypto_service import __version__
from crypto_service.models.response import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    """Service health, including database and Redis status"""
    services = request.app.state.services
    return HealthResponse(
        timestamp=datetime.now(tz=timezone.utc).isoformat(),
        version=__version__,
        databases={
            "database": await services.db.check_health(),
            "redis": await services.cache.check_health(),
        },
    )


@router.get("/healthz")
async def healthz():
    """Kubernetes liveness probe"""
    return {"status": "ok"}
