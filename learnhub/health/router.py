"""Health check endpoints."""

from fastapi import APIRouter, Request, status
from fastapi.responses import ORJSONResponse

from learnhub.config import Settings, get_settings


router = APIRouter(prefix="/health", tags=["health"])


def _settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready", response_model=None)
async def readiness(request: Request) -> dict[str, str | bool] | ORJSONResponse:
    """Readiness probe - checks that the database answers."""
    settings = _settings(request)
    db = getattr(request.app.state, "db", None)
    database_ok = db is not None and await db.ping()

    body: dict[str, str | bool] = {
        "status": "ready" if database_ok else "not_ready",
        "environment": settings.environment,
        "database": database_ok,
    }
    if not database_ok:
        return ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body
        )
    return body


@router.get("")
async def health(request: Request) -> dict[str, str]:
    """General health check endpoint."""
    settings = _settings(request)
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
