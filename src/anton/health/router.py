"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from anton.catalog.service import count_active_questions
from anton.config import get_settings
from anton.database import get_session
from anton.redis_client import redis_status

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness check. Returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> JSONResponse:
    """Readiness check.

    The attempt store is required; Redis is optional. An empty catalog is
    reported but does not fail readiness, since practice submissions are
    simply rejected until questions are published.
    """
    checks: dict[str, object] = {}
    try:
        checks["active_questions"] = await count_active_questions(db)
        checks["database"] = "ok"
    except SQLAlchemyError as exc:
        checks["database"] = f"error: {exc}"

    checks["redis"] = await redis_status()

    ready = checks["database"] == "ok" and not str(checks["redis"]).startswith("error")
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "degraded", "checks": checks},
    )


@router.get("/version")
async def version() -> dict[str, str]:
    """API version, environment and the daily-question clock settings."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
        "daily_timezone": settings.daily_timezone,
        "daily_reset": f"{settings.daily_reset_hour:02d}:{settings.daily_reset_minute:02d}",
    }
