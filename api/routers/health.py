"""Health check endpoints."""

import time
from datetime import UTC, datetime

import structlog
from fastapi import APIRouter, Request
from pydantic import BaseModel, Field
from sqlalchemy import text

from api.config import get_settings
from api.database import get_session_maker

router = APIRouter(tags=["Health"])
logger = structlog.get_logger()

VERSION = "0.1.0"

# Track server start time for uptime calculation
_server_start_time = time.time()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Health status: healthy, unhealthy")
    timestamp: str = Field(..., description="ISO 8601 timestamp")
    version: str = Field(..., description="API version")
    uptime_seconds: int = Field(..., description="Server uptime in seconds")


class DependencyCheck(BaseModel):
    """Individual dependency check result."""

    status: str = Field(..., description="Status: healthy, unhealthy")
    latency_ms: float | None = Field(None, description="Check latency in milliseconds")
    error: str | None = Field(None, description="Error message if unhealthy")


class ReadyResponse(BaseModel):
    """Readiness check response with dependency status."""

    status: str = Field(..., description="Overall status")
    timestamp: str = Field(..., description="ISO 8601 timestamp")
    version: str = Field(..., description="API version")
    uptime_seconds: int = Field(..., description="Server uptime in seconds")
    active_runs: int = Field(0, description="Audit runs executing in this process")
    checks: dict[str, DependencyCheck] = Field(..., description="Individual dependency checks")


class ApiInfoResponse(BaseModel):
    """API information response."""

    name: str
    version: str
    env: str
    docs: str | None


def _uptime() -> int:
    return int(time.time() - _server_start_time)


@router.get("/api/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Basic liveness check.

    Does not touch dependencies; use /api/ready for that.
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC).isoformat(),
        version=VERSION,
        uptime_seconds=_uptime(),
    )


@router.get("/api/ready", response_model=ReadyResponse)
async def readiness_check(request: Request) -> ReadyResponse:
    """Readiness check: database connectivity and latency."""
    checks: dict[str, DependencyCheck] = {}
    overall_status = "healthy"

    try:
        start = time.perf_counter()
        async with get_session_maker()() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = DependencyCheck(
            status="healthy",
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
        )
    except Exception as e:
        logger.warning("database_health_check_failed", error=str(e))
        checks["database"] = DependencyCheck(status="unhealthy", error=str(e))
        overall_status = "unhealthy"

    pipeline = getattr(request.app.state, "pipeline", None)

    return ReadyResponse(
        status=overall_status,
        timestamp=datetime.now(UTC).isoformat(),
        version=VERSION,
        uptime_seconds=_uptime(),
        active_runs=pipeline.active_runs if pipeline is not None else 0,
        checks=checks,
    )


@router.get("/", response_model=ApiInfoResponse)
async def root() -> ApiInfoResponse:
    """Root endpoint with API information."""
    settings = get_settings()
    return ApiInfoResponse(
        name="Digital Audit API",
        version=VERSION,
        env=settings.env,
        docs="/docs" if settings.debug else None,
    )
