"""Health check endpoints."""

from datetime import UTC, datetime

from fastapi import APIRouter, status
from pydantic import BaseModel

from reelsmith import __version__
from reelsmith.api.deps import PipelineDep
from reelsmith.config import settings
from reelsmith.db.session import check_db
from reelsmith.logging import get_logger

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str
    components: dict[str, str] | None = None


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    database: bool
    components: dict[str, bool] | None = None


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Basic health check endpoint that verifies the API is running.",
)
async def health_check() -> HealthResponse:
    """Basic health check - is the API up? Also lists the configured providers."""
    return HealthResponse(
        status="ok",
        version=__version__,
        timestamp=datetime.now(UTC).isoformat(),
        components={
            "llm": settings.llm_provider,
            "video_gen": settings.video_gen_provider,
        },
    )


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Checks the database, providers, ffmpeg and blob store.",
)
async def readiness_check(pipeline: PipelineDep) -> ReadinessResponse:
    """Comprehensive readiness check including dependencies."""
    database_ok = check_db()
    components = await pipeline.health_check()

    return ReadinessResponse(
        ready=database_ok and all(components.values()),
        database=database_ok,
        components=components,
    )


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness check",
    description="Simple liveness check for Kubernetes.",
)
async def liveness_check() -> dict[str, str]:
    """Kubernetes liveness check: is the process alive?"""
    return {"status": "alive"}
