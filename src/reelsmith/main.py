"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from reelsmith import __version__
from reelsmith.api.routes import health, progress, videos
from reelsmith.config import settings
from reelsmith.db.session import init_db
from reelsmith.exceptions import NotFoundError
from reelsmith.logging import get_logger, setup_logging
from reelsmith.services.broadcaster import ProgressBroadcaster
from reelsmith.services.pipeline import create_pipeline

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info("application_starting", version=__version__)

    settings.output_dir.mkdir(parents=True, exist_ok=True)
    settings.temp_dir.mkdir(parents=True, exist_ok=True)

    try:
        init_db()
        logger.info("database_connected")
    except Exception as e:
        logger.error("database_connection_failed", error=str(e))
        # Don't raise - let health checks report the issue

    broadcaster = ProgressBroadcaster()
    app.state.broadcaster = broadcaster
    app.state.pipeline = create_pipeline(broadcaster)

    yield

    # Shutdown: let in-flight tasks finish
    logger.info("application_shutting_down", running_tasks=app.state.pipeline.running_count)
    await app.state.pipeline.drain()


# Create FastAPI app
app = FastAPI(
    title="Reelsmith",
    description="Prompt-to-video generation service",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"success": False, "error": "not_found", "message": str(exc)},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = "; ".join(str(err.get("msg", "")) for err in exc.errors())
    return JSONResponse(
        status_code=422,
        content={"success": False, "error": "validation_error", "message": messages},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_request_error", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "internal_error", "message": str(exc)},
    )


# Register routers
app.include_router(health.router)
app.include_router(videos.router, prefix="/api")
app.include_router(progress.router)

# Composites kept locally (no blob store) are served from here
app.mount("/output", StaticFiles(directory=settings.output_dir, check_dir=False), name="output")


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Root endpoint redirect to docs."""
    return {
        "name": "Reelsmith",
        "version": __version__,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "reelsmith.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
