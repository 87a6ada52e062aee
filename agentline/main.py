"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agentline.api.deps import build_api_clients, build_job_queue_worker, close_api_clients
from agentline.api.v1 import router as api_v1_router
from agentline.api.v1.schemas.common import HealthResponse
from agentline.config import get_settings
from agentline.core.exceptions import AppException
from agentline.core.logging import configure_logging, get_logger
from agentline.infrastructure.database.connection import close_db, init_db
from agentline.infrastructure.scheduler import (
    get_scheduler_status,
    schedule_queue_worker,
    start_scheduler,
    stop_scheduler,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()

    # Startup
    configure_logging(settings.log_level, json_logs=settings.log_json)
    logger.info("Starting application", version=settings.app_version, environment=settings.environment)
    await init_db()

    for name, client in build_api_clients(settings).items():
        setattr(app.state, name, client)

    start_scheduler()
    if settings.queue_worker_interval_seconds > 0:

        async def run_queue_pass() -> None:
            worker = build_job_queue_worker(app.state.retell, app.state.telephony, settings)
            await worker.run_pass()

        schedule_queue_worker(run_queue_pass, settings.queue_worker_interval_seconds)

    yield

    # Shutdown
    logger.info("Shutting down application")
    stop_scheduler()
    await close_api_clients(app.state)
    await close_db()


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=exc.message, details=exc.details)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, **({"details": exc.details} if exc.details else {})},
    )


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(AppException, app_exception_handler)

    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        scheduler_status = get_scheduler_status()
        return HealthResponse(
            status="healthy",
            version=settings.app_version,
            scheduler={
                "running": scheduler_status["running"],
                "jobs_count": scheduler_status["job_count"],
            },
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "agentline.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
