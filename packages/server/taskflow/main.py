"""
TaskFlow API Server

Entry point for the FastAPI application.
"""

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskflow.core.config import get_settings
from taskflow.core.database import init_db
from taskflow.core.errors import TaskFlowError, taskflow_error_handler
from taskflow.core.middleware import CSRFMiddleware, SecurityHeadersMiddleware
from taskflow.core.redis import close_redis, get_redis
from taskflow.api.v1 import router as api_v1_router
from taskflow.api.v1.auth import router as auth_router

settings = get_settings()
log = structlog.get_logger()


def configure_logging(level: str = "info", fmt: str = "text") -> None:
    """Configure structlog with the specified level and format."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            structlog.get_level_from_name(level)
        ),
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="TaskFlow",
        description="Multi-tenant organizations, projects and tasks.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Middleware (order matters — outermost first)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(CSRFMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-CSRF-Token"],
    )

    # Domain errors raised by read paths
    app.add_exception_handler(TaskFlowError, taskflow_error_handler)

    # Auth routes (not org-scoped)
    app.include_router(auth_router, prefix="/auth", tags=["Authentication"])

    # API routes
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check():
        """Readiness check endpoint for startup probes."""
        redis = await get_redis()
        await redis.ping()
        return {"status": "ready"}

    @app.on_event("startup")
    async def on_startup():
        if settings.debug:
            await init_db()
        log.info("TaskFlow starting", debug=settings.debug)

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("TaskFlow shutting down")
        await close_redis()

    return app


app = create_app()


def run() -> None:
    """CLI entry point: serve the API with uvicorn."""
    configure_logging(settings.log_level, settings.log_format)
    uvicorn.run(
        "taskflow.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
