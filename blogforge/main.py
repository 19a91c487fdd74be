"""FastAPI application entry point.

Deployment Requirements:
- Binds to PORT from environment variable
- Health endpoint at /health for platform health checks
- Watchman registered on the scheduler at startup
- All logs to stdout/stderr

Error Logging Requirements:
- Log all incoming requests with method, path, request_id
- Log request body at DEBUG level (sanitize sensitive fields)
- Log response status and timing for every request
- Return structured error responses: {"error": str, "code": str, "request_id": str}
- Log 4xx errors at WARNING, 5xx at ERROR
"""

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from blogforge.api.v1 import router as api_v1_router
from blogforge.api.v1.endpoints import images
from blogforge.core.config import get_settings
from blogforge.core.database import db_manager
from blogforge.core.logging import get_logger, setup_logging
from blogforge.core.scheduler import scheduler_manager
from blogforge.integrations.fal import close_fal, init_fal
from blogforge.integrations.gemini import close_gemini, init_gemini
from blogforge.integrations.s3 import close_s3, init_s3
from blogforge.integrations.tavily import close_tavily, init_tavily
from blogforge.services.blog_generation import (
    BlogGenerationPipeline,
    dispatch_generation,
    running_generations,
)
from blogforge.services.watchman import Watchman, register_watchman

setup_logging()
logger = get_logger(__name__)

SENSITIVE_FIELDS = {
    "password",
    "token",
    "secret",
    "api_key",
    "authorization",
}


def sanitize_body(body: Any) -> Any:
    """Redact sensitive fields from request body for logging."""
    if not isinstance(body, dict):
        return body
    sanitized: dict[str, Any] = {}
    for key, value in body.items():
        if key.lower() in SENSITIVE_FIELDS:
            sanitized[key] = "****"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_body(value)
        else:
            sanitized[key] = value
    return sanitized


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all incoming requests with timing and request_id."""

    async def dispatch(self, request: Request, call_next: Any) -> Any:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.monotonic()
        method = request.method
        path = request.url.path

        logger.info(
            "Request started",
            extra={
                "request_id": request_id,
                "method": method,
                "path": path,
                "query_params": str(request.query_params) if request.query_params else None,
            },
        )

        if method not in ("GET", "HEAD", "OPTIONS") and logger.isEnabledFor(logging.DEBUG):
            body = await request.body()
            if body:
                try:
                    logger.debug(
                        "Request body",
                        extra={"request_id": request_id, "body": sanitize_body(json.loads(body))},
                    )
                except (json.JSONDecodeError, UnicodeDecodeError):
                    logger.debug(
                        "Request body (non-JSON)",
                        extra={"request_id": request_id, "body_length": len(body)},
                    )

        response = await call_next(request)

        duration_ms = (time.monotonic() - start_time) * 1000
        status_code = response.status_code
        response.headers["X-Request-ID"] = request_id

        log_extra = {
            "request_id": request_id,
            "method": method,
            "path": path,
            "status_code": status_code,
            "duration_ms": round(duration_ms, 2),
        }
        if status_code >= 500:
            logger.error("Request failed", extra=log_extra)
        elif status_code >= 400:
            logger.warning("Request error", extra=log_extra)
        else:
            logger.info("Request completed", extra=log_extra)

        return response


async def start_watchman() -> Watchman:
    """Build the watchman over the global clients and put it on the scheduler."""
    pipeline = BlogGenerationPipeline(
        gemini=await init_gemini(),
        tavily=await init_tavily(),
        fal=await init_fal(),
        storage=await init_s3(),
    )
    watchman = Watchman(dispatcher=lambda payload: dispatch_generation(pipeline, payload))
    job_id = register_watchman(scheduler_manager, watchman)
    if job_id:
        logger.info("Watchman scheduled", extra={"job_id": job_id})
    return watchman


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager for startup/shutdown."""
    settings = get_settings()
    logger.info(
        "Starting application",
        extra={
            "app_name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
        },
    )

    try:
        db_manager.init_db()
        logger.info("Database initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    gemini = await init_gemini()
    if not gemini.available:
        logger.warning("Gemini not configured (missing GEMINI_API_KEY)")
    tavily = await init_tavily()
    if not tavily.available:
        logger.warning("Tavily not configured (missing TAVILY_API_KEY)")
    fal = await init_fal()
    if not fal.available:
        logger.info("fal.ai not configured, featured images disabled")
    await init_s3()

    await start_watchman()
    scheduler_manager.start()
    logger.info("Scheduler started")

    yield

    logger.info("Shutting down application")
    scheduler_manager.stop(wait=True)
    logger.info("Scheduler stopped")

    await close_fal()
    await close_tavily()
    await close_gemini()
    await close_s3()
    await db_manager.close()
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)

    cors_origins: list[str] = ["*"]
    if settings.app_url:
        cors_origins = [settings.app_url]
        logger.info("CORS configured for app origin", extra={"allowed_origins": cors_origins})

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle validation errors with structured response."""
        request_id = getattr(request.state, "request_id", "unknown")
        errors = exc.errors()
        error_msg = "; ".join(
            f"{'.'.join(str(loc) for loc in e['loc'])}: {e['msg']}" for e in errors
        )
        logger.warning("Validation error", extra={"request_id": request_id, "errors": error_msg})
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": error_msg,
                "code": "VALIDATION_ERROR",
                "request_id": request_id,
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected errors with structured response."""
        request_id = getattr(request.state, "request_id", "unknown")
        logger.error(
            "Unhandled exception",
            extra={
                "request_id": request_id,
                "error_type": type(exc).__name__,
                "error_message": str(exc),
            },
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "An internal error occurred. Please try again later.",
                "code": "INTERNAL_ERROR",
                "request_id": request_id,
            },
        )

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/health/db", tags=["Health"])
    async def database_health() -> dict[str, str | bool]:
        """Check database connectivity."""
        is_healthy = await db_manager.check_connection()
        return {"status": "ok" if is_healthy else "error", "database": is_healthy}

    @app.get("/health/scheduler", tags=["Health"])
    async def scheduler_health() -> dict[str, Any]:
        """Scheduler state, registered jobs and in-flight generations."""
        health = scheduler_manager.check_health()
        health["running_generations"] = running_generations()
        return health

    app.include_router(api_v1_router, prefix="/api/v1")
    app.include_router(images.router, prefix="/api/images", tags=["Images"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "blogforge.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
