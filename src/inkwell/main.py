"""FastAPI application factory and main entry point."""
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from inkwell.core.config import settings
from inkwell.core.database import check_database_connection, close_database
from inkwell.core.exceptions import AppError
from inkwell.core.logging import configure_logging, get_logger
from inkwell.core.middleware import RequestIDMiddleware
from inkwell.core.tracing import configure_tracing, instrument_fastapi_app
from inkwell.schemas.common import error_envelope, iso_now

# Configure logging on module import
configure_logging()
logger = get_logger(__name__)

SERVICE_NAME = "inkwell-api"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan context manager for startup/shutdown events."""
    logger.info("Starting inkwell API", version=settings.app_version, environment=settings.environment)
    configure_tracing()

    yield

    logger.info("Shutting down inkwell API")
    await close_database()


def _validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    return [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]


def register_exception_handlers(app: FastAPI) -> None:
    """Map every failure onto the error envelope."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Request failed", path=request.url.path, error=exc.message)
        else:
            logger.warning(
                "Request rejected", path=request.url.path, status_code=exc.status_code, error=exc.message
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(exc.status_code, exc.message, request.url.path, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = _validation_errors(exc)
        logger.warning("Validation failed", path=request.url.path, errors=len(errors))
        return JSONResponse(
            status_code=400,
            content=error_envelope(400, "Validation failed", request.url.path, errors),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", path=request.url.path, error_type=type(exc).__name__)
        return JSONResponse(
            status_code=500,
            content=error_envelope(500, "Internal server error", request.url.path),
        )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="inkwell API",
        description="Blogging backend: users, posts, comments, likes and uploads",
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)
    register_exception_handlers(app)
    instrument_fastapi_app(app)

    @app.get("/health", tags=["health"], status_code=200)
    async def health_check() -> JSONResponse:
        """Health check with database diagnostics.

        Returns 200 when the database answers, 503 otherwise.
        """
        db_start = time.time()
        db_healthy = await check_database_connection()
        db_response_time = round((time.time() - db_start) * 1000, 2)

        overall_status = "healthy" if db_healthy else "degraded"
        logger.info("Health check completed", status=overall_status, duration_ms=db_response_time)

        body = {
            "status": overall_status,
            "service": SERVICE_NAME,
            "version": settings.app_version,
            "timestamp": iso_now(),
            "checks": {
                "database": {
                    "status": "healthy" if db_healthy else "unhealthy",
                    "response_time_ms": db_response_time,
                    "timestamp": iso_now(),
                },
            },
        }
        return JSONResponse(status_code=200 if db_healthy else 503, content=body)

    logger.info("FastAPI application created", cors_origins=settings.cors_origins_list)

    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "inkwell.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=not settings.is_production,
        log_config=None,  # Use our structlog config
    )
