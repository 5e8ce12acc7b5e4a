"""Civic Projects API - Main Application Module.

This module initializes the FastAPI application with proper configuration,
middleware, routing, and lifecycle management for the project transparency
service.
"""

import json
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as DatabaseTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.cache import CacheClient
from app.core.config import ConfigValidator, LogFormatEnum, settings
from app.core.storage import S3ObjectStore
from app.database import AsyncSessionLocal, engine
from app.domains.reference.service import seed_tags
from models import Base

logger = logging.getLogger(__name__)

SIMPLE_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line; tracebacks go in ``exc_info``."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record),
            "logger": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging() -> None:
    """Configure root logging from ``log_level`` and ``log_format``."""
    handler = logging.StreamHandler()
    if settings.log_format == LogFormatEnum.json:
        handler.setFormatter(JsonLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(SIMPLE_LOG_FORMAT))
    logging.basicConfig(level=settings.log_level.value, handlers=[handler], force=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle events."""
    # Startup
    logger.info("Starting %s %s", settings.app_name, settings.version)
    ConfigValidator.validate_required_settings()
    app.state.cache = CacheClient()
    app.state.object_store = S3ObjectStore()

    # Development mode: Auto-create tables if they don't exist
    # Production: Use Alembic migrations (alembic upgrade head)
    if settings.is_development:
        logger.info("Development mode: creating/updating database tables")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        async with AsyncSessionLocal() as session:
            await seed_tags(session)
    else:
        logger.info("Use 'alembic upgrade head' to manage the database schema")

    yield

    # Shutdown
    logger.info("Shutting down %s", settings.app_name)
    await app.state.cache.close()
    await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    setup_logging()
    app = FastAPI(
        title=settings.app_name,
        description="Public infrastructure projects with progress, media and citizen feedback",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # Add middleware
    setup_middleware(app)

    # Add exception handlers
    setup_exception_handlers(app)

    # Include routers
    setup_routers(app)

    return app


def setup_middleware(app: FastAPI):
    """Configure application middleware."""
    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request ID middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def error_response(
    request: Request,
    status_code: int,
    message: str,
    error_code: str,
    details=None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "error",
            "message": message,
            "error_code": error_code,
            "details": details,
            "timestamp": datetime.now(UTC).isoformat(),
            "request_id": getattr(request.state, "request_id", None),
        },
    )


def format_validation_errors(errors) -> str:
    """One message listing every failed field."""
    parts = []
    for error in errors:
        loc = [
            str(part)
            for part in error.get("loc", ())
            if part not in ("body", "query", "path", "header")
        ]
        field = ".".join(loc) or "request"
        parts.append(f"{field}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts) or "Invalid request"


def setup_exception_handlers(app: FastAPI):
    """Configure global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 204:
            return Response(status_code=204)

        # Handle custom exceptions that have structured detail
        if isinstance(exc.detail, dict) and "message" in exc.detail:
            message = exc.detail["message"]
            error_code = exc.detail.get("error_code", "HTTP_ERROR")
            details = exc.detail.get("details")
        else:
            message = str(exc.detail) if exc.detail else "An error occurred"
            error_code = "HTTP_ERROR"
            details = None

        response = error_response(request, exc.status_code, message, error_code, details)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = []
        for error in exc.errors():
            error_dict = {
                "loc": list(error.get("loc", [])),
                "msg": str(error.get("msg", "Validation error")),
                "type": error.get("type", "value_error"),
            }
            errors.append(error_dict)

        return error_response(
            request, 400, format_validation_errors(errors), "BAD_REQUEST", errors
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning("Integrity error: %s", exc.orig)
        return error_response(request, 409, "Resource already exists", "CONFLICT")

    @app.exception_handler(DatabaseTimeoutError)
    async def database_timeout_handler(request: Request, exc: DatabaseTimeoutError):
        logger.error("Database timeout: %s", exc)
        return error_response(request, 504, "Database timeout", "DATABASE_TIMEOUT")

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Database error")
        return error_response(request, 500, "Database error", "DATABASE_ERROR")

    @app.exception_handler(ConnectionRefusedError)
    async def connection_refused_handler(request: Request, exc: ConnectionRefusedError):
        logger.error("Connection refused: %s", exc)
        return error_response(request, 503, "Service unavailable", "SERVICE_UNAVAILABLE")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(request, 500, "Something went wrong", "INTERNAL_ERROR")


def setup_routers(app: FastAPI):
    """Configure application routers."""
    # Import routers
    from app.domains.comment.controller import router as comment_router
    from app.domains.media.controller import router as media_router
    from app.domains.progress.controller import router as progress_router
    from app.domains.project.controller import router as project_router
    from app.domains.reaction.controller import router as reaction_router
    from app.domains.reference.controller import routers as reference_routers
    from app.domains.report.controller import router as report_router
    from app.domains.user.controller import router as user_router

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        db_status = "healthy"
        try:
            async with AsyncSessionLocal() as session:
                await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Health check database probe failed: %s", e)
            db_status = "unhealthy"

        return JSONResponse(
            status_code=200 if db_status == "healthy" else 503,
            content={
                "status": "healthy" if db_status == "healthy" else "degraded",
                "version": settings.version,
                "environment": settings.environment.value,
                "timestamp": datetime.now(UTC).isoformat(),
                "services": {
                    "database": db_status,
                    "object_store": settings.storage_type,
                    "cache": "enabled" if settings.cache_enabled else "disabled",
                },
            },
        )

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "docs_url": "/docs" if settings.is_development else None,
        }

    # Include domain routers
    app.include_router(user_router)
    app.include_router(project_router)
    app.include_router(progress_router)
    app.include_router(comment_router)
    app.include_router(reaction_router)
    app.include_router(report_router)
    app.include_router(media_router)
    for router in reference_routers:
        app.include_router(router)


# Create the application instance
app = create_app()


def main():
    """Entry point for running the application directly."""
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.value.lower(),
    )


if __name__ == "__main__":
    main()
