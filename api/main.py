"""FastAPI application factory and main entrypoint."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.config import get_settings
from api.database import dispose_engine, get_session_maker
from api.exceptions import AuditServiceError
from api.logging import setup_logging
from api.metrics import MetricsMiddleware, get_metrics, get_metrics_content_type
from api.schemas.responses import error_body
from api.sentry import init_sentry
from worker.tasks.audit import build_pipeline

# Initialize logging
setup_logging()
logger = structlog.get_logger()

HTTP_ERROR_CODES = {
    status.HTTP_404_NOT_FOUND: ("not_found", "Not found"),
    status.HTTP_405_METHOD_NOT_ALLOWED: ("method_not_allowed", "Method not allowed"),
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the shared clients and the pipeline; drain runs on shutdown."""
    settings = get_settings()
    logger.info("api_starting", env=settings.env, debug=settings.debug, version="0.1.0")

    init_sentry()

    client = httpx.AsyncClient(follow_redirects=True)
    pipeline = build_pipeline(settings, client, get_session_maker())
    app.state.pipeline = pipeline

    yield

    logger.info("api_shutting_down", active_runs=pipeline.active_runs)
    await pipeline.drain(timeout=settings.shutdown_grace_seconds)
    await client.aclose()
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Digital Audit",
        description="Automated website audits delivered as PDF reports",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    # Middleware (order matters - first added = last executed)
    # CORS must be last (first to process)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from api.middleware import LoggingMiddleware, RequestIDMiddleware, SecurityHeadersMiddleware

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    from api.routers import audit, health, setup

    app.include_router(health.router)
    app.include_router(audit.router)
    app.include_router(setup.router)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=get_metrics(), media_type=get_metrics_content_type())

    return app


def register_exception_handlers(app: FastAPI) -> None:
    """Register custom exception handlers."""

    @app.exception_handler(AuditServiceError)
    async def audit_service_error_handler(
        request: Request, exc: AuditServiceError
    ) -> ORJSONResponse:
        logger.warning(
            "application_error",
            error_code=exc.code,
            message=exc.message,
            path=request.url.path,
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.code, exc.message, exc.details),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Routing errors (404, 405) in the same error envelope."""
        code, message = HTTP_ERROR_CODES.get(exc.status_code, ("http_error", str(exc.detail)))
        return ORJSONResponse(
            status_code=exc.status_code,
            content=error_body(code, message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle Pydantic validation errors on path and query parameters."""
        errors = exc.errors()
        first_error = errors[0] if errors else {"msg": "Validation error"}
        field = ".".join(str(loc) for loc in first_error.get("loc", [])[1:])

        logger.warning("request_validation_error", path=request.url.path, field=field)
        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_body(
                "validation_error",
                first_error.get("msg", "Validation error"),
                {"field": field or None},
            ),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
        """Handle unhandled exceptions."""
        logger.error(
            "unhandled_exception",
            exc_info=exc,
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("internal_error", "An unexpected error occurred"),
        )


app = create_app()
