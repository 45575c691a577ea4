"""
User Management API - FastAPI Application
Application factory wiring security, logging, monitoring and the API routes.
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

import sentry_sdk
import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from usermanager.api.responses import register_exception_handlers
from usermanager.api.router import api_router
from usermanager.config.settings import get_settings
from usermanager.models.database import close_database, init_database
from usermanager.security.middleware import SecurityHeadersMiddleware
from usermanager.utils.health import health_check
from usermanager.utils.logging import setup_logging

settings = get_settings()

setup_logging()
logger = structlog.get_logger(__name__)


def init_sentry() -> None:
    """Enable error tracking when a DSN is configured."""
    if settings.SENTRY_DSN:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            integrations=[
                FastApiIntegration(),
                SqlalchemyIntegration(),
            ],
            traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
            environment=settings.ENVIRONMENT,
        )


def create_app(database_url: Optional[str] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        database_url: Overrides the configured database (used by tests)
    """
    init_sentry()

    # One registry per application so repeated construction never clashes
    metrics_registry = CollectorRegistry()
    request_count = Counter(
        "http_requests_total",
        "Total HTTP requests",
        ["method", "endpoint", "status"],
        registry=metrics_registry
    )
    request_duration = Histogram(
        "http_request_duration_seconds",
        "HTTP request duration",
        ["method", "endpoint"],
        registry=metrics_registry
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting User Management API", version=settings.VERSION)
        await init_database(database_url)

        yield

        logger.info("Shutting down User Management API")
        await close_database()

    docs_enabled = not settings.is_production
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Administrator-authenticated management of user records",
        version=settings.VERSION,
        docs_url=f"{settings.API_PREFIX}/docs" if docs_enabled else None,
        redoc_url=f"{settings.API_PREFIX}/redoc" if docs_enabled else None,
        openapi_url=f"{settings.API_PREFIX}/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )

    app.add_middleware(SecurityHeadersMiddleware, api_prefix=settings.API_PREFIX)

    if settings.is_production:
        app.add_middleware(
            TrustedHostMiddleware,
            allowed_hosts=settings.ALLOWED_HOSTS
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        """Request logging with trace ids and latency metrics."""
        trace_id = str(uuid.uuid4())
        structlog.contextvars.bind_contextvars(trace_id=trace_id)
        start_time = time.time()

        logger.info(
            "HTTP request started",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "HTTP request failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise
        finally:
            structlog.contextvars.unbind_contextvars("trace_id")

        process_time = time.time() - start_time
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)

        request_count.labels(
            method=request.method,
            endpoint=endpoint,
            status=response.status_code
        ).inc()
        request_duration.labels(
            method=request.method,
            endpoint=endpoint
        ).observe(process_time)

        logger.info(
            "HTTP request completed",
            trace_id=trace_id,
            status_code=response.status_code,
            response_time_ms=round(process_time * 1000, 2),
        )

        response.headers["X-Trace-ID"] = trace_id
        return response

    @app.get("/health", tags=["health"])
    async def health_endpoint():
        """
        Health check endpoint for monitoring systems.
        """
        health_status = await health_check()
        return JSONResponse(
            status_code=200 if health_status["healthy"] else 503,
            content={
                "status": "healthy" if health_status["healthy"] else "unhealthy",
                "timestamp": health_status["timestamp"],
                "version": settings.VERSION,
                "environment": settings.ENVIRONMENT,
                "checks": health_status["checks"],
            },
        )

    @app.get("/metrics", tags=["monitoring"])
    async def metrics_endpoint():
        """Prometheus metrics endpoint."""
        return Response(content=generate_latest(metrics_registry), media_type=CONTENT_TYPE_LATEST)

    @app.get("/", tags=["root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "message": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
            "docs_url": app.docs_url,
        }

    app.include_router(api_router, prefix=settings.API_PREFIX)
    register_exception_handlers(app)

    return app
