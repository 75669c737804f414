"""
FastAPI Main Application
Entry point for the API server
Source: https://fastapi.tiangolo.com/
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from healthcover.api.config import settings
from healthcover.api.routes import (
    claims,
    health,
    insured,
    policies,
    providers,
    subscriptions,
    views,
)
from healthcover.db.change_feed import get_change_feed
from healthcover.db.connection import close_db_connection, init_models
from healthcover.utils.errors import HealthCoverError, InvalidInput, StatusConflict, to_http_error
from healthcover.utils.logging import get_logger, setup_logging

# Setup logging
setup_logging(
    level=settings.LOG_LEVEL,
    log_file=settings.LOG_FILE,
    json_logs=settings.is_production,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore[no-untyped-def]  # noqa: ARG001
    """
    Application lifespan manager.

    Source: https://fastapi.tiangolo.com/advanced/events/
    """
    # Startup
    logger.info(f"Starting application in {settings.ENVIRONMENT} mode")
    logger.info(f"Debug mode: {settings.DEBUG}")
    if settings.DB_CREATE_ALL:
        await init_models()

    yield

    # Shutdown
    logger.info("Shutting down application")
    get_change_feed().close()
    await close_db_connection()
    logger.info("Database connections closed")


app = FastAPI(
    title="HealthCover API",
    description="Health cover subscriptions, eligibility and reimbursement claims with live views",
    version="1.0.0",
    docs_url="/docs" if not settings.is_production else None,  # Disable docs in production
    redoc_url="/redoc" if not settings.is_production else None,
    openapi_url="/openapi.json" if not settings.is_production else None,
    lifespan=lifespan,
)

# CORS middleware
# Source: https://fastapi.tiangolo.com/tutorial/cors/
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_CREDENTIALS,
    allow_methods=settings.CORS_METHODS,
    allow_headers=settings.CORS_HEADERS,
)


@app.exception_handler(HealthCoverError)
async def domain_error_handler(request: Request, exc: HealthCoverError) -> JSONResponse:
    """Present domain errors with the status code of their HTTP counterpart."""
    http_error = to_http_error(exc)
    content: dict[str, Any] = {"detail": http_error.detail, "error": type(exc).__name__}
    if isinstance(exc, InvalidInput) and exc.errors:
        content["errors"] = exc.errors
    if isinstance(exc, StatusConflict):
        content["expected_status"] = exc.expected
        content["actual_status"] = exc.actual

    log = logger.error if http_error.status_code >= 500 else logger.info
    log(f"{request.method} {request.url.path} -> {http_error.status_code}: {exc}")
    return JSONResponse(status_code=http_error.status_code, content=content)


# Include routers
app.include_router(health.router)
app.include_router(policies.router)
app.include_router(subscriptions.router)
app.include_router(insured.router)
app.include_router(claims.router)
app.include_router(providers.router)
app.include_router(views.router)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "name": "HealthCover API",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
        "docs": "/docs" if not settings.is_production else "disabled",
    }


def run() -> None:
    """Serve the API with uvicorn on API_HOST:API_PORT."""
    import uvicorn

    uvicorn.run(
        "healthcover.api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=settings.is_development,
    )
