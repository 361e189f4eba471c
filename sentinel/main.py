"""
Main application for Global Sentinel.

This module sets up the FastAPI application, wires the core components
to an explicitly constructed store handle, and maps core errors to HTTP.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from sentinel.core.config import settings
from sentinel.core.database import Database
from sentinel.core.errors import InvalidVoteError, SentinelError, ValidationError
from sentinel.core.logging import logger
from sentinel.api import health, ingest, threats, vote
from sentinel.api.dependencies import get_api_key
from sentinel.services.credibility import CredibilityPolicy
from sentinel.services.ingestion import IngestionPipeline
from sentinel.services.threat_store import ThreatStore
from sentinel.services.vote_aggregator import VoteAggregator

# (router, prefix, tag, requires API key)
ROUTES = (
    (ingest.router, "/api/ingest", "Ingest", True),
    (vote.router, "/api/vote", "Vote", False),
    (threats.router, "/api/threats", "Threats", False),
    (health.router, "/api/health", "Health", False),
)


def _error_response(exc: SentinelError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.to_dict()},
    )


def request_error(request: Request, exc: RequestValidationError) -> SentinelError:
    """
    Translate a body or parameter that failed FastAPI's own parsing into the
    core error of the route it was sent to.
    """
    problems = [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "message": error.get("msg", ""),
            "type": error.get("type"),
        }
        for error in exc.errors()
    ]
    summary = "; ".join(f"{'.'.join(p['loc'])}: {p['message']}" for p in problems)
    if request.url.path.startswith("/api/vote"):
        return InvalidVoteError(f"Malformed vote request: {summary}", reason="malformed_request", errors=problems)
    return ValidationError(
        f"Malformed request: {summary}",
        reason=ValidationError.SCHEMA_VIOLATION,
        errors=problems,
    )


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(SentinelError)
    async def sentinel_error_handler(request: Request, exc: SentinelError):
        """Render core errors as ``{success: false, error: {kind, reason, message, ...}}``."""
        if exc.status_code >= 500:
            logger.error(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        error = request_error(request, exc)
        logger.warning(f"Rejected {request.method} {request.url.path}: {error.message}")
        return _error_response(error)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": {"kind": "internal_error", "reason": None, "message": "Internal server error"},
            },
        )


def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        database: Store handle to use. Defaults to one built from settings.

    Returns:
        Configured application. The store is opened on startup and closed on shutdown.
    """
    database = database or Database()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION}")
        database.init()

        policy = CredibilityPolicy.from_settings()
        store = ThreatStore(database)
        app.state.database = database
        app.state.store = store
        app.state.pipeline = IngestionPipeline(store, policy)
        app.state.aggregator = VoteAggregator(store, policy)

        try:
            yield
        finally:
            logger.info(f"Stopping {settings.PROJECT_NAME}")
            database.close()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description=settings.DESCRIPTION,
        version=settings.VERSION,
        lifespan=lifespan,
    )

    # The dashboard is served from another origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    _register_error_handlers(app)

    for router, prefix, tag, protected in ROUTES:
        app.include_router(
            router,
            prefix=prefix,
            tags=[tag],
            dependencies=[Depends(get_api_key)] if protected else [],
        )

    @app.get("/", tags=["Root"])
    async def index():
        """Service name, version and route prefixes."""
        return {
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "description": settings.DESCRIPTION,
            "routes": [prefix for _, prefix, _, _ in ROUTES],
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "sentinel.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
    )
