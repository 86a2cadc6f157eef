"""
FastAPI application for evidence triage.

Provides REST endpoints for:
- Vault listing and creation
- Evidence upload, listing, detail, delete and classification
- Tag editing
- Search
- Health checks
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..api_clients.base import APIError, ConfigurationError
from ..config.settings import get_settings
from ..observability.tracing import configure_langsmith, get_tracer
from ..triage.errors import StillProcessingError, TriageError
from .routes import (
    evidence_router,
    health_router,
    search_router,
    tags_router,
    vaults_router,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    configure_langsmith()
    yield
    # Shutdown (nothing to clean up)


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def register_exception_handlers(app: FastAPI) -> None:
    """Map the triage error taxonomy onto JSON error responses."""

    @app.exception_handler(StillProcessingError)
    async def still_processing(request: Request, exc: StillProcessingError):
        return _error(exc.status_code, str(exc), status=exc.status)

    @app.exception_handler(TriageError)
    async def triage_error(request: Request, exc: TriageError):
        return _error(exc.status_code, str(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
            message = f"Invalid request: {location} {errors[0].get('msg', '')}".strip()
        else:
            message = "Invalid request"
        return _error(400, message)

    @app.exception_handler(ConfigurationError)
    async def configuration_error(request: Request, exc: ConfigurationError):
        logger.error(f"Configuration error on {request.url.path}: {exc}")
        return _error(500, str(exc))

    @app.exception_handler(APIError)
    async def remote_error(request: Request, exc: APIError):
        logger.error(f"Remote call failed on {request.url.path}: {exc}")
        get_tracer().log_error(exc, {"path": request.url.path, "status_code": exc.status_code})
        return _error(500, str(exc))

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.url.path}: {exc}")
        get_tracer().log_error(exc, {"path": request.url.path})
        return _error(500, "Internal server error")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Evidence Triage API",
        description="Upload, classify and search litigation evidence stored in Case.dev vaults",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include routers
    app.include_router(health_router)
    app.include_router(vaults_router)
    app.include_router(evidence_router)
    app.include_router(tags_router)
    app.include_router(search_router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "service": "evidence-triage",
            "version": "0.1.0",
            "docs": "/docs",
        }

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "evidence_triage.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
