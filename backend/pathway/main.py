"""
FastAPI application for the Pathway onboarding engine.

Exposes path personalization, session lifecycle, progress tracking,
adaptation and validation under ``settings.API_V1_STR``.
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional
import json
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import TypeAdapter

from pathway.core.config import settings
from pathway.core.database import DatabaseManager, check_database_connection
from pathway.core.exceptions import NotFound, OnboardingError, StorageError, ValidationError
from pathway.routers import api_router
from pathway.routers.deps import get_onboarding_service
from pathway.schemas import PathDefinition


# Configure logging
logger = logging.getLogger(__name__)


def load_seed_paths(path: str) -> int:
    """Import every path definition in a JSON file. Returns the number imported."""
    with open(path, encoding="utf-8") as f:
        definitions = TypeAdapter(List[PathDefinition]).validate_python(json.load(f))
    service = get_onboarding_service()
    for definition in definitions:
        service.import_path(definition)
    logger.info(f"Loaded {len(definitions)} seed paths from {path}")
    return len(definitions)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    logger.info(f"Starting {settings.PROJECT_NAME} {settings.VERSION}")
    DatabaseManager.create_all_tables()
    if settings.SEED_PATHS_FILE:
        load_seed_paths(settings.SEED_PATHS_FILE)
    
    yield
    
    get_onboarding_service().events.shutdown()
    logger.info(f"Shutting down {settings.PROJECT_NAME}")


def _error_body(exc: OnboardingError) -> Dict[str, Any]:
    body: Dict[str, Any] = {"detail": exc.message, "error": type(exc).__name__}
    if exc.details:
        body["details"] = exc.details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """Map engine errors onto HTTP status codes."""
    
    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=_error_body(exc))
    
    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_body(exc))
    
    @app.exception_handler(StorageError)
    async def storage_handler(request: Request, exc: StorageError) -> JSONResponse:
        logger.error(f"Storage failure on {request.method} {request.url.path}: {exc} ({exc.operation})")
        body = {"detail": exc.message, "error": "StorageError", "operation": exc.operation}
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)


def create_app(lifespan_handler: Optional[Any] = lifespan) -> FastAPI:
    """
    Build the FastAPI application.
    
    Args:
        lifespan_handler: Startup/shutdown handler; tests pass None and
            manage the schema themselves
    """
    if settings.DEBUG:
        logging.basicConfig(level=logging.DEBUG)
    
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description=settings.DESCRIPTION,
        version=settings.VERSION,
        lifespan=lifespan_handler,
    )
    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.API_V1_STR)
    
    @app.get("/health", tags=["health"])
    def health_check() -> Dict[str, Any]:
        database_ok = check_database_connection()
        return {
            "status": "ok" if database_ok else "degraded",
            "database": "ok" if database_ok else "error",
            "version": settings.VERSION,
        }
    
    return app


app = create_app()
