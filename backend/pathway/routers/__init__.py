"""
API routers for the onboarding engine.

This module contains all API endpoint routers:
- paths: Path import, lookup, personalization and switch validation
- sessions: Session lifecycle, traversal and adaptation
- progress: Per-step progress, blockers, reports and milestones
"""

from fastapi import APIRouter

# Import individual routers
from .paths import router as paths_router
from .sessions import router as sessions_router
from .progress import router as progress_router

# Create main API router
api_router = APIRouter()

# Include all routers with their prefixes
api_router.include_router(
    paths_router,
    prefix="/paths",
    tags=["paths"]
)

api_router.include_router(
    sessions_router,
    prefix="/sessions",
    tags=["sessions"]
)

api_router.include_router(
    progress_router,
    prefix="/progress",
    tags=["progress"]
)

# Export all routers
__all__ = [
    "api_router",
    "paths_router",
    "sessions_router",
    "progress_router"
]
