"""API route modules."""

from .evidence import router as evidence_router
from .health import router as health_router
from .search import router as search_router
from .tags import router as tags_router
from .vaults import router as vaults_router

__all__ = [
    "evidence_router",
    "health_router",
    "search_router",
    "tags_router",
    "vaults_router",
]
