"""Evidence cache repositories."""

from functools import lru_cache

from ..config.settings import get_settings
from .base import EvidenceRepository
from .json_store import JsonEvidenceRepository


@lru_cache()
def get_repository() -> EvidenceRepository:
    """Get the process-wide evidence repository for the configured backend."""
    settings = get_settings()
    if settings.evidence_backend == "firestore":
        from .firestore_store import FirestoreEvidenceRepository

        return FirestoreEvidenceRepository()
    return JsonEvidenceRepository(settings.evidence_file)


__all__ = [
    "EvidenceRepository",
    "JsonEvidenceRepository",
    "get_repository",
]
