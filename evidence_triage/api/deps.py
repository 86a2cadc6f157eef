"""FastAPI dependencies for the remote clients, the repository and the reconciler."""

from functools import lru_cache

from fastapi import Depends

from ..api_clients.classifier import ClassificationClient
from ..api_clients.ocr import OCRClient
from ..api_clients.vault import VaultClient
from ..store import get_repository
from ..store.base import EvidenceRepository
from ..triage.reconciler import IngestionReconciler


@lru_cache()
def get_vault_client() -> VaultClient:
    return VaultClient()


@lru_cache()
def get_ocr_client() -> OCRClient:
    return OCRClient()


@lru_cache()
def get_classifier() -> ClassificationClient:
    return ClassificationClient()


def get_reconciler(
    repository: EvidenceRepository = Depends(get_repository),
    vault: VaultClient = Depends(get_vault_client),
    ocr: OCRClient = Depends(get_ocr_client),
    classifier: ClassificationClient = Depends(get_classifier),
) -> IngestionReconciler:
    return IngestionReconciler(repository, vault, ocr, classifier)


__all__ = [
    "get_repository",
    "get_vault_client",
    "get_ocr_client",
    "get_classifier",
    "get_reconciler",
]
