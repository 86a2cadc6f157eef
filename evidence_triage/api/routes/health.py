"""Health check endpoints."""

from fastapi import APIRouter, Depends

from ...api_clients.vault import VaultClient
from ...config.settings import get_settings
from ...store.base import EvidenceRepository
from ...triage.errors import best_effort
from ..deps import get_repository, get_vault_client


router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check():
    """Liveness only; no remote calls."""
    return {"status": "healthy", "service": "evidence-triage"}


@router.get("/ready")
async def readiness_check(
    repository: EvidenceRepository = Depends(get_repository),
    vault: VaultClient = Depends(get_vault_client),
):
    """
    Readiness: the evidence cache is loaded and the vault API answers.

    The vault is only probed when an API key is configured.
    """
    settings = get_settings()
    vault_ids = repository.vault_ids()

    vault_reachable = False
    if settings.is_casedev_configured():
        vaults = await best_effort("Readiness probe of the vault API", vault.list_vaults())
        vault_reachable = vaults is not None

    return {
        "status": "ready" if vault_reachable else "degraded",
        "checks": {
            "casedev_configured": settings.is_casedev_configured(),
            "vault_reachable": vault_reachable,
            "cache_backend": settings.evidence_backend,
            "cached_vaults": len(vault_ids),
            "cached_records": sum(len(repository.list_all(v)) for v in vault_ids),
        },
    }


@router.get("/config")
async def config_info():
    """Settings that shape triage behaviour (no secrets)."""
    settings = get_settings()
    return {
        "api_base": settings.casedev_api_base,
        "llm_model": settings.llm_model,
        "ocr_engine": settings.ocr_engine,
        "evidence_backend": settings.evidence_backend,
        "evidence_file": str(settings.evidence_file) if settings.evidence_backend == "json" else None,
        "classify_retry": {
            "interval": settings.classify_retry_interval,
            "max_attempts": settings.classify_max_attempts,
        },
    }
