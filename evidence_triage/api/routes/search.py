"""Search endpoint: vault hybrid search with a local fallback."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from ...api_clients.vault import VaultClient
from ...config.settings import get_settings
from ...store.base import EvidenceRepository
from ...triage.query import search_evidence
from ..deps import get_repository, get_vault_client
from ..responses import dump_all


router = APIRouter(prefix="/vaults/{vault_id}/search", tags=["search"])


class SearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: Optional[str] = None
    top_k: Optional[int] = Field(default=None, alias="topK", ge=1, le=100)


@router.post("")
async def search(
    vault_id: str,
    request: SearchRequest,
    repository: EvidenceRepository = Depends(get_repository),
    vault: VaultClient = Depends(get_vault_client),
):
    """Rank a vault's evidence for a query; every item carries ``searchRelevance``."""
    top_k = request.top_k or get_settings().search_top_k
    outcome = await search_evidence(repository, vault, vault_id, request.query, top_k=top_k)
    return {
        "query": outcome.query,
        "evidence": dump_all(outcome.evidence),
        "chunks": dump_all(outcome.chunks),
        "sources": dump_all(outcome.sources),
        "total": outcome.total,
        "isSearchResult": True,
    }
