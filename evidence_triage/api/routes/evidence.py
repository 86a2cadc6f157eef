"""Evidence endpoints: listing, upload, timeline, detail, delete and classify."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from pydantic import ValidationError

from ...api_clients.vault import VaultClient
from ...schemas.evidence import FilterState
from ...store.base import EvidenceRepository
from ...triage.errors import InvalidRequestError
from ...triage.query import filter_evidence
from ...triage.reconciler import IngestionReconciler
from ...triage.records import delete_evidence, get_evidence_detail
from ...triage.sync import sync_vault
from ...triage.uploads import IncomingFile, upload_files
from ..deps import get_reconciler, get_repository, get_vault_client
from ..responses import dump, dump_all


router = APIRouter(prefix="/vaults/{vault_id}/evidence", tags=["evidence"])


def _split(value: Optional[str]) -> list[str]:
    """Comma-separated query parameter to a list, dropping empties."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


@router.get("")
async def list_evidence(
    vault_id: str,
    sync: bool = False,
    categories: Optional[str] = None,
    tags: Optional[str] = None,
    date_start: Optional[str] = Query(default=None, alias="dateStart"),
    date_end: Optional[str] = Query(default=None, alias="dateEnd"),
    q: Optional[str] = None,
    sort_by: str = Query(default="date", alias="sortBy"),
    sort_order: str = Query(default="desc", alias="sortOrder"),
    repository: EvidenceRepository = Depends(get_repository),
    vault: VaultClient = Depends(get_vault_client),
):
    """
    List a vault's evidence with filters, tag vocabulary and category counts.

    With ``sync=true`` the cache is reconciled against the vault listing
    first.
    """
    try:
        filters = FilterState(
            categories=_split(categories),
            tags=_split(tags),
            date_start=date_start or None,
            date_end=date_end or None,
            search_query=q or "",
            sort_by=sort_by,
            sort_order=sort_order,
        )
    except ValidationError as e:
        raise InvalidRequestError(f"Invalid filter: {e.errors()[0]['msg']}")

    if sync:
        await sync_vault(repository, vault, vault_id)

    evidence = filter_evidence(repository.list_all(vault_id), filters)
    return {
        "evidence": dump_all(evidence),
        "tags": repository.all_tags(vault_id),
        "categoryCounts": repository.category_counts(vault_id),
        "total": len(evidence),
    }


@router.post("")
async def upload_evidence(
    vault_id: str,
    files: Optional[list[UploadFile]] = File(default=None),
    repository: EvidenceRepository = Depends(get_repository),
    vault: VaultClient = Depends(get_vault_client),
):
    """Upload files to the vault; outcomes are reported per file."""
    if not files:
        raise InvalidRequestError("No files provided")

    incoming = [
        IncomingFile(
            filename=f.filename or "upload",
            content=await f.read(),
            content_type=f.content_type,
        )
        for f in files
    ]
    results = await upload_files(repository, vault, vault_id, incoming)
    return {"results": dump_all(results)}


@router.get("/timeline")
async def evidence_timeline(
    vault_id: str,
    repository: EvidenceRepository = Depends(get_repository),
):
    groups = repository.timeline(vault_id)
    return {"groups": dump_all(groups)}


@router.get("/{evidence_id}")
async def get_evidence(
    vault_id: str,
    evidence_id: str,
    reconciler: IngestionReconciler = Depends(get_reconciler),
):
    detail = await get_evidence_detail(reconciler, vault_id, evidence_id)
    return {
        "evidence": dump(detail.evidence),
        "downloadUrl": detail.download_url,
    }


@router.delete("/{evidence_id}")
async def remove_evidence(
    vault_id: str,
    evidence_id: str,
    repository: EvidenceRepository = Depends(get_repository),
    vault: VaultClient = Depends(get_vault_client),
):
    result = await delete_evidence(repository, vault, vault_id, evidence_id)
    return {
        "success": True,
        "message": "Evidence deleted",
        "evidenceId": result.evidence_id,
        "objectId": result.object_id,
    }


@router.post("/{evidence_id}/classify")
async def classify_evidence(
    vault_id: str,
    evidence_id: str,
    reconciler: IngestionReconciler = Depends(get_reconciler),
):
    """
    Run one reconciliation attempt.

    Responds 400 with a ``status`` field while the vault is still
    processing the document; callers retry later.
    """
    result = await reconciler.reconcile(vault_id, evidence_id)
    return {
        "success": True,
        "evidence": dump(result.evidence),
        "classification": dump(result.classification),
    }
