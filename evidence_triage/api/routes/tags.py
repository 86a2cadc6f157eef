"""Tag editing endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...store.base import EvidenceRepository
from ...triage.errors import EvidenceNotFoundError, InvalidRequestError
from ..deps import get_repository
from ..responses import dump


router = APIRouter(prefix="/vaults/{vault_id}/evidence/{evidence_id}/tags", tags=["tags"])


class ReplaceTagsRequest(BaseModel):
    tags: list[str] = Field(..., description="Complete tag set")


class AddTagRequest(BaseModel):
    tag: str = Field(..., min_length=1)


def _resolve_id(repository: EvidenceRepository, vault_id: str, evidence_id: str) -> str:
    evidence = repository.find(vault_id, evidence_id)
    if evidence is None:
        raise EvidenceNotFoundError()
    return evidence.id


@router.put("")
async def replace_tags(
    vault_id: str,
    evidence_id: str,
    request: ReplaceTagsRequest,
    repository: EvidenceRepository = Depends(get_repository),
):
    """Replace the tag set of a record."""
    record_id = _resolve_id(repository, vault_id, evidence_id)
    evidence = repository.replace_tags(vault_id, record_id, request.tags)
    return {"success": True, "evidence": dump(evidence)}


@router.post("")
async def add_tag(
    vault_id: str,
    evidence_id: str,
    request: AddTagRequest,
    repository: EvidenceRepository = Depends(get_repository),
):
    record_id = _resolve_id(repository, vault_id, evidence_id)
    evidence = repository.add_tag(vault_id, record_id, request.tag)
    return {"success": True, "evidence": dump(evidence)}


@router.delete("")
async def remove_tag(
    vault_id: str,
    evidence_id: str,
    tag: Optional[str] = None,
    repository: EvidenceRepository = Depends(get_repository),
):
    if not tag:
        raise InvalidRequestError("Tag parameter is required")
    record_id = _resolve_id(repository, vault_id, evidence_id)
    evidence = repository.remove_tag(vault_id, record_id, tag)
    return {"success": True, "evidence": dump(evidence)}
