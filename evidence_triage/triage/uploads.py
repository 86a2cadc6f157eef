"""Upload coordinator: vault upload plus local registration, one file at a time."""

import logging
import mimetypes
from dataclasses import dataclass
from typing import Literal, Optional

import httpx
from pydantic import ValidationError

from ..api_clients.base import APIError, ConfigurationError
from ..api_clients.vault import VaultClient
from ..schemas.evidence import CamelModel, EvidenceItem, IngestionStatus
from ..store.base import EvidenceRepository
from .errors import best_effort

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class IncomingFile:
    """A file received for upload."""

    filename: str
    content: bytes
    content_type: Optional[str] = None


class UploadResult(CamelModel):
    """Per-file upload outcome."""

    filename: str
    status: Literal["uploaded", "failed"]
    evidence_id: Optional[str] = None
    object_id: Optional[str] = None
    error: Optional[str] = None


def resolve_content_type(filename: str, declared: Optional[str]) -> str:
    """Declared content type, else a guess from the filename."""
    if declared and declared != DEFAULT_CONTENT_TYPE:
        return declared
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or declared or DEFAULT_CONTENT_TYPE


async def upload_file(
    repository: EvidenceRepository,
    vault: VaultClient,
    vault_id: str,
    incoming: IncomingFile,
) -> UploadResult:
    """
    Upload one file and register its record as ``processing``.

    Raises:
        APIError: Upload target or byte transfer failed.
    """
    content_type = resolve_content_type(incoming.filename, incoming.content_type)
    target = await vault.get_upload_target(vault_id, incoming.filename, content_type)
    await vault.upload_bytes(target.upload_url, incoming.content, content_type)

    # Ingestion usually starts on its own; the nudge covers stalled pipelines
    await best_effort(
        f"Triggering ingestion for {target.object_id}",
        vault.trigger_ingestion(vault_id, target.object_id),
    )

    record = EvidenceItem.pending(
        object_id=target.object_id,
        filename=incoming.filename,
        content_type=content_type,
        size_bytes=len(incoming.content),
        status=IngestionStatus.PROCESSING,
    )
    repository.put(vault_id, record)
    logger.info(f"[Upload] {incoming.filename} -> vault {vault_id} object {target.object_id}")

    return UploadResult(
        filename=incoming.filename,
        status="uploaded",
        evidence_id=record.id,
        object_id=target.object_id,
    )


async def upload_files(
    repository: EvidenceRepository,
    vault: VaultClient,
    vault_id: str,
    files: list[IncomingFile],
) -> list[UploadResult]:
    """Upload a batch; one file failing never fails the others."""
    results = []
    for incoming in files:
        try:
            results.append(await upload_file(repository, vault, vault_id, incoming))
        except (APIError, ConfigurationError, ValidationError, httpx.HTTPError) as e:
            logger.error(f"[Upload] Failed to upload {incoming.filename} to vault {vault_id}: {e}")
            results.append(
                UploadResult(filename=incoming.filename, status="failed", error=str(e))
            )
    return results
