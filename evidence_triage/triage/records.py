"""Single-record operations: detail view and delete."""

import logging
from dataclasses import dataclass
from typing import Optional

from ..api_clients.vault import VaultClient
from ..schemas.evidence import EvidenceItem, IngestionStatus
from ..store.base import EvidenceRepository
from .errors import EvidenceNotFoundError, best_effort
from .reconciler import REMOTE_COMPLETED, IngestionReconciler
from .sync import sync_vault

logger = logging.getLogger(__name__)


@dataclass
class EvidenceDetail:
    evidence: EvidenceItem
    download_url: Optional[str] = None


async def get_evidence_detail(
    reconciler: IngestionReconciler,
    vault_id: str,
    evidence_id: str,
) -> EvidenceDetail:
    """
    Fetch one record, classifying it inline when the vault is done with it.

    A record that is not ``completed`` is classified when the vault reports
    ingestion ``completed`` or the record is an image. Failures there only
    leave the record as it was. Images also get a download URL for preview.

    Raises:
        EvidenceNotFoundError: Unknown record.
    """
    repository = reconciler.repository
    vault = reconciler.vault

    evidence = repository.find(vault_id, evidence_id)
    if evidence is None:
        raise EvidenceNotFoundError()

    status = None
    if evidence.ingestion_status != IngestionStatus.COMPLETED or evidence.is_image:
        status = await best_effort(
            f"Fetching status of {evidence.remote_object_id}",
            vault.get_object(vault_id, evidence.remote_object_id),
        )

    if (
        status is not None
        and evidence.ingestion_status != IngestionStatus.COMPLETED
        and (status.ingestion_status == REMOTE_COMPLETED or evidence.is_image)
    ):
        logger.info(f"[Detail] Classifying {evidence.filename} inline")
        result = await best_effort(
            f"Inline classification of {evidence.id}",
            reconciler.reconcile(vault_id, evidence.id),
        )
        if result is not None:
            evidence = result.evidence

    download_url = status.download_url if status is not None and evidence.is_image else None
    return EvidenceDetail(evidence=evidence, download_url=download_url)


@dataclass
class DeleteResult:
    evidence_id: str
    object_id: str
    remote_deleted: bool


async def delete_evidence(
    repository: EvidenceRepository,
    vault: VaultClient,
    vault_id: str,
    evidence_id: str,
) -> DeleteResult:
    """
    Delete a record locally and, best-effort, from the vault.

    An empty local cache is resynced first so records created before a
    fresh deploy can still be resolved.

    Raises:
        EvidenceNotFoundError: Unknown record.
    """
    if not repository.list_all(vault_id):
        await sync_vault(repository, vault, vault_id)

    evidence = repository.find(vault_id, evidence_id)
    if evidence is None:
        raise EvidenceNotFoundError()

    # The vault object may already be gone
    remote = await best_effort(
        f"Deleting vault object {evidence.remote_object_id}",
        vault.delete_object(vault_id, evidence.remote_object_id),
    )
    repository.delete(vault_id, evidence.id)
    logger.info(f"[Delete] Removed {evidence.filename} ({evidence.id}) from vault {vault_id}")

    return DeleteResult(
        evidence_id=evidence.id,
        object_id=evidence.remote_object_id,
        remote_deleted=remote is not None,
    )
