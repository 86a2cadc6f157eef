"""Resync the local evidence cache against a vault's object listing."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from pydantic import ValidationError

from ..api_clients.vault import VaultClient
from ..observability.tracing import TriageTracer, get_tracer
from ..schemas.evidence import EvidenceItem, IngestionStatus
from ..schemas.remote import VaultObject
from ..store.base import EvidenceRepository
from .errors import best_effort

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    """What one resync changed."""

    vault_id: str
    remote_objects: int = 0
    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    restored: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    ok: bool = True

    @property
    def changed(self) -> int:
        return len(self.created) + len(self.updated)


def merge_remote_object(
    existing: Optional[EvidenceItem],
    remote: VaultObject,
) -> Optional[EvidenceItem]:
    """
    Merge one vault object into its local record.

    Rules:
    - A new object becomes a record whose id is the vault object id.
    - Classification mirrored into vault metadata is restored when the
      local record is new or carries no classification.
    - A ``completed`` record never moves back to an earlier status.

    Returns:
        The record to write, or None when nothing changes.
    """
    mirrored = remote.mirrored_classification()

    if existing is None:
        record = EvidenceItem.pending(
            object_id=remote.id,
            filename=remote.filename,
            content_type=remote.content_type,
            size_bytes=remote.size_bytes,
            status=IngestionStatus.from_remote(remote.ingestion_status),
            created_at=remote.created_at,
        )
        if mirrored:
            record = EvidenceItem.model_validate({**record.model_dump(), **mirrored})
        return record

    if mirrored and not existing.has_classification:
        return EvidenceItem.model_validate({**existing.model_dump(), **mirrored})

    if existing.ingestion_status == IngestionStatus.COMPLETED:
        # Remote status may lag behind a local classification
        return None

    status = IngestionStatus.from_remote(remote.ingestion_status)
    if status == existing.ingestion_status:
        return None
    return existing.model_copy(update={"ingestion_status": status})


async def sync_vault(
    repository: EvidenceRepository,
    vault: VaultClient,
    vault_id: str,
    tracer: Optional[TriageTracer] = None,
) -> SyncReport:
    """
    Pull a vault's object listing into the local cache.

    Listing failures are logged and swallowed; the report then has
    ``ok = False`` and the cache is left untouched.
    """
    tracer = tracer or get_tracer()
    report = SyncReport(vault_id=vault_id)

    objects = await best_effort(
        f"Syncing evidence for vault {vault_id}",
        vault.list_objects(vault_id),
    )
    if objects is None:
        report.ok = False
        return report

    report.remote_objects = len(objects)
    new_records: list[EvidenceItem] = []

    for obj in objects:
        existing = repository.find(vault_id, obj.id)
        try:
            merged = merge_remote_object(existing, obj)
        except (ValidationError, ValueError) as e:
            logger.warning(f"[Sync] Skipping vault object {obj.id} in {vault_id}: {e}")
            report.skipped.append(obj.id)
            continue
        if merged is None:
            continue

        if existing is None:
            new_records.append(merged)
            report.created.append(merged.id)
            if merged.has_classification:
                report.restored.append(merged.id)
            continue

        if merged.has_classification and not existing.has_classification:
            report.restored.append(merged.id)
        if merged.ingestion_status != existing.ingestion_status:
            tracer.log_status_transition(
                vault_id=vault_id,
                evidence_id=merged.id,
                from_status=existing.ingestion_status.value,
                to_status=merged.ingestion_status.value,
            )
        repository.put(vault_id, merged)
        report.updated.append(merged.id)

    repository.bulk_put(vault_id, new_records)

    logger.info(
        f"[Sync] Vault {vault_id}: {report.remote_objects} remote objects, "
        f"{len(report.created)} new, {len(report.updated)} updated, "
        f"{len(report.restored)} classifications restored"
    )
    return report
