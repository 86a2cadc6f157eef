"""
Evidence repository: vault id -> evidence id -> EvidenceItem.

The in-memory map is the source of truth for the running process. Every
mutating operation updates it first and then asks the backend to persist;
persistence failures are logged and swallowed by the backends, so a crash
right after a failed write loses that update.
"""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Iterable, Optional

from ..schemas.evidence import (
    EvidenceCategory,
    EvidenceItem,
    TimelineGroup,
    dedupe_tags,
)

logger = logging.getLogger(__name__)


class EvidenceRepository(ABC):
    """Process-local evidence cache with pluggable durable storage."""

    def __init__(self):
        self._vaults: dict[str, dict[str, EvidenceItem]] = self._load()

    @abstractmethod
    def _load(self) -> dict[str, dict[str, EvidenceItem]]:
        """Read every stored record from durable storage."""

    @abstractmethod
    def _persist(
        self,
        vault_id: str,
        upserts: Iterable[EvidenceItem] = (),
        deletes: Iterable[str] = (),
    ) -> None:
        """Write changes to durable storage. Must not raise."""

    def _vault(self, vault_id: str) -> dict[str, EvidenceItem]:
        return self._vaults.setdefault(vault_id, {})

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def put(self, vault_id: str, item: EvidenceItem) -> None:
        """Insert or fully replace a record."""
        self._vault(vault_id)[item.id] = item.model_copy(deep=True)
        self._persist(vault_id, upserts=[item])

    def bulk_put(self, vault_id: str, items: list[EvidenceItem]) -> None:
        """Insert or replace many records with a single persist."""
        if not items:
            return
        vault = self._vault(vault_id)
        for item in items:
            vault[item.id] = item.model_copy(deep=True)
        self._persist(vault_id, upserts=items)

    def get(self, vault_id: str, evidence_id: str) -> Optional[EvidenceItem]:
        item = self._vaults.get(vault_id, {}).get(evidence_id)
        return item.model_copy(deep=True) if item else None

    def find(self, vault_id: str, evidence_id: str) -> Optional[EvidenceItem]:
        """Look up by record id, then by vault object id."""
        item = self.get(vault_id, evidence_id)
        if item:
            return item
        for candidate in self._vaults.get(vault_id, {}).values():
            if candidate.remote_object_id == evidence_id:
                return candidate.model_copy(deep=True)
        return None

    def list_all(self, vault_id: str) -> list[EvidenceItem]:
        """All records of a vault, in unspecified order."""
        return [item.model_copy(deep=True) for item in self._vaults.get(vault_id, {}).values()]

    def patch(self, vault_id: str, evidence_id: str, updates: dict[str, Any]) -> Optional[EvidenceItem]:
        """
        Shallow-merge fields into an existing record.

        Args:
            vault_id: Vault id.
            evidence_id: Record id.
            updates: Field updates keyed by field name.

        Returns:
            The updated record, or None if the record does not exist.
        """
        vault = self._vaults.get(vault_id, {})
        existing = vault.get(evidence_id)
        if existing is None:
            return None
        updated = EvidenceItem.model_validate({**existing.model_dump(), **updates})
        vault[evidence_id] = updated
        self._persist(vault_id, upserts=[updated])
        return updated.model_copy(deep=True)

    def delete(self, vault_id: str, evidence_id: str) -> bool:
        """Remove a record. Returns False (and writes nothing) if absent."""
        vault = self._vaults.get(vault_id, {})
        if evidence_id not in vault:
            return False
        del vault[evidence_id]
        self._persist(vault_id, deletes=[evidence_id])
        return True

    def clear(self, vault_id: str) -> int:
        """Drop every record of a vault. Returns the number removed."""
        vault = self._vaults.pop(vault_id, {})
        if vault:
            self._persist(vault_id, deletes=list(vault))
        return len(vault)

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def bulk_tag_edit(
        self,
        vault_id: str,
        evidence_ids: list[str],
        add_tags: list[str],
        remove_tags: list[str],
    ) -> list[EvidenceItem]:
        """Remove then add tags on many records; unknown ids are skipped."""
        vault = self._vaults.get(vault_id, {})
        updated = []
        for evidence_id in evidence_ids:
            item = vault.get(evidence_id)
            if item is None:
                continue
            tags = [t for t in item.tags if t not in remove_tags]
            item = item.model_copy(update={"tags": dedupe_tags(tags + list(add_tags))})
            vault[evidence_id] = item
            updated.append(item)
        if updated:
            self._persist(vault_id, upserts=updated)
        return [item.model_copy(deep=True) for item in updated]

    def replace_tags(self, vault_id: str, evidence_id: str, tags: list[str]) -> Optional[EvidenceItem]:
        return self.patch(vault_id, evidence_id, {"tags": dedupe_tags(tags)})

    def add_tag(self, vault_id: str, evidence_id: str, tag: str) -> Optional[EvidenceItem]:
        edited = self.bulk_tag_edit(vault_id, [evidence_id], [tag], [])
        return edited[0] if edited else None

    def remove_tag(self, vault_id: str, evidence_id: str, tag: str) -> Optional[EvidenceItem]:
        edited = self.bulk_tag_edit(vault_id, [evidence_id], [], [tag])
        return edited[0] if edited else None

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def vault_ids(self) -> list[str]:
        return sorted(self._vaults)

    def all_tags(self, vault_id: str) -> list[str]:
        """Sorted tag vocabulary of a vault."""
        tags = {tag for item in self._vaults.get(vault_id, {}).values() for tag in item.tags}
        return sorted(tags)

    def category_counts(self, vault_id: str) -> dict[str, int]:
        counts = {category.value: 0 for category in EvidenceCategory}
        for item in self._vaults.get(vault_id, {}).values():
            counts[item.category.value] += 1
        return counts

    def timeline(self, vault_id: str) -> list[TimelineGroup]:
        """Group records by detected date (or upload date), newest first."""
        grouped: dict[str, list[EvidenceItem]] = defaultdict(list)
        for item in self.list_all(vault_id):
            date = item.date_detected or item.created_at.split("T")[0]
            grouped[date].append(item)
        return [
            TimelineGroup(date=date, evidence=grouped[date])
            for date in sorted(grouped, reverse=True)
        ]
