"""JSON-file evidence repository.

The whole cache is one JSON document ``{vaultId: {evidenceId: record}}``
rewritten in full on every mutation. That is fine for the collection sizes
this tool handles and keeps the file human-readable.
"""

import json
import logging
import os
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from ..schemas.evidence import EvidenceItem
from .base import EvidenceRepository

logger = logging.getLogger(__name__)


class JsonEvidenceRepository(EvidenceRepository):
    """Evidence repository persisted to a single JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__()

    def _load(self) -> dict[str, dict[str, EvidenceItem]]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load evidence from {self.path}: {e}")
            return {}

        vaults: dict[str, dict[str, EvidenceItem]] = {}
        for vault_id, items in data.items():
            vault = vaults.setdefault(vault_id, {})
            for evidence_id, raw in items.items():
                try:
                    vault[evidence_id] = EvidenceItem.model_validate(raw)
                except ValidationError as e:
                    logger.warning(f"Skipping invalid evidence {vault_id}/{evidence_id}: {e}")

        logger.info(f"Loaded evidence for {len(vaults)} vaults from {self.path}")
        return vaults

    def _persist(
        self,
        vault_id: str,
        upserts: Iterable[EvidenceItem] = (),
        deletes: Iterable[str] = (),
    ) -> None:
        # Full rewrite; the change set is not needed
        data = {
            vid: {
                eid: item.model_dump(mode="json", by_alias=True, exclude_none=True)
                for eid, item in items.items()
            }
            for vid, items in self._vaults.items()
        }
        # The target is only ever replaced by a complete file
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to save evidence to {self.path}: {e}")
