"""Schemas for Case.dev vault, OCR and search API payloads."""

import json
import logging
from typing import Any, Optional

from pydantic import AliasChoices, ConfigDict, Field

from .evidence import CamelModel, ClassificationResult, EvidenceCategory, IngestionStatus

logger = logging.getLogger(__name__)

# Classification mirrored into vault object metadata uses this key prefix
METADATA_PREFIX = "et_"


class Vault(CamelModel):
    """A vault (evidence collection) on the remote store."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    description: Optional[str] = None
    total_objects: int = 0
    total_bytes: int = 0
    created_at: Optional[str] = None


class VaultObject(CamelModel):
    """An object listed in a vault."""

    model_config = ConfigDict(extra="allow")

    id: str
    filename: str
    content_type: str = "application/octet-stream"
    size_bytes: int = 0
    ingestion_status: str = "pending"
    page_count: Optional[int] = None
    text_length: Optional[int] = None
    chunk_count: Optional[int] = None
    metadata: Optional[dict[str, Any]] = None
    created_at: Optional[str] = None

    def _metadata_value(self, key: str) -> Any:
        # Metadata may be nested under "metadata" or flattened on the object
        name = f"{METADATA_PREFIX}{key}"
        if self.metadata and self.metadata.get(name) not in (None, ""):
            return self.metadata[name]
        return (self.model_extra or {}).get(name)

    def mirrored_classification(self) -> Optional[dict[str, Any]]:
        """
        Classification previously mirrored into vault metadata.

        Returns:
            Evidence field updates (snake_case) or None if the object was
            never classified.
        """
        category = self._metadata_value("category")
        if not category:
            return None

        tags: list[str] = []
        raw_tags = self._metadata_value("tags")
        if isinstance(raw_tags, str):
            try:
                raw_tags = json.loads(raw_tags)
            except json.JSONDecodeError:
                raw_tags = None
        if isinstance(raw_tags, list):
            tags = [t for t in raw_tags if isinstance(t, str)]
        elif raw_tags is not None:
            logger.warning(f"Ignoring malformed et_tags on object {self.id}")

        try:
            relevance = int(float(self._metadata_value("relevance_score") or 0))
        except (TypeError, ValueError, OverflowError):
            relevance = 0

        return {
            "category": EvidenceCategory.parse(category),
            "tags": tags,
            "summary": self._text_value("summary"),
            "date_detected": self._text_value("date_detected"),
            "relevance_score": min(100, max(0, relevance)),
            "ingestion_status": IngestionStatus.COMPLETED,
        }

    def _text_value(self, key: str) -> Optional[str]:
        value = self._metadata_value(key)
        if isinstance(value, str):
            return value or None
        if value is not None:
            logger.warning(f"Ignoring non-text et_{key} on object {self.id}")
        return None


class UploadTarget(CamelModel):
    """Presigned upload URL issued for a new vault object."""

    model_config = ConfigDict(extra="allow")

    object_id: str
    upload_url: str
    expires_in: Optional[int] = None
    instructions: Optional[dict[str, Any]] = None


class IngestResponse(CamelModel):
    model_config = ConfigDict(extra="allow")

    object_id: Optional[str] = None
    workflow_id: Optional[str] = None
    status: Optional[str] = None
    message: Optional[str] = None


class ObjectStatus(CamelModel):
    """Ingestion status and access URL for one vault object."""

    model_config = ConfigDict(extra="allow")

    id: str
    filename: Optional[str] = None
    content_type: Optional[str] = None
    size_bytes: Optional[int] = None
    ingestion_status: str = "pending"
    page_count: Optional[int] = None
    text_length: Optional[int] = None
    chunk_count: Optional[int] = None
    download_url: Optional[str] = None


class ObjectText(CamelModel):
    model_config = ConfigDict(extra="allow")

    object_id: Optional[str] = None
    filename: Optional[str] = None
    text: str = ""
    text_length: Optional[int] = None
    page_count: Optional[int] = None


class SearchChunk(CamelModel):
    """One retrieved chunk from hybrid search."""

    model_config = ConfigDict(extra="allow")

    text: str = ""
    # The API has returned both snake_case and camelCase for this field
    object_id: str = Field(
        default="",
        validation_alias=AliasChoices("object_id", "objectId"),
        serialization_alias="object_id",
    )
    chunk_index: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("chunk_index", "chunkIndex"),
        serialization_alias="chunk_index",
    )
    hybrid_score: float = 0.0
    vector_score: Optional[float] = None
    bm25_score: Optional[float] = None


class SearchSource(CamelModel):
    model_config = ConfigDict(extra="allow")

    id: str
    filename: Optional[str] = None
    page_count: Optional[int] = None


class SearchResponse(CamelModel):
    model_config = ConfigDict(extra="allow")

    method: Optional[str] = None
    query: Optional[str] = None
    chunks: list[SearchChunk] = Field(default_factory=list)
    sources: list[SearchSource] = Field(default_factory=list)


class OCRJob(CamelModel):
    """An OCR job on the remote OCR service."""

    model_config = ConfigDict(extra="allow")

    id: str
    status: str = "pending"
    document_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("document_url", "documentUrl"),
    )
    engine: Optional[str] = None

    @property
    def is_finished(self) -> bool:
        return self.status in ("completed", "failed")


def classification_metadata(
    classification: ClassificationResult,
    classified_at: str,
) -> dict[str, Any]:
    """Vault metadata payload mirroring a classification."""
    return {
        f"{METADATA_PREFIX}category": classification.category.value,
        f"{METADATA_PREFIX}tags": json.dumps(classification.suggested_tags),
        f"{METADATA_PREFIX}summary": classification.summary,
        f"{METADATA_PREFIX}date_detected": classification.date_detected,
        f"{METADATA_PREFIX}relevance_score": classification.relevance_score,
        f"{METADATA_PREFIX}classified_at": classified_at,
    }
