"""Pydantic schemas for evidence records and remote API payloads."""

from .evidence import (
    CATEGORY_LABELS,
    CamelModel,
    ClassificationResult,
    ClassificationSource,
    EvidenceCategory,
    EvidenceItem,
    FilterState,
    IngestionStatus,
    RankedEvidence,
    TimelineGroup,
    dedupe_tags,
    utc_now_iso,
)
from .remote import (
    METADATA_PREFIX,
    IngestResponse,
    OCRJob,
    ObjectStatus,
    ObjectText,
    SearchChunk,
    SearchResponse,
    SearchSource,
    UploadTarget,
    Vault,
    VaultObject,
    classification_metadata,
)

__all__ = [
    "CATEGORY_LABELS",
    "CamelModel",
    "ClassificationResult",
    "ClassificationSource",
    "EvidenceCategory",
    "EvidenceItem",
    "FilterState",
    "IngestionStatus",
    "RankedEvidence",
    "TimelineGroup",
    "dedupe_tags",
    "utc_now_iso",
    "METADATA_PREFIX",
    "IngestResponse",
    "OCRJob",
    "ObjectStatus",
    "ObjectText",
    "SearchChunk",
    "SearchResponse",
    "SearchSource",
    "UploadTarget",
    "Vault",
    "VaultObject",
    "classification_metadata",
]
