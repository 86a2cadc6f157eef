"""Evidence record schemas - the unit of work of the triage service."""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}")


def utc_now_iso() -> str:
    """Current UTC time as a zero-padded ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def dedupe_tags(tags: list[str]) -> list[str]:
    """Drop empty and duplicate tags, keeping first-seen order."""
    seen: set[str] = set()
    result = []
    for tag in tags:
        if not tag or tag in seen:
            continue
        seen.add(tag)
        result.append(tag)
    return result


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class EvidenceCategory(str, Enum):
    """Document category assigned by classification."""

    CONTRACT = "contract"
    EMAIL = "email"
    PHOTO = "photo"
    HANDWRITTEN_NOTE = "handwritten_note"
    MEDICAL_RECORD = "medical_record"
    FINANCIAL_DOCUMENT = "financial_document"
    LEGAL_FILING = "legal_filing"
    CORRESPONDENCE = "correspondence"
    REPORT = "report"
    OTHER = "other"

    @classmethod
    def parse(cls, value: object) -> "EvidenceCategory":
        """Lenient parse; unknown values become OTHER."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.OTHER


CATEGORY_LABELS: dict[EvidenceCategory, str] = {
    EvidenceCategory.CONTRACT: "Contract",
    EvidenceCategory.EMAIL: "Email",
    EvidenceCategory.PHOTO: "Photo/Image",
    EvidenceCategory.HANDWRITTEN_NOTE: "Handwritten Note",
    EvidenceCategory.MEDICAL_RECORD: "Medical Record",
    EvidenceCategory.FINANCIAL_DOCUMENT: "Financial Document",
    EvidenceCategory.LEGAL_FILING: "Legal Filing",
    EvidenceCategory.CORRESPONDENCE: "Correspondence",
    EvidenceCategory.REPORT: "Report",
    EvidenceCategory.OTHER: "Other",
}


class IngestionStatus(str, Enum):
    """Local ingestion state of an evidence record."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def from_remote(cls, status: Optional[str]) -> "IngestionStatus":
        """Map the vault's ingestion vocabulary onto the local one."""
        if status in ("failed", "extraction_failed"):
            return cls.FAILED
        try:
            return cls(status)
        except ValueError:
            return cls.PROCESSING


class ClassificationSource(str, Enum):
    """What the classification of a record was based on."""

    DOCUMENT_TEXT = "document_text"
    OCR_TEXT = "ocr_text"
    FILENAME = "filename"
    IMAGE_PLACEHOLDER = "image_placeholder"


class EvidenceItem(CamelModel):
    """
    One uploaded file and everything known about it.

    Identity contract: ``id`` is always the vault object id
    (``remote_object_id``), so records survive restarts and can be looked
    up by either identifier.
    """

    id: str = Field(..., min_length=1, description="Record id, equal to the vault object id")
    remote_object_id: str = Field(..., min_length=1, description="Vault object id")
    filename: str
    content_type: str = "application/octet-stream"
    size_bytes: int = Field(default=0, ge=0)

    category: EvidenceCategory = EvidenceCategory.OTHER
    tags: list[str] = Field(default_factory=list)
    relevance_score: int = Field(default=0, ge=0, le=100)
    extracted_text: Optional[str] = None
    summary: Optional[str] = None
    date_detected: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    classification_source: Optional[ClassificationSource] = None

    ingestion_status: IngestionStatus = IngestionStatus.PENDING
    created_at: str = Field(default_factory=utc_now_iso)

    @field_validator("tags")
    @classmethod
    def _unique_tags(cls, tags: list[str]) -> list[str]:
        return dedupe_tags(tags)

    @model_validator(mode="after")
    def _id_is_object_id(self) -> "EvidenceItem":
        if self.id != self.remote_object_id:
            raise ValueError(
                f"Evidence id {self.id!r} must equal its vault object id "
                f"{self.remote_object_id!r}"
            )
        return self

    @classmethod
    def pending(
        cls,
        object_id: str,
        filename: str,
        content_type: str,
        size_bytes: int,
        status: IngestionStatus = IngestionStatus.PENDING,
        created_at: Optional[str] = None,
    ) -> "EvidenceItem":
        """Build a fresh, unclassified record for a vault object."""
        return cls(
            id=object_id,
            remote_object_id=object_id,
            filename=filename,
            content_type=content_type or "application/octet-stream",
            size_bytes=size_bytes or 0,
            ingestion_status=status,
            created_at=created_at or utc_now_iso(),
        )

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    @property
    def has_classification(self) -> bool:
        """Whether any classification field carries data."""
        return (
            self.category != EvidenceCategory.OTHER
            or bool(self.tags)
            or bool(self.summary)
        )

    @property
    def date_key(self) -> str:
        """Date used for filtering, sorting and timeline grouping."""
        return self.date_detected or self.created_at


class RankedEvidence(EvidenceItem):
    """Evidence record annotated with a search relevance (0-100)."""

    search_relevance: int = Field(default=0, ge=0, le=100)


class ClassificationResult(CamelModel):
    """Normalized output of the classification service."""

    category: EvidenceCategory = EvidenceCategory.OTHER
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    suggested_tags: list[str] = Field(default_factory=list)
    summary: str = ""
    date_detected: Optional[str] = None
    relevance_score: int = Field(default=50, ge=0, le=100)

    @field_validator("suggested_tags")
    @classmethod
    def _unique_tags(cls, tags: list[str]) -> list[str]:
        return dedupe_tags(tags)


class FilterState(CamelModel):
    """Filter and sort options for the evidence listing."""

    categories: list[EvidenceCategory] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    date_start: Optional[str] = None
    date_end: Optional[str] = None
    search_query: str = ""
    sort_by: Literal["date", "relevance", "name"] = "date"
    sort_order: Literal["asc", "desc"] = "desc"


class TimelineGroup(CamelModel):
    """Evidence records sharing one calendar date."""

    date: str
    evidence: list[EvidenceItem]
