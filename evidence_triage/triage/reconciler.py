"""
Ingestion reconciler: drives one evidence record from upload to a
classified, ``completed`` state.

Per attempt the record moves ``pending -> processing -> completed``. A
document whose remote ingestion has not finished aborts the attempt with
StillProcessingError; the caller re-invokes later (see
``wait_for_classification``). There is no locking: two concurrent attempts
on one record both classify and the last write wins.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ..api_clients.base import APIError
from ..api_clients.classifier import ClassificationClient
from ..api_clients.ocr import OCRClient
from ..api_clients.vault import VaultClient
from ..config.settings import Settings, get_settings
from ..observability.tracing import TriageTracer, get_tracer, traced
from ..schemas.evidence import (
    ClassificationResult,
    ClassificationSource,
    EvidenceCategory,
    EvidenceItem,
    IngestionStatus,
    utc_now_iso,
)
from ..schemas.remote import OCRJob, classification_metadata
from ..store.base import EvidenceRepository
from ..utils.polling import poll_until
from .errors import EvidenceNotFoundError, StillProcessingError, best_effort

logger = logging.getLogger(__name__)

# Remote ingestion statuses
REMOTE_COMPLETED = "completed"
REMOTE_PENDING = "pending"
REMOTE_PROCESSING = "processing"
REMOTE_EXTRACTION_FAILED = "extraction_failed"

PHOTO_TAGS = ["image", "photograph", "visual evidence"]
PHOTO_CONFIDENCE = 0.95
PHOTO_RELEVANCE = 50

# Classifications made from the filename alone are stored with at most this confidence
FILENAME_ONLY_MAX_CONFIDENCE = 0.3


@dataclass
class ReconcileResult:
    """Outcome of one successful reconciliation attempt."""

    evidence: EvidenceItem
    classification: ClassificationResult
    source: ClassificationSource


def photo_classification(filename: str) -> ClassificationResult:
    """Fixed classification for an image without meaningful text."""
    return ClassificationResult(
        category=EvidenceCategory.PHOTO,
        confidence=PHOTO_CONFIDENCE,
        suggested_tags=list(PHOTO_TAGS),
        summary=f"Photograph: {filename}",
        relevance_score=PHOTO_RELEVANCE,
    )


class IngestionReconciler:
    """Polls remote ingestion, runs OCR when needed, classifies and persists."""

    def __init__(
        self,
        repository: EvidenceRepository,
        vault: VaultClient,
        ocr: OCRClient,
        classifier: ClassificationClient,
        settings: Optional[Settings] = None,
        tracer: Optional[TriageTracer] = None,
    ):
        self.repository = repository
        self.vault = vault
        self.ocr = ocr
        self.classifier = classifier
        self.settings = settings or get_settings()
        self.tracer = tracer or get_tracer()

    async def resolve(self, vault_id: str, evidence_id: str) -> EvidenceItem:
        """
        Find a record by id or vault object id, falling back to the vault.

        A vault object unknown to the local cache is registered as a fresh
        pending record.

        Raises:
            EvidenceNotFoundError: Neither the cache nor the vault has it.
        """
        evidence = self.repository.find(vault_id, evidence_id)
        if evidence:
            return evidence

        logger.info(f"[Classify] {evidence_id} not cached, checking vault {vault_id} objects")
        objects = await best_effort(
            f"Listing objects of vault {vault_id}",
            self.vault.list_objects(vault_id),
        ) or []
        obj = next((o for o in objects if o.id == evidence_id), None)
        if obj is None:
            raise EvidenceNotFoundError()

        evidence = EvidenceItem.pending(
            object_id=obj.id,
            filename=obj.filename,
            content_type=obj.content_type,
            size_bytes=obj.size_bytes,
            created_at=obj.created_at,
        )
        self.repository.put(vault_id, evidence)
        logger.info(f"[Classify] Registered {obj.filename} ({obj.id}) from vault listing")
        return evidence

    @traced("reconcile_evidence")
    async def reconcile(self, vault_id: str, evidence_id: str) -> ReconcileResult:
        """
        Run one reconciliation attempt.

        Raises:
            EvidenceNotFoundError: Unknown record.
            StillProcessingError: Remote ingestion is pending or processing.
            APIError: Status lookup or classification call failed.
        """
        evidence = await self.resolve(vault_id, evidence_id)
        object_id = evidence.remote_object_id

        status = await self.vault.get_object(vault_id, object_id)
        remote_status = status.ingestion_status
        logger.info(f"[Classify] {evidence.filename}: remote ingestion status {remote_status}")

        text = ""
        classification: Optional[ClassificationResult] = None

        if evidence.is_image:
            # Images go through OCR whatever the document pipeline reports
            text = await self._recognize_image(status.download_url, evidence.filename)
            if len(text.strip()) < self.settings.ocr_min_text_chars:
                logger.info(f"[Classify] {evidence.filename} has no meaningful text, classifying as photo")
                text = ""
                source = ClassificationSource.IMAGE_PLACEHOLDER
                classification = photo_classification(evidence.filename)
            else:
                source = ClassificationSource.OCR_TEXT
        else:
            if remote_status == REMOTE_PENDING:
                await best_effort(
                    f"Triggering ingestion for {object_id}",
                    self.vault.trigger_ingestion(vault_id, object_id),
                )
            if remote_status in (REMOTE_PENDING, REMOTE_PROCESSING):
                self._mark_processing(vault_id, evidence)
                raise StillProcessingError(remote_status)

            if remote_status == REMOTE_EXTRACTION_FAILED:
                logger.info(f"[Classify] Extraction failed for {evidence.filename}, using filename only")
            else:
                text = await self._fetch_text(vault_id, object_id)
            source = ClassificationSource.DOCUMENT_TEXT if text.strip() else ClassificationSource.FILENAME

        if classification is None:
            classification = await self.classifier.classify(
                text or evidence.filename,
                evidence.filename,
                evidence.content_type,
            )
            if source == ClassificationSource.FILENAME:
                classification.confidence = min(classification.confidence, FILENAME_ONLY_MAX_CONFIDENCE)

        logger.info(
            f"[Classify] {evidence.filename}: category={classification.category.value}, "
            f"relevance={classification.relevance_score}, source={source.value}"
        )

        updated = self._persist(vault_id, evidence, classification, source, text)
        await best_effort(
            f"Mirroring classification of {object_id} to vault metadata",
            self.vault.update_object_metadata(
                vault_id,
                object_id,
                classification_metadata(classification, utc_now_iso()),
            ),
        )
        self.tracer.log_classification(
            vault_id=vault_id,
            evidence_id=updated.id,
            filename=updated.filename,
            classification=classification.model_dump(mode="json"),
            source=source.value,
        )
        return ReconcileResult(evidence=updated, classification=classification, source=source)

    def _mark_processing(self, vault_id: str, evidence: EvidenceItem) -> None:
        if evidence.ingestion_status in (IngestionStatus.PENDING, IngestionStatus.FAILED):
            self.repository.patch(vault_id, evidence.id, {"ingestion_status": IngestionStatus.PROCESSING})

    async def _fetch_text(self, vault_id: str, object_id: str) -> str:
        """Extracted text from the vault; empty on failure."""
        result = await best_effort(
            f"Fetching extracted text for {object_id}",
            self.vault.get_object_text(vault_id, object_id),
        )
        text = result.text if result else ""
        logger.info(f"[Classify] Got {len(text)} characters of text for {object_id}")
        return text

    async def _recognize_image(self, download_url: Optional[str], filename: str) -> str:
        """Run OCR on an image URL and wait for it; empty on any failure."""
        if not download_url:
            logger.warning(f"[OCR] No download URL for {filename}, skipping OCR")
            return ""

        try:
            job = await self.ocr.process(download_url)

            async def probe() -> OCRJob:
                return await self.ocr.get_status(job.id)

            outcome = await poll_until(
                probe,
                lambda j: j.is_finished,
                interval=self.settings.ocr_poll_interval,
                max_attempts=self.settings.ocr_max_attempts,
                description=f"OCR job {job.id}",
            )
            if not outcome.done:
                logger.error(f"[OCR] Timeout waiting for job {job.id}")
                return ""
            if outcome.value.status != "completed":
                logger.error(f"[OCR] Job {job.id} failed")
                return ""
            text = await self.ocr.get_text(job.id)
        except (APIError, httpx.HTTPError) as e:
            logger.error(f"[OCR] Failed for {filename}: {e}")
            return ""

        logger.info(f"[OCR] Extracted {len(text)} characters from {filename}")
        return text

    def _persist(
        self,
        vault_id: str,
        evidence: EvidenceItem,
        classification: ClassificationResult,
        source: ClassificationSource,
        text: str,
    ) -> EvidenceItem:
        max_chars = self.settings.extracted_text_max_chars
        updates = {
            "category": classification.category,
            "tags": classification.suggested_tags,
            "summary": classification.summary,
            "date_detected": classification.date_detected,
            "relevance_score": classification.relevance_score,
            "confidence": classification.confidence,
            "classification_source": source,
            "extracted_text": text[:max_chars] or None,
            "ingestion_status": IngestionStatus.COMPLETED,
        }
        updated = self.repository.patch(vault_id, evidence.id, updates)
        if updated is None:
            # Deleted locally while classifying; last write wins
            updated = EvidenceItem.model_validate({**evidence.model_dump(), **updates})
            self.repository.put(vault_id, updated)
        return updated


@dataclass
class ClassifyWaitOutcome:
    """Outcome of the caller-side classify retry loop."""

    result: Optional[ReconcileResult]
    attempts: int
    last_status: Optional[str] = None

    @property
    def completed(self) -> bool:
        return self.result is not None


async def wait_for_classification(
    reconciler: IngestionReconciler,
    vault_id: str,
    evidence_id: str,
    interval: Optional[float] = None,
    max_attempts: Optional[int] = None,
) -> ClassifyWaitOutcome:
    """
    Re-invoke ``reconcile`` until it completes or the attempt budget runs out.

    StillProcessingError is retryable; when the budget is exhausted the
    outcome reports ``completed = False`` and the document is expected to
    finish in the background (a later sync or classify picks it up).
    """
    settings = reconciler.settings
    last_status: Optional[str] = None

    async def attempt() -> Optional[ReconcileResult]:
        nonlocal last_status
        try:
            return await reconciler.reconcile(vault_id, evidence_id)
        except StillProcessingError as e:
            last_status = e.status
            return None

    outcome = await poll_until(
        attempt,
        lambda result: result is not None,
        interval=settings.classify_retry_interval if interval is None else interval,
        max_attempts=max_attempts or settings.classify_max_attempts,
        description=f"classification of {evidence_id}",
    )
    return ClassifyWaitOutcome(
        result=outcome.value,
        attempts=outcome.attempts,
        last_status=last_status,
    )
