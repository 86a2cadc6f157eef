"""Shared fixtures: in-memory fakes for the vault, OCR and classification services."""

from typing import Any, Optional

import pytest

from evidence_triage.api_clients.base import APIError
from evidence_triage.config.settings import Settings
from evidence_triage.schemas.evidence import (
    ClassificationResult,
    EvidenceCategory,
    EvidenceItem,
    IngestionStatus,
)
from evidence_triage.schemas.remote import (
    IngestResponse,
    ObjectStatus,
    ObjectText,
    OCRJob,
    SearchResponse,
    UploadTarget,
    Vault,
    VaultObject,
)
from evidence_triage.store.json_store import JsonEvidenceRepository
from evidence_triage.triage.reconciler import IngestionReconciler


VAULT_ID = "vault-1"


class FakeVaultClient:
    """In-memory stand-in for VaultClient."""

    def __init__(self):
        self.objects: dict[str, dict[str, VaultObject]] = {}
        self.statuses: dict[str, str] = {}
        self.texts: dict[str, str] = {}
        self.download_urls: dict[str, str] = {}
        self.metadata_updates: list[tuple[str, str, dict[str, Any]]] = []
        self.deleted: list[str] = []
        self.ingest_triggers: list[str] = []
        self.uploads: list[tuple[str, bytes, str]] = []
        self.search_calls: list[tuple[str, str, int]] = []
        self.search_response: Optional[SearchResponse] = None
        self.search_error: Optional[Exception] = None
        self.fail_list = False
        self.fail_metadata = False
        self.fail_delete = False
        self.fail_trigger = False
        self.reject_uploads: set[str] = set()
        self._counter = 0

    def add_object(
        self,
        vault_id: str,
        object_id: str,
        filename: str,
        content_type: str = "application/pdf",
        status: str = "completed",
        **extra,
    ) -> VaultObject:
        obj = VaultObject.model_validate({
            "id": object_id,
            "filename": filename,
            "contentType": content_type,
            "sizeBytes": 1024,
            "ingestionStatus": status,
            "createdAt": "2024-05-01T10:00:00Z",
            **extra,
        })
        self.objects.setdefault(vault_id, {})[object_id] = obj
        self.statuses[object_id] = status
        return obj

    async def list_vaults(self) -> list[Vault]:
        return [Vault(id=VAULT_ID, name="Smith v. Jones", total_objects=2)]

    async def create_vault(self, name: str, description: Optional[str] = None) -> dict[str, Any]:
        return {"id": "vault-new", "name": name, "description": description}

    async def get_vault(self, vault_id: str) -> Vault:
        return Vault(id=vault_id, name="Smith v. Jones")

    async def list_objects(self, vault_id: str) -> list[VaultObject]:
        if self.fail_list:
            raise APIError("Vault unavailable", status_code=503)
        return list(self.objects.get(vault_id, {}).values())

    async def get_upload_target(self, vault_id, filename, content_type, metadata=None) -> UploadTarget:
        if filename in self.reject_uploads:
            raise APIError("Upload rejected", status_code=500)
        self._counter += 1
        object_id = f"obj-{self._counter}"
        self.add_object(vault_id, object_id, filename, content_type, status="processing")
        return UploadTarget(object_id=object_id, upload_url=f"https://storage.test/{object_id}")

    async def upload_bytes(self, upload_url: str, content: bytes, content_type: str) -> None:
        self.uploads.append((upload_url, content, content_type))

    async def trigger_ingestion(self, vault_id: str, object_id: str) -> IngestResponse:
        if self.fail_trigger:
            raise APIError("Ingest failed", status_code=500)
        self.ingest_triggers.append(object_id)
        return IngestResponse(object_id=object_id, status="processing")

    async def get_object(self, vault_id: str, object_id: str) -> ObjectStatus:
        if object_id not in self.statuses:
            raise APIError("Object not found", status_code=404)
        return ObjectStatus(
            id=object_id,
            ingestion_status=self.statuses[object_id],
            download_url=self.download_urls.get(object_id),
        )

    async def get_object_text(self, vault_id: str, object_id: str) -> ObjectText:
        if object_id not in self.texts:
            raise APIError("Text not available", status_code=404)
        return ObjectText(object_id=object_id, text=self.texts[object_id])

    async def delete_object(self, vault_id: str, object_id: str) -> dict[str, Any]:
        if self.fail_delete:
            raise APIError("Object not found", status_code=404)
        self.deleted.append(object_id)
        self.objects.get(vault_id, {}).pop(object_id, None)
        return {"success": True}

    async def update_object_metadata(self, vault_id: str, object_id: str, metadata: dict[str, Any]) -> None:
        if self.fail_metadata:
            raise APIError("Metadata update failed", status_code=500)
        self.metadata_updates.append((vault_id, object_id, metadata))

    async def search(self, vault_id: str, query: str, top_k: int = 10) -> SearchResponse:
        self.search_calls.append((vault_id, query, top_k))
        if self.search_error:
            raise self.search_error
        return self.search_response or SearchResponse()


class FakeOCRClient:
    """OCR stand-in that walks through a scripted list of job statuses."""

    def __init__(self, text: str = "", statuses: tuple[str, ...] = ("completed",)):
        self.text = text
        self.statuses = list(statuses)
        self.processed: list[str] = []
        self.status_calls = 0
        self.fail = False

    async def process(self, document_url: str, engine: Optional[str] = None) -> OCRJob:
        if self.fail:
            raise APIError("OCR unavailable", status_code=503)
        self.processed.append(document_url)
        return OCRJob(id="ocr-1", status="pending", document_url=document_url)

    async def get_status(self, job_id: str) -> OCRJob:
        status = self.statuses[min(self.status_calls, len(self.statuses) - 1)]
        self.status_calls += 1
        return OCRJob(id=job_id, status=status)

    async def get_text(self, job_id: str) -> str:
        return self.text


class FakeClassifier:
    """Classifier stand-in returning a fixed result."""

    def __init__(self, result: Optional[ClassificationResult] = None):
        self.result = result or ClassificationResult(
            category=EvidenceCategory.CONTRACT,
            confidence=0.92,
            suggested_tags=["agreement", "services contract"],
            summary="Services agreement between Acme Corp and Beta LLC.",
            date_detected="2024-03-01",
            relevance_score=80,
        )
        self.calls: list[tuple[str, str, str]] = []
        self.error: Optional[Exception] = None

    async def classify(self, text: str, filename: str, content_type: str) -> ClassificationResult:
        self.calls.append((text, filename, content_type))
        if self.error:
            raise self.error
        return self.result.model_copy(deep=True)


class FakeTracer:
    """Records trace events instead of sending them."""

    def __init__(self):
        self.classifications: list[dict[str, Any]] = []
        self.transitions: list[tuple[str, str, str]] = []
        self.errors: list[Exception] = []

    def log_classification(self, vault_id, evidence_id, filename, classification, source) -> None:
        self.classifications.append({
            "vault_id": vault_id,
            "evidence_id": evidence_id,
            "classification": classification,
            "source": source,
        })

    def log_status_transition(self, vault_id, evidence_id, from_status, to_status) -> None:
        self.transitions.append((evidence_id, from_status, to_status))

    def log_error(self, error, context) -> None:
        self.errors.append(error)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        casedev_api_key="test-key",
        evidence_data_dir=str(tmp_path),
        ocr_poll_interval=0,
        ocr_max_attempts=3,
        classify_retry_interval=0,
        classify_max_attempts=3,
        _env_file=None,
    )


@pytest.fixture
def repository(tmp_path) -> JsonEvidenceRepository:
    return JsonEvidenceRepository(tmp_path / "evidence.json")


@pytest.fixture
def vault() -> FakeVaultClient:
    return FakeVaultClient()


@pytest.fixture
def ocr() -> FakeOCRClient:
    return FakeOCRClient()


@pytest.fixture
def classifier() -> FakeClassifier:
    return FakeClassifier()


@pytest.fixture
def tracer() -> FakeTracer:
    return FakeTracer()


@pytest.fixture
def reconciler(repository, vault, ocr, classifier, settings, tracer) -> IngestionReconciler:
    return IngestionReconciler(
        repository,
        vault,
        ocr,
        classifier,
        settings=settings,
        tracer=tracer,
    )


@pytest.fixture
def make_evidence():
    """Factory for evidence records with sensible defaults."""

    def _make(
        object_id: str,
        filename: str = "document.pdf",
        content_type: str = "application/pdf",
        **fields,
    ) -> EvidenceItem:
        data = {
            "id": object_id,
            "remote_object_id": object_id,
            "filename": filename,
            "content_type": content_type,
            "size_bytes": 1024,
            "ingestion_status": IngestionStatus.COMPLETED,
            "created_at": "2024-05-01T10:00:00Z",
            **fields,
        }
        return EvidenceItem.model_validate(data)

    return _make
