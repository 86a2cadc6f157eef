"""Tests for uploads, the detail view and delete."""

import pytest

from evidence_triage.schemas.evidence import EvidenceCategory, IngestionStatus
from evidence_triage.triage.errors import EvidenceNotFoundError
from evidence_triage.triage.records import delete_evidence, get_evidence_detail
from evidence_triage.triage.uploads import IncomingFile, resolve_content_type, upload_files


VAULT = "vault-1"


class TestUploads:
    """Tests for the upload coordinator."""

    @pytest.mark.asyncio
    async def test_upload_registers_processing_record(self, repository, vault):
        results = await upload_files(repository, vault, VAULT, [
            IncomingFile("contract_v2.pdf", b"%PDF-1.7 ...", "application/pdf"),
        ])

        [result] = results
        assert result.status == "uploaded"
        assert result.evidence_id == result.object_id == "obj-1"
        record = repository.get(VAULT, "obj-1")
        assert record.category == EvidenceCategory.OTHER
        assert record.ingestion_status == IngestionStatus.PROCESSING
        assert record.size_bytes == len(b"%PDF-1.7 ...")
        assert vault.uploads == [("https://storage.test/obj-1", b"%PDF-1.7 ...", "application/pdf")]
        assert vault.ingest_triggers == ["obj-1"]

    @pytest.mark.asyncio
    async def test_one_failure_does_not_fail_batch(self, repository, vault):
        vault.reject_uploads = {"broken.pdf"}

        results = await upload_files(repository, vault, VAULT, [
            IncomingFile("broken.pdf", b"x", "application/pdf"),
            IncomingFile("memo.docx", b"y", None),
        ])

        assert [r.status for r in results] == ["failed", "uploaded"]
        assert "Upload rejected" in results[0].error
        assert results[0].evidence_id is None
        assert [e.filename for e in repository.list_all(VAULT)] == ["memo.docx"]

    @pytest.mark.asyncio
    async def test_trigger_failure_is_not_fatal(self, repository, vault):
        vault.fail_trigger = True
        [result] = await upload_files(repository, vault, VAULT, [IncomingFile("a.pdf", b"x", "application/pdf")])
        assert result.status == "uploaded"

    @pytest.mark.parametrize("filename,declared,expected", [
        ("scene.png", None, "image/png"),
        ("scene.png", "application/octet-stream", "image/png"),
        ("contract.pdf", "application/pdf", "application/pdf"),
        ("blob.unknownext", None, "application/octet-stream"),
    ])
    def test_resolve_content_type(self, filename, declared, expected):
        assert resolve_content_type(filename, declared) == expected


class TestDetail:
    """Tests for get_evidence_detail."""

    @pytest.mark.asyncio
    async def test_unknown_record(self, reconciler):
        with pytest.raises(EvidenceNotFoundError):
            await get_evidence_detail(reconciler, VAULT, "obj-404")

    @pytest.mark.asyncio
    async def test_classifies_inline_when_ingestion_done(self, reconciler, repository, vault, make_evidence):
        repository.put(VAULT, make_evidence("obj-1", "contract_v2.pdf", ingestion_status=IngestionStatus.PROCESSING))
        vault.add_object(VAULT, "obj-1", "contract_v2.pdf", status="completed")
        vault.texts["obj-1"] = "This Agreement is entered into..."

        detail = await get_evidence_detail(reconciler, VAULT, "obj-1")

        assert detail.evidence.category == EvidenceCategory.CONTRACT
        assert detail.evidence.ingestion_status == IngestionStatus.COMPLETED
        assert detail.download_url is None

    @pytest.mark.asyncio
    async def test_still_processing_is_not_an_error(self, reconciler, repository, vault, classifier, make_evidence):
        repository.put(VAULT, make_evidence("obj-1", ingestion_status=IngestionStatus.PROCESSING))
        vault.add_object(VAULT, "obj-1", "document.pdf", status="processing")

        detail = await get_evidence_detail(reconciler, VAULT, "obj-1")

        assert detail.evidence.ingestion_status == IngestionStatus.PROCESSING
        assert classifier.calls == []

    @pytest.mark.asyncio
    async def test_completed_image_gets_download_url(self, reconciler, repository, vault, ocr, make_evidence):
        repository.put(VAULT, make_evidence("obj-1", "scene.png", "image/png", category=EvidenceCategory.PHOTO))
        vault.add_object(VAULT, "obj-1", "scene.png", "image/png", status="completed")
        vault.download_urls["obj-1"] = "https://storage.test/scene.png"

        detail = await get_evidence_detail(reconciler, VAULT, "obj-1")

        assert detail.download_url == "https://storage.test/scene.png"
        assert ocr.processed == []

    @pytest.mark.asyncio
    async def test_status_lookup_failure_is_swallowed(self, reconciler, repository, make_evidence):
        repository.put(VAULT, make_evidence("obj-1", "scene.png", "image/png"))

        detail = await get_evidence_detail(reconciler, VAULT, "obj-1")

        assert detail.download_url is None


class TestDelete:
    """Tests for delete_evidence."""

    @pytest.mark.asyncio
    async def test_deletes_locally_and_remotely(self, repository, vault, make_evidence):
        repository.put(VAULT, make_evidence("obj-1"))
        vault.add_object(VAULT, "obj-1", "document.pdf")

        result = await delete_evidence(repository, vault, VAULT, "obj-1")

        assert result.remote_deleted
        assert vault.deleted == ["obj-1"]
        assert repository.get(VAULT, "obj-1") is None

    @pytest.mark.asyncio
    async def test_remote_failure_still_deletes_locally(self, repository, vault, make_evidence):
        repository.put(VAULT, make_evidence("obj-1"))
        vault.fail_delete = True

        result = await delete_evidence(repository, vault, VAULT, "obj-1")

        assert not result.remote_deleted
        assert repository.get(VAULT, "obj-1") is None

    @pytest.mark.asyncio
    async def test_empty_cache_is_resynced_first(self, repository, vault):
        """Test a record only known to the vault can be deleted after a restart."""
        vault.add_object(VAULT, "obj-9", "old_exhibit.pdf")

        result = await delete_evidence(repository, vault, VAULT, "obj-9")

        assert result.object_id == "obj-9"
        assert vault.deleted == ["obj-9"]
        assert repository.list_all(VAULT) == []

    @pytest.mark.asyncio
    async def test_unknown_record(self, repository, vault):
        with pytest.raises(EvidenceNotFoundError):
            await delete_evidence(repository, vault, VAULT, "obj-404")
