"""Tests for the upload, analyze and delete pipeline."""

from unittest.mock import patch

import pytest

from app.config import settings
from app.core.exceptions import AnalysisError, ContentUnavailableError, FileRecordNotFoundError
from app.models.file import VaultFile
from app.services.blob_storage import build_storage_path
from app.services.content_fetch import FetchStage
from app.services.upload_pipeline import (
    IncomingFile,
    UploadPipeline,
    classify_mime,
    generate_file_id,
)
from app.utils.time_utils import utc_now
from tests.conftest import FakeBlobStore, FakeGemini


def _stored_file(db, owner_id, file_id="f1", summary=None, url="https://blobs.example.test/f1"):
    record = VaultFile(
        file_id=file_id,
        owner_id=owner_id,
        name="invoice.pdf",
        size=3,
        type="document",
        mime_type="application/pdf",
        url=url,
        storage_key=f"files/{owner_id}/1_invoice.pdf",
        storage_path=f"files/{owner_id}/1_invoice.pdf",
        uploader="Alice",
        ai_summary=summary,
        created_at=utc_now(),
    )
    db.add(record)
    db.commit()
    return record


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestHelpers:
    """Tests for id generation, type classification and storage paths."""

    def test_generated_ids_are_unique_base36(self):
        ids = {generate_file_id() for _ in range(200)}
        assert len(ids) == 200
        assert all(i.isalnum() and i == i.lower() for i in ids)

    def test_classify_mime(self):
        assert classify_mime("image/png") == "image"
        assert classify_mime("application/pdf") == "document"
        assert classify_mime("text/plain") == "document"
        assert classify_mime("audio/mpeg") == "other"
        assert classify_mime("") == "other"

    def test_storage_path_is_owner_namespaced(self):
        now = utc_now()
        path = build_storage_path("alice-uid", "../../etc/report.pdf", now)
        assert path.startswith("files/alice-uid/")
        assert path.endswith("_report.pdf")
        assert ".." not in path


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------

class TestUploadBatch:
    """Tests for UploadPipeline.upload_batch()."""

    @pytest.mark.asyncio
    async def test_one_failure_does_not_affect_the_other(self, db, vault_session, gemini):
        """First file's storage put fails, second succeeds."""
        store = FakeBlobStore(fail_names={"a.pdf"})
        pipeline = UploadPipeline(db, vault_session, store, gemini)

        result = await pipeline.upload_batch([
            IncomingFile("a.pdf", "application/pdf", b"aaa"),
            IncomingFile("b.png", "image/png", b"bbbb"),
        ])

        assert [r.name for r in result.uploaded] == ["b.png"]
        assert [f.name for f in result.failed] == ["a.pdf"]
        assert result.failed[0].error.startswith("Error uploading a.pdf")

        stored = db.query(VaultFile).all()
        assert len(stored) == 1
        assert stored[0].name == "b.png"
        assert stored[0].owner_id == vault_session.owner_id
        assert stored[0].type == "image"
        assert stored[0].ai_summary is None

        assert vault_session.uploading == []
        # Only the successful upload stays available for immediate analysis
        assert result.uploaded[0].id in vault_session.file_cache
        assert result.failed[0].file_id not in vault_session.file_cache

    @pytest.mark.asyncio
    async def test_optimistic_records_published_before_storage(self, db, vault_session, gemini):
        seen = []
        original = vault_session.add_uploading

        def capture(records):
            original(records)
            seen.append([r.name for r in vault_session.uploading])

        store = FakeBlobStore()
        with patch.object(vault_session, "add_uploading", side_effect=capture):
            await UploadPipeline(db, vault_session, store, gemini).upload_batch([
                IncomingFile("one.txt", "text/plain", b"1"),
                IncomingFile("two.txt", "text/plain", b"2"),
            ])

        assert seen == [["one.txt", "two.txt"]]
        assert vault_session.uploading == []

    @pytest.mark.asyncio
    async def test_upload_does_not_analyze(self, db, vault_session, blob_store, gemini):
        await UploadPipeline(db, vault_session, blob_store, gemini).upload_batch([
            IncomingFile("notes.txt", "text/plain", b"hello"),
        ])
        assert gemini.summarize_calls == []

    @pytest.mark.asyncio
    async def test_oversized_file_fails(self, db, vault_session, blob_store, gemini, monkeypatch):
        monkeypatch.setattr(settings, "MAX_FILE_SIZE", 4)

        result = await UploadPipeline(db, vault_session, blob_store, gemini).upload_batch([
            IncomingFile("big.bin", "application/octet-stream", b"12345"),
        ])

        assert result.uploaded == []
        assert "too large" in result.failed[0].error
        assert blob_store.blobs == {}

    @pytest.mark.asyncio
    async def test_invalid_metadata_stores_no_blob(self, db, vault_session, blob_store, gemini):
        """A name the metadata store rejects fails before any bytes are stored."""
        long_name = "x" * 300 + ".txt"

        result = await UploadPipeline(db, vault_session, blob_store, gemini).upload_batch([
            IncomingFile(long_name, "text/plain", b"data"),
        ])

        assert result.uploaded == []
        assert result.failed[0].error.endswith("Invalid file metadata")
        assert blob_store.blobs == {}
        assert blob_store.deleted == []
        assert db.query(VaultFile).count() == 0

    @pytest.mark.asyncio
    async def test_metadata_failure_removes_stored_blob(self, db, vault_session, blob_store, gemini):
        pipeline = UploadPipeline(db, vault_session, blob_store, gemini)

        with patch.object(pipeline.file_service, "insert_record", side_effect=RuntimeError("database unavailable")):
            result = await pipeline.upload_batch([
                IncomingFile("a.txt", "text/plain", b"data"),
            ])

        assert [f.name for f in result.failed] == ["a.txt"]
        assert blob_store.blobs == {}
        assert len(blob_store.deleted) == 1
        assert blob_store.deleted[0].endswith("_a.txt")
        assert result.failed[0].file_id not in vault_session.file_cache

    @pytest.mark.asyncio
    async def test_record_uses_durable_url(self, db, vault_session, blob_store, gemini):
        result = await UploadPipeline(db, vault_session, blob_store, gemini).upload_batch([
            IncomingFile("photo.jpg", "image/jpeg", b"jpg"),
        ])

        record = result.uploaded[0]
        assert record.url.startswith("https://blobs.example.test/files/alice-uid/")
        assert record.uploader == "Alice"


# ---------------------------------------------------------------------------
# Analyze
# ---------------------------------------------------------------------------

class TestAnalyze:
    """Tests for UploadPipeline.analyze()."""

    @pytest.mark.asyncio
    async def test_existing_summary_skips_model(self, db, vault_session, blob_store, gemini):
        _stored_file(db, vault_session.owner_id, summary="An invoice from ACME.")

        result = await UploadPipeline(db, vault_session, blob_store, gemini).analyze("f1")

        assert result.cached is True
        assert result.summary == "An invoice from ACME."
        assert gemini.summarize_calls == []

    @pytest.mark.asyncio
    async def test_analyze_from_session_cache(self, db, vault_session, blob_store, gemini):
        pipeline = UploadPipeline(db, vault_session, blob_store, gemini)
        uploaded = (await pipeline.upload_batch([
            IncomingFile("scan.png", "image/png", b"png-bytes"),
        ])).uploaded[0]

        result = await pipeline.analyze(uploaded.id)

        assert result.cached is False
        assert result.summary == gemini.summary
        assert gemini.summarize_calls == [(b"png-bytes", "image/png")]
        assert vault_session.analyzing == set()

        db.expire_all()
        stored = db.query(VaultFile).filter(VaultFile.file_id == uploaded.id).one()
        assert stored.ai_summary == gemini.summary

    @pytest.mark.asyncio
    async def test_no_content_source(self, db, vault_session, blob_store, gemini):
        _stored_file(db, vault_session.owner_id, url="/uploads/files/alice-uid/1_invoice.pdf")

        with pytest.raises(ContentUnavailableError) as exc_info:
            await UploadPipeline(db, vault_session, blob_store, gemini).analyze("f1")

        stages = [f.stage for f in exc_info.value.failures]
        assert stages == [FetchStage.SESSION_CACHE, FetchStage.DIRECT, FetchStage.PROXY]
        assert gemini.summarize_calls == []
        assert vault_session.analyzing == set()

    @pytest.mark.asyncio
    async def test_model_failure_persists_nothing(self, db, vault_session, blob_store):
        class FailingGemini(FakeGemini):
            async def summarize(self, content, mime_type):
                raise AnalysisError("AI analysis failed. Please try again.")

        pipeline = UploadPipeline(db, vault_session, blob_store, FailingGemini())
        uploaded = (await pipeline.upload_batch([
            IncomingFile("a.txt", "text/plain", b"x"),
        ])).uploaded[0]

        with pytest.raises(AnalysisError):
            await pipeline.analyze(uploaded.id)

        db.expire_all()
        stored = db.query(VaultFile).filter(VaultFile.file_id == uploaded.id).one()
        assert stored.ai_summary is None
        assert vault_session.analyzing == set()

    @pytest.mark.asyncio
    async def test_unknown_file(self, db, vault_session, blob_store, gemini):
        with pytest.raises(FileRecordNotFoundError):
            await UploadPipeline(db, vault_session, blob_store, gemini).analyze("missing")

    @pytest.mark.asyncio
    async def test_other_users_file_is_not_found(self, db, vault_session, blob_store, gemini, bob):
        _stored_file(db, bob.uid, summary="Bob's file")

        with pytest.raises(FileRecordNotFoundError):
            await UploadPipeline(db, vault_session, blob_store, gemini).analyze("f1")


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

class TestDelete:
    """Tests for UploadPipeline.delete()."""

    @pytest.mark.asyncio
    async def test_missing_blob_still_deletes_metadata(self, db, vault_session, gemini):
        _stored_file(db, vault_session.owner_id)
        store = FakeBlobStore(missing_on_delete=True)

        await UploadPipeline(db, vault_session, store, gemini).delete("f1")

        assert db.query(VaultFile).count() == 0
        assert store.deleted == ["files/alice-uid/1_invoice.pdf"]
        assert vault_session.hidden == set()

    @pytest.mark.asyncio
    async def test_deletes_blob_and_metadata(self, db, vault_session, gemini):
        pipeline = UploadPipeline(db, vault_session, FakeBlobStore(), gemini)
        uploaded = (await pipeline.upload_batch([
            IncomingFile("a.txt", "text/plain", b"x"),
        ])).uploaded[0]

        await pipeline.delete(uploaded.id)

        assert db.query(VaultFile).count() == 0
        assert pipeline.blob_store.blobs == {}
        assert uploaded.id not in vault_session.file_cache

    @pytest.mark.asyncio
    async def test_metadata_failure_restores_file(self, db, vault_session, blob_store, gemini):
        _stored_file(db, vault_session.owner_id)
        pipeline = UploadPipeline(db, vault_session, blob_store, gemini)
        hidden_during = []

        def fail(file_id, owner_id):
            hidden_during.append(set(vault_session.hidden))
            raise RuntimeError("database unavailable")

        with patch.object(pipeline.file_service, "delete_by_file_id", side_effect=fail):
            with pytest.raises(RuntimeError):
                await pipeline.delete("f1")

        assert hidden_during == [{"f1"}]
        assert vault_session.hidden == set()
        assert db.query(VaultFile).count() == 1

    @pytest.mark.asyncio
    async def test_unknown_file(self, db, vault_session, blob_store, gemini):
        with pytest.raises(FileRecordNotFoundError):
            await UploadPipeline(db, vault_session, blob_store, gemini).delete("missing")
