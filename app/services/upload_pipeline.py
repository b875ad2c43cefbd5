"""Upload, analyze and delete pipeline for vault files

Each step updates the session's optimistic state first, so live views show
the change before any storage call completes.
"""
import asyncio
import logging
import secrets
from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import (
    AnalysisError,
    BlobNotFoundError,
    BlobStorageError,
    ContentUnavailableError,
    FileRecordNotFoundError,
    VaultError,
)
from app.models.file import FileType
from app.schemas.file import FileRecord, FileRecordDocument, FileRecordUpdate, UploadFailure
from app.services.blob_storage import BlobStore, StoredBlob, build_storage_path
from app.services.content_fetch import ContentFetcher, FetchRequest
from app.services.file_service import FileService
from app.services.gemini_service import GeminiService
from app.services.vault_session import VaultSession
from app.utils.time_utils import epoch_millis, utc_now

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_file_id() -> str:
    """Random part followed by the current epoch millis, both base36"""
    return _to_base36(secrets.randbits(64)) + _to_base36(epoch_millis())


def classify_mime(mime_type: str) -> str:
    mime_type = (mime_type or "").lower()
    if mime_type.startswith("image/"):
        return FileType.IMAGE
    if mime_type.startswith("text/") or mime_type == "application/pdf":
        return FileType.DOCUMENT
    return FileType.OTHER


def preview_url(file_id: str) -> str:
    """Session-scoped preview reference for optimistic records"""
    return f"{settings.API_V1_PREFIX}/files/{file_id}/preview"


@dataclass
class IncomingFile:
    name: str
    mime_type: str
    content: bytes


@dataclass
class BatchResult:
    uploaded: List[FileRecord] = field(default_factory=list)
    failed: List[UploadFailure] = field(default_factory=list)


@dataclass
class SummaryResult:
    file_id: str
    summary: str
    cached: bool


class UploadPipeline:
    """Orchestrates blob storage, metadata persistence and AI analysis"""

    def __init__(
        self,
        db: Session,
        session: VaultSession,
        blob_store: BlobStore,
        gemini: Optional[GeminiService] = None,
        fetcher: Optional[ContentFetcher] = None,
    ):
        self.session = session
        self.blob_store = blob_store
        self.gemini = gemini or GeminiService()
        self.fetcher = fetcher or ContentFetcher(session=session)
        self.file_service = FileService(db)

    def build_optimistic_record(self, incoming: IncomingFile) -> FileRecord:
        file_id = generate_file_id()
        return FileRecord(
            id=file_id,
            name=incoming.name,
            size=len(incoming.content),
            type=classify_mime(incoming.mime_type),
            mime_type=incoming.mime_type,
            url=preview_url(file_id),
            upload_date=utc_now(),
            uploader=self.session.display_name or "Unknown",
            is_analyzing=False,
        )

    async def upload_batch(self, files: List[IncomingFile]) -> BatchResult:
        """
        Upload files independently: a failure only affects its own file.

        Optimistic records are published before the first storage call and
        removed once each file settles, whether it succeeded or not.
        """
        records = [self.build_optimistic_record(f) for f in files]
        for incoming, record in zip(files, records):
            self.session.cache_content(record.id, incoming.content, incoming.name, incoming.mime_type)
        self.session.add_uploading(records)

        outcomes = await asyncio.gather(
            *(self._upload_one(incoming, record) for incoming, record in zip(files, records))
        )

        result = BatchResult()
        for outcome in outcomes:
            if isinstance(outcome, UploadFailure):
                result.failed.append(outcome)
            else:
                result.uploaded.append(outcome)
        return result

    async def _upload_one(self, incoming: IncomingFile, record: FileRecord):
        stored = None
        try:
            if record.size > settings.MAX_FILE_SIZE:
                raise VaultError(f"File too large. Maximum size: {settings.MAX_FILE_SIZE // 1024 // 1024}MB")

            path = build_storage_path(self.session.owner_id, incoming.name)
            try:
                # Validated before any bytes are stored
                document = FileRecordDocument(
                    file_id=record.id,
                    owner_id=self.session.owner_id,
                    name=record.name,
                    size=record.size,
                    type=record.type,
                    mime_type=record.mime_type,
                    url=record.url,
                    storage_path=path,
                    uploader=record.uploader,
                    created_at=record.upload_date,
                )
            except ValidationError as e:
                logger.warning(f"Rejected metadata for {record.id}: {e}")
                raise VaultError("Invalid file metadata")

            stored = await self.blob_store.put(path, incoming.content, incoming.mime_type or "application/octet-stream")
            document = document.model_copy(update={
                "url": stored.url,
                "storage_key": stored.key,
                "storage_path": stored.path,
            })
            saved = self.file_service.insert_record(document)
            return FileRecord.from_model(saved)

        except VaultError as e:
            logger.error(f"Upload of {record.name} ({record.id}) failed: {e.message}")
            await self._discard(record, stored)
            return UploadFailure(file_id=record.id, name=record.name, error=f"Error uploading {record.name}: {e.message}")
        except Exception as e:
            logger.error(f"Upload of {record.name} ({record.id}) failed: {e}", exc_info=True)
            await self._discard(record, stored)
            return UploadFailure(file_id=record.id, name=record.name, error=f"Error uploading {record.name}")
        finally:
            self.session.remove_uploading(record.id)

    async def _discard(self, record: FileRecord, stored: Optional[StoredBlob]):
        """Drop what a failed upload left behind: cached bytes and any stored blob"""
        self.session.evict_content(record.id)
        if stored is None:
            return
        try:
            await self.blob_store.delete(stored.key)
            logger.info(f"Removed orphaned blob {stored.key} of {record.id}")
        except BlobStorageError as e:
            logger.warning(f"Could not remove orphaned blob {stored.key}: {e.message}")

    async def analyze(self, file_id: str) -> SummaryResult:
        """
        Return the file's summary, generating it on first request.

        Raises:
            FileRecordNotFoundError: unknown file
            ContentUnavailableError: every retrieval strategy failed
            AnalysisError: the model call failed
        """
        record = self.file_service.get_by_file_id(file_id, self.session.owner_id)
        if not record:
            raise FileRecordNotFoundError(file_id)

        if record.ai_summary:
            return SummaryResult(file_id=file_id, summary=record.ai_summary, cached=True)

        self.session.start_analyzing(file_id)
        try:
            fetched = await self.fetcher.fetch(FetchRequest(
                file_id=file_id,
                url=record.url,
                name=record.name,
                mime_type=record.mime_type,
            ))
            summary = await self.gemini.summarize(fetched.content, fetched.mime_type or record.mime_type)
            self.file_service.update_by_file_id(file_id, FileRecordUpdate(ai_summary=summary))
            logger.info(f"Stored AI summary for {file_id}")
            return SummaryResult(file_id=file_id, summary=summary, cached=False)
        except (ContentUnavailableError, AnalysisError):
            raise
        except Exception as e:
            logger.error(f"Analysis of {file_id} failed: {e}", exc_info=True)
            raise AnalysisError("Could not analyze this file. Please try again.")
        finally:
            self.session.stop_analyzing(file_id)

    async def delete(self, file_id: str) -> None:
        """
        Delete blob and metadata together.

        The blob delete is best-effort; the metadata delete is not, and its
        failure restores the file in live views.
        """
        record = self.file_service.get_by_file_id(file_id, self.session.owner_id)
        if not record:
            raise FileRecordNotFoundError(file_id)

        self.session.hide(file_id)
        try:
            if record.storage_key:
                try:
                    await self.blob_store.delete(record.storage_key)
                except BlobNotFoundError:
                    logger.warning(f"Blob for {file_id} not found in storage or already deleted")
                except BlobStorageError as e:
                    logger.warning(f"Could not delete blob for {file_id}: {e.message}")

            self.file_service.delete_by_file_id(file_id, self.session.owner_id)
        except Exception:
            logger.error(f"Deleting {file_id} failed, restoring it", exc_info=True)
            self.session.unhide(file_id)
            raise

        self.session.unhide(file_id)
        self.session.evict_content(file_id)
