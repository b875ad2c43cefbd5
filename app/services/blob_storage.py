"""Blob storage backends for uploaded file content"""
import httpx
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os

from app.config import settings
from app.core.exceptions import BlobNotFoundError, BlobStorageError
from app.utils.time_utils import epoch_millis

logger = logging.getLogger(__name__)


def build_storage_path(owner_id: str, filename: str, now: Optional[datetime] = None) -> str:
    """Owner-namespaced, timestamp-prefixed object path"""
    safe_name = Path(filename).name or "file"
    return f"files/{owner_id}/{epoch_millis(now)}_{safe_name}"


@dataclass
class StoredBlob:
    """Result of a put: ``key`` is what delete() expects, ``url`` is durable"""
    key: str
    path: str
    url: str


class BlobStore:
    """Interface implemented by every backend"""

    async def put(self, path: str, content: bytes, content_type: str) -> StoredBlob:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def close(self):
        pass


class FileRunnerBlobStore(BlobStore):
    """Stores blobs in the FileRunner external storage service"""

    def __init__(self, base_url: str = None, api_key: str = None):
        self.base_url = base_url or settings.FILERUNNER_BASE_URL
        self.api_key = api_key if api_key is not None else settings.FILERUNNER_API_KEY
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=60.0,
                headers={
                    "X-API-Key": self.api_key,
                }
            )
        return self._client

    async def close(self):
        """Close the HTTP client"""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def get_file_url(self, file_id: str) -> str:
        return f"{self.base_url}/api/files/{file_id}"

    async def put(self, path: str, content: bytes, content_type: str) -> StoredBlob:
        """
        Upload content to FileRunner

        The folder part of ``path`` becomes the FileRunner folder and the last
        segment the stored filename.
        """
        folder_path, _, filename = path.rpartition("/")
        try:
            client = await self._get_client()
            response = await client.post(
                "/api/upload",
                files={"file": (filename, content, content_type)},
                data={"folder_path": folder_path},
            )
        except httpx.RequestError as e:
            logger.error(f"FileRunner request error: {str(e)}")
            raise BlobStorageError(f"Failed to connect to storage: {str(e)}")

        if response.status_code != 200:
            logger.error(f"FileRunner upload failed: {response.status_code} - {response.text}")
            raise BlobStorageError(f"Storage upload failed ({response.status_code})")

        result = response.json()
        file_id = result.get("file_id")
        if not file_id:
            raise BlobStorageError("Storage upload returned no file id")

        logger.info(f"File uploaded to FileRunner: {file_id} ({path})")
        return StoredBlob(key=file_id, path=path, url=self.get_file_url(file_id))

    async def delete(self, key: str) -> None:
        try:
            client = await self._get_client()
            response = await client.delete(f"/api/files/{key}")
        except httpx.RequestError as e:
            logger.error(f"FileRunner request error: {str(e)}")
            raise BlobStorageError(f"Failed to connect to storage: {str(e)}")

        if response.status_code == 404:
            raise BlobNotFoundError(f"Blob {key} not found")
        if response.status_code >= 400:
            logger.error(f"FileRunner delete failed: {response.status_code} - {response.text}")
            raise BlobStorageError(f"Storage delete failed ({response.status_code})")


class LocalBlobStore(BlobStore):
    """Stores blobs under UPLOAD_DIR, served from /uploads"""

    def __init__(self, root: str = None, public_base_url: str = None):
        self.root = Path(root or settings.UPLOAD_DIR)
        self.public_base_url = (public_base_url or settings.PUBLIC_BASE_URL).rstrip("/")

    def _resolve(self, key: str) -> Path:
        target = (self.root / key).resolve()
        if self.root.resolve() not in target.parents:
            raise BlobStorageError(f"Invalid storage key: {key}")
        return target

    async def put(self, path: str, content: bytes, content_type: str) -> StoredBlob:
        target = self._resolve(path)
        try:
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
            async with aiofiles.open(target, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error(f"Local blob write failed for {path}: {e}")
            raise BlobStorageError(f"Storage upload failed: {e}")

        return StoredBlob(key=path, path=path, url=f"{self.public_base_url}/uploads/{path}")

    async def delete(self, key: str) -> None:
        target = self._resolve(key)
        try:
            await aiofiles.os.remove(target)
        except FileNotFoundError:
            raise BlobNotFoundError(f"Blob {key} not found")
        except OSError as e:
            raise BlobStorageError(f"Storage delete failed: {e}")


_blob_store: Optional[BlobStore] = None


def get_blob_store() -> BlobStore:
    """FastAPI dependency returning the configured backend"""
    global _blob_store
    if _blob_store is None:
        if settings.BLOB_BACKEND == "local":
            _blob_store = LocalBlobStore()
        else:
            _blob_store = FileRunnerBlobStore()
        logger.info(f"Using {settings.BLOB_BACKEND} blob storage")
    return _blob_store


async def close_blob_store():
    global _blob_store
    if _blob_store is not None:
        await _blob_store.close()
        _blob_store = None
