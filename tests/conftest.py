"""Shared fixtures: in-memory SQLite, local blob storage and fake AI calls."""

import os
import tempfile

# Settings are read at import time, so configure them before importing app
_UPLOAD_DIR = tempfile.mkdtemp(prefix="cloudvault-test-")
os.environ.setdefault("DATABASE_CLIENT", "sqlite")
os.environ.setdefault("DATABASE_NAME", ":memory:")
os.environ.setdefault("BLOB_BACKEND", "local")
os.environ.setdefault("UPLOAD_DIR", _UPLOAD_DIR)
os.environ.setdefault("GEMINI_API_KEY", "test-key")
os.environ.setdefault("CONTENT_PROXY_URL", "")

from typing import Dict, List  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import app.models  # noqa: E402,F401
from app.core.exceptions import BlobNotFoundError, BlobStorageError  # noqa: E402
from app.core.rate_limit import limiter  # noqa: E402
from app.database import Base, SessionLocal, engine, get_db  # noqa: E402
from app.models.user import User  # noqa: E402
from app.services.blob_storage import BlobStore, StoredBlob  # noqa: E402
from app.services.change_feed import ChangeFeed  # noqa: E402
from app.services.vault_session import VaultSession, session_registry  # noqa: E402


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeBlobStore(BlobStore):
    """In-memory blob store; names listed in ``fail_names`` fail on put."""

    def __init__(self, fail_names=(), missing_on_delete=False):
        self.blobs: Dict[str, bytes] = {}
        self.deleted: List[str] = []
        self.fail_names = set(fail_names)
        self.missing_on_delete = missing_on_delete

    async def put(self, path: str, content: bytes, content_type: str) -> StoredBlob:
        filename = path.rsplit("/", 1)[-1].split("_", 1)[-1]
        if filename in self.fail_names:
            raise BlobStorageError("Storage upload failed (503)")
        self.blobs[path] = content
        return StoredBlob(key=path, path=path, url=f"https://blobs.example.test/{path}")

    async def delete(self, key: str) -> None:
        self.deleted.append(key)
        if self.missing_on_delete or key not in self.blobs:
            raise BlobNotFoundError(f"Blob {key} not found")
        del self.blobs[key]


class FakeGemini:
    """Records calls instead of contacting the model."""

    def __init__(self, summary="A scanned invoice."):
        self.summary = summary
        self.summarize_calls = []
        self.ask_calls = []

    async def summarize(self, content: bytes, mime_type: str) -> str:
        self.summarize_calls.append((content, mime_type))
        return self.summary

    async def ask(self, question, history, files):
        self.ask_calls.append((question, history, files))
        return f"You have {len(files)} files."


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_state():
    """Fresh schema and no vault sessions for every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session_registry._sessions.clear()
    limiter.enabled = False
    yield
    session_registry._sessions.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def alice(db):
    user = User(uid="alice-uid", email="alice@example.com", name="Alice")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def bob(db):
    user = User(uid="bob-uid", email="Bob@Example.com", name="Bob")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def vault_session(alice, feed):
    return VaultSession(owner_id=alice.uid, display_name=alice.name, feed=feed)


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def gemini():
    return FakeGemini()


@pytest.fixture
def client(alice, blob_store, gemini):
    """API client authenticated as ``alice``."""
    from app.core.dependencies import get_current_user
    from app.main import app
    from app.services.blob_storage import get_blob_store
    from app.services.gemini_service import get_gemini_service

    def _get_db():
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    def _current_user():
        session = SessionLocal()
        try:
            return session.query(User).filter(User.uid == alice.uid).first()
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_current_user] = _current_user
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_gemini_service] = lambda: gemini

    yield TestClient(app)

    app.dependency_overrides.clear()
