"""Per-user vault session state

Holds the state a client would otherwise keep locally: the optimistic
upload list, raw bytes of files uploaded in this session, ids being analyzed,
and ids whose deletion is in flight. State lives until logout or idle eviction.
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Set

from app.schemas.file import FileRecord
from app.services.change_feed import ChangeFeed, change_feed, uploads_topic
from app.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


@dataclass
class CachedContent:
    """Raw upload kept for immediate analysis"""
    content: bytes
    name: str
    mime_type: str


@dataclass
class UploadsSnapshot:
    """Optimistic state published on the uploads topic"""
    uploading: List[FileRecord]
    hidden: Set[str]
    analyzing: Set[str]


@dataclass
class VaultSession:
    owner_id: str
    display_name: str
    feed: ChangeFeed = field(default=change_feed, repr=False)
    uploading: List[FileRecord] = field(default_factory=list)
    file_cache: Dict[str, CachedContent] = field(default_factory=dict)
    analyzing: Set[str] = field(default_factory=set)
    hidden: Set[str] = field(default_factory=set)
    last_active: datetime = field(default_factory=utc_now)

    def touch(self):
        self.last_active = utc_now()

    def snapshot(self) -> UploadsSnapshot:
        return UploadsSnapshot(list(self.uploading), set(self.hidden), set(self.analyzing))

    def _publish(self):
        self.feed.publish(uploads_topic(self.owner_id), self.snapshot())

    # Optimistic upload list

    def add_uploading(self, records: List[FileRecord]):
        """Insert a batch at the head of the list, keeping batch order"""
        self.uploading = [*records, *self.uploading]
        self._publish()

    def remove_uploading(self, file_id: str):
        self.uploading = [r for r in self.uploading if r.id != file_id]
        self._publish()

    # Session-local content cache

    def cache_content(self, file_id: str, content: bytes, name: str, mime_type: str):
        self.file_cache[file_id] = CachedContent(content, name, mime_type)

    def cached_content(self, file_id: str) -> Optional[CachedContent]:
        return self.file_cache.get(file_id)

    def evict_content(self, file_id: str):
        self.file_cache.pop(file_id, None)

    # Analysis and deletion flags

    def start_analyzing(self, file_id: str):
        self.analyzing.add(file_id)
        self._publish()

    def stop_analyzing(self, file_id: str):
        self.analyzing.discard(file_id)
        self._publish()

    def hide(self, file_id: str):
        self.hidden.add(file_id)
        self._publish()

    def unhide(self, file_id: str):
        self.hidden.discard(file_id)
        self._publish()

    def clear(self):
        self.uploading.clear()
        self.file_cache.clear()
        self.analyzing.clear()
        self.hidden.clear()
        self._publish()


class SessionRegistry:
    """Owns every live VaultSession, keyed by owner id"""

    def __init__(self, feed: ChangeFeed = change_feed):
        self.feed = feed
        self._sessions: Dict[str, VaultSession] = {}
        self._lock = threading.Lock()

    def get(self, owner_id: str, display_name: str = "") -> VaultSession:
        with self._lock:
            session = self._sessions.get(owner_id)
            if session is None:
                session = VaultSession(owner_id=owner_id, display_name=display_name, feed=self.feed)
                self._sessions[owner_id] = session
                logger.info(f"Opened vault session for {owner_id}")
            elif display_name:
                session.display_name = display_name
        session.touch()
        return session

    def peek(self, owner_id: str) -> Optional[VaultSession]:
        return self._sessions.get(owner_id)

    def end(self, owner_id: str) -> bool:
        """Drop a session and its cached content (logout)"""
        with self._lock:
            session = self._sessions.pop(owner_id, None)
        if session is None:
            return False
        session.clear()
        logger.info(f"Closed vault session for {owner_id}")
        return True

    def evict_idle(self, max_idle: timedelta, now: Optional[datetime] = None) -> int:
        """End sessions idle for longer than ``max_idle`` with nothing in flight"""
        now = now or utc_now()
        with self._lock:
            stale = [
                owner_id for owner_id, s in self._sessions.items()
                if now - s.last_active > max_idle and not s.uploading and not s.analyzing
            ]
        for owner_id in stale:
            self.end(owner_id)
        return len(stale)

    def __len__(self):
        return len(self._sessions)


# Global registry instance
session_registry = SessionRegistry()
