"""File metadata service: persistence and live snapshots of vault file records"""
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from app.models.file import VaultFile
from app.schemas.file import FileRecord, FileRecordDocument, FileRecordUpdate
from app.services.change_feed import ChangeFeed, change_feed, files_topic

logger = logging.getLogger(__name__)


class FileService:
    """Service for file metadata records

    Records are addressed by the application-level ``file_id``, never by the
    store-native key. Every write publishes the owner's full file list.
    """

    def __init__(self, db: Session, feed: ChangeFeed = change_feed):
        self.db = db
        self.feed = feed

    def insert_record(self, document: FileRecordDocument) -> VaultFile:
        """Persist a validated metadata document"""
        record = VaultFile(**document.to_document())
        self.db.add(record)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(record)

        logger.info(f"Stored metadata for file {record.file_id} ({record.name}) of {record.owner_id}")
        self.publish_snapshot(record.owner_id)
        return record

    def get_by_file_id(self, file_id: str, owner_id: Optional[str] = None) -> Optional[VaultFile]:
        """
        Get file record by application id

        Args:
            file_id: Application-level file id
            owner_id: Optional owner id for access control
        """
        query = self.db.query(VaultFile).filter(VaultFile.file_id == file_id)

        if owner_id:
            query = query.filter(VaultFile.owner_id == owner_id)

        return query.first()

    def update_by_file_id(self, file_id: str, changes: FileRecordUpdate) -> Optional[VaultFile]:
        """Apply a partial update; missing records and empty changes are no-ops"""
        record = self.get_by_file_id(file_id)
        if not record:
            logger.warning(f"Update skipped, file {file_id} not found")
            return None

        values = changes.to_changes()
        if not values:
            return record

        for key, value in values.items():
            setattr(record, key, value)
        self.db.commit()
        self.db.refresh(record)

        self.publish_snapshot(record.owner_id)
        return record

    def delete_by_file_id(self, file_id: str, owner_id: str) -> bool:
        """Delete the metadata record; returns False if it did not exist"""
        record = self.get_by_file_id(file_id, owner_id)
        if not record:
            return False

        self.db.delete(record)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Deleted metadata for file {file_id} of {owner_id}")
        self.publish_snapshot(owner_id)
        return True

    def list_for_owner(self, owner_id: str) -> List[FileRecord]:
        """One-shot owner-scoped query, newest first"""
        records = (
            self.db.query(VaultFile)
            .filter(VaultFile.owner_id == owner_id)
            .order_by(VaultFile.created_at.desc())
            .all()
        )
        return [FileRecord.from_model(r) for r in records]

    def publish_snapshot(self, owner_id: str):
        self.feed.publish(files_topic(owner_id), self.list_for_owner(owner_id))
