"""Vault file metadata model"""
from sqlalchemy import Column, String, Integer, DateTime, Text, Boolean, Index
import uuid
from app.database import Base
from app.utils.time_utils import utc_now


class FileType:
    """Coarse type classification derived from the MIME type"""
    IMAGE = "image"
    DOCUMENT = "document"
    OTHER = "other"

    ALL = (IMAGE, DOCUMENT, OTHER)


class VaultFile(Base):
    """Authoritative file record

    ``doc_id`` is the store-native key; ``file_id`` is the application-level
    identifier shared with the optimistic placeholder created at upload time.
    """

    __tablename__ = "vault_files"

    doc_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    file_id = Column(String(64), unique=True, nullable=False, index=True)
    owner_id = Column(String(128), nullable=False, index=True)

    # File information
    name = Column(String(255), nullable=False)
    size = Column(Integer, nullable=False)  # Bytes
    type = Column(String(20), nullable=False, default=FileType.OTHER)
    mime_type = Column(String(255), nullable=False, default="")
    url = Column(Text, nullable=False)  # Durable blob store URL
    storage_key = Column(String(500), nullable=True)  # Blob store handle used for deletion
    storage_path = Column(String(500), nullable=True)
    uploader = Column(String(255), nullable=False)

    # AI analysis
    ai_summary = Column(Text, nullable=True)
    is_analyzing = Column(Boolean, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        Index('idx_vault_files_owner_created', 'owner_id', 'created_at'),
    )

    def __repr__(self):
        return f"<VaultFile(file_id={self.file_id}, name={self.name}, owner={self.owner_id})>"
