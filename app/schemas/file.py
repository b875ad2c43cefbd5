"""Schemas for vault files"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

from app.models.file import FileType


class FileRecord(BaseModel):
    """File as shown to clients, optimistic or authoritative"""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str = Field(validation_alias="file_id")
    name: str
    size: int
    type: str
    mime_type: str
    url: str
    upload_date: datetime = Field(validation_alias="created_at")
    uploader: str
    ai_summary: Optional[str] = None
    is_analyzing: Optional[bool] = None

    @classmethod
    def from_model(cls, model) -> "FileRecord":
        return cls.model_validate(model, from_attributes=True)


class FileRecordDocument(BaseModel):
    """Validated metadata document written to the store

    Optional fields that are unset are dropped from the written document.
    """
    model_config = ConfigDict(extra="forbid")

    file_id: str = Field(min_length=1, max_length=64)
    owner_id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=255)
    size: int = Field(ge=0)
    type: str = Field(pattern=f"^({'|'.join(FileType.ALL)})$")
    mime_type: str = ""
    url: str = Field(min_length=1)
    storage_key: Optional[str] = None
    storage_path: Optional[str] = None
    uploader: str
    ai_summary: Optional[str] = None
    is_analyzing: Optional[bool] = None
    created_at: datetime

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class FileRecordUpdate(BaseModel):
    """Partial update; the URL is not updatable"""
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    ai_summary: Optional[str] = None
    is_analyzing: Optional[bool] = None

    def to_changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class UploadFailure(BaseModel):
    """Per-file upload error"""
    file_id: str
    name: str
    error: str


class BatchUploadResponse(BaseModel):
    """Outcome of a batch upload; files succeed or fail independently"""
    uploaded: List[FileRecord]
    failed: List[UploadFailure]


class FileListResponse(BaseModel):
    """Reconciled list of files"""
    files: List[FileRecord]
    total: int
    uploading: int


class SummaryResponse(BaseModel):
    """On-demand AI summary"""
    file_id: str
    summary: str
    cached: bool


class FileDeleteResponse(BaseModel):
    """Response after file deletion"""
    success: bool
    message: str
