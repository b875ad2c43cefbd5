"""File API endpoints"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, UploadFile, File, WebSocket, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from app.api.live import stream_snapshots
from app.config import settings
from app.core.dependencies import authenticate_token, get_vault_session
from app.core.exceptions import AnalysisError, AuthenticationError, ContentUnavailableError, FileRecordNotFoundError
from app.core.rate_limit import limiter
from app.database import get_db
from app.schemas.file import BatchUploadResponse, FileDeleteResponse, FileListResponse, SummaryResponse
from app.services.blob_storage import BlobStore, get_blob_store
from app.services.change_feed import change_feed, files_topic, uploads_topic
from app.services.file_service import FileService
from app.services.gemini_service import GeminiService, get_gemini_service
from app.services.reconciliation import LiveFileView
from app.services.upload_pipeline import IncomingFile, UploadPipeline
from app.services.vault_session import VaultSession, session_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files", tags=["files"])


def _live_view(session: VaultSession, db: Session) -> LiveFileView:
    snapshot = session.snapshot()
    view = LiveFileView(authoritative=FileService(db).list_for_owner(session.owner_id))
    view.replace_optimistic(snapshot.uploading, snapshot.hidden, snapshot.analyzing)
    return view


def _list_response(view: LiveFileView, query: Optional[str] = None) -> FileListResponse:
    files = view.render(query)
    return FileListResponse(files=files, total=len(files), uploading=len(view.optimistic))


@router.post("", response_model=BatchUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_files(
    files: List[UploadFile] = File(...),
    session: VaultSession = Depends(get_vault_session),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    gemini: GeminiService = Depends(get_gemini_service),
):
    """
    Upload one or more files

    Files are processed independently: a storage failure for one file is
    reported in `failed` and does not affect the others. Uploaded files are
    not analyzed automatically; request a summary explicitly.
    """
    incoming = []
    for upload in files:
        content = await upload.read()
        incoming.append(IncomingFile(
            name=upload.filename or "file",
            mime_type=upload.content_type or "",
            content=content,
        ))

    pipeline = UploadPipeline(db, session, blob_store, gemini)
    result = await pipeline.upload_batch(incoming)

    return BatchUploadResponse(uploaded=result.uploaded, failed=result.failed)


@router.get("", response_model=FileListResponse)
def get_files(
    q: Optional[str] = Query(None, max_length=200, description="Search in names and summaries"),
    session: VaultSession = Depends(get_vault_session),
    db: Session = Depends(get_db),
):
    """
    Get the current user's files

    In-flight uploads come first, followed by stored files, newest first.
    """
    try:
        return _list_response(_live_view(session, db), q)

    except Exception as e:
        logger.error(f"Error fetching files: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching files"
        )


@router.get("/{file_id}/preview")
def preview_file(
    file_id: str,
    session: VaultSession = Depends(get_vault_session),
):
    """Serve a file uploaded during this session from the session cache"""
    cached = session.cached_content(file_id)
    if cached is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Preview not available in this session"
        )
    return Response(content=cached.content, media_type=cached.mime_type or "application/octet-stream")


@router.post("/{file_id}/summary", response_model=SummaryResponse)
@limiter.limit(settings.SUMMARY_RATE_LIMIT)
async def get_or_generate_summary(
    request: Request,
    file_id: str,
    session: VaultSession = Depends(get_vault_session),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    gemini: GeminiService = Depends(get_gemini_service),
):
    """
    Get the AI summary of a file, generating it on first request

    An existing summary is returned as-is without calling the AI model.
    """
    try:
        pipeline = UploadPipeline(db, session, blob_store, gemini)
        result = await pipeline.analyze(file_id)
        return SummaryResponse(file_id=result.file_id, summary=result.summary, cached=result.cached)

    except FileRecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except ContentUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.message)
    except AnalysisError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)


@router.delete("/{file_id}", response_model=FileDeleteResponse)
async def delete_file(
    file_id: str,
    session: VaultSession = Depends(get_vault_session),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """
    Delete a file

    Removes both the stored content and the metadata record. Content that is
    already gone from storage does not block the deletion.
    """
    try:
        pipeline = UploadPipeline(db, session, blob_store)
        await pipeline.delete(file_id)

        return FileDeleteResponse(
            success=True,
            message="File deleted successfully"
        )

    except FileRecordNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=e.message
        )
    except Exception:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error deleting file. Please try again."
        )


@router.websocket("/live")
async def live_files(
    websocket: WebSocket,
    token: str = Query(...),
    q: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """
    Stream the reconciled file list

    Every message is the complete list; clients replace what they have.
    """
    try:
        user = authenticate_token(token, db)
    except AuthenticationError as e:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
        return

    await websocket.accept()
    session = session_registry.get(user.uid, user.display_name)
    subscription = change_feed.subscribe(files_topic(user.uid), uploads_topic(user.uid))
    view = _live_view(session, db)
    db.close()

    await websocket.send_json(_list_response(view, q).model_dump(mode="json"))

    async def on_event(topic, snapshot):
        if topic == uploads_topic(user.uid):
            view.replace_optimistic(snapshot.uploading, snapshot.hidden, snapshot.analyzing)
        else:
            view.replace_authoritative(snapshot)
        return _list_response(view, q)

    await stream_snapshots(websocket, subscription, on_event)
