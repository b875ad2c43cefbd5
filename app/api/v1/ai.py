"""Vault assistant endpoint"""
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.config import settings
from app.core.dependencies import get_current_user
from app.core.exceptions import AnalysisError
from app.core.rate_limit import limiter
from app.database import get_db
from app.models.user import User
from app.schemas.ai import AssistantRequest, AssistantResponse
from app.services.file_service import FileService
from app.services.gemini_service import GeminiService, get_gemini_service

router = APIRouter(prefix="/assistant", tags=["AI"])


@router.post("/ask", response_model=AssistantResponse)
@limiter.limit(settings.ASSISTANT_RATE_LIMIT)
async def ask_assistant(
    request: Request,
    body: AssistantRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gemini: GeminiService = Depends(get_gemini_service),
):
    """
    Ask the assistant about your files

    - **message**: The question
    - **history**: Earlier turns, oldest first

    The assistant sees the names, types and summaries of your stored files.
    """
    files = FileService(db).list_for_owner(current_user.uid)
    try:
        reply = await gemini.ask(
            question=body.message,
            history=[turn.model_dump() for turn in body.history],
            files=files,
        )
    except AnalysisError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

    return AssistantResponse(reply=reply, files_in_context=len(files))
