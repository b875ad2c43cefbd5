"""Session endpoints

Sign-in itself happens against Firebase on the client; these endpoints only
expose the verified identity and end the server-side vault session.
"""
from fastapi import APIRouter, Depends

from app.core.dependencies import get_current_user
from app.models.user import User
from app.schemas.chat import ChatUser
from app.services.vault_session import session_registry

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.get("/me", response_model=ChatUser)
def get_me(current_user: User = Depends(get_current_user)):
    """Get the authenticated user"""
    return ChatUser.model_validate(current_user)


@router.post("/logout")
def logout(current_user: User = Depends(get_current_user)):
    """Discard in-flight upload state and cached file content for this user"""
    ended = session_registry.end(current_user.uid)
    return {"success": True, "session_ended": ended}
