"""FastAPI dependencies: authentication and per-user vault session"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.exceptions import AuthenticationError
from app.core.firebase import verify_id_token
from app.database import get_db
from app.models.user import User
from app.services.chat_service import ChatService
from app.services.vault_session import VaultSession, session_registry

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def authenticate_token(id_token: str, db: Session) -> User:
    """Verify a Firebase ID token and sync the caller into the user directory"""
    claims = verify_id_token(id_token)
    uid = claims["uid"]
    email = claims.get("email") or ""
    name = claims.get("name") or (email.split("@")[0] if email else "") or "User"
    return ChatService(db).sync_user(uid=uid, email=email, name=name)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return authenticate_token(credentials.credentials, db)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_vault_session(current_user: User = Depends(get_current_user)) -> VaultSession:
    return session_registry.get(current_user.uid, current_user.display_name)
