"""Firebase Admin SDK bootstrap and ID token verification"""
import logging
import os
from typing import Any, Dict

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from firebase_admin.exceptions import FirebaseError

from app.config import settings
from app.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

GENERIC_AUTH_ERROR = "Authentication failed. Please sign in again."

# Firebase error code -> user-facing message
AUTH_ERROR_MESSAGES: Dict[str, str] = {
    "ID_TOKEN_EXPIRED": "Your session has expired. Please sign in again.",
    "ID_TOKEN_REVOKED": "Your session was revoked. Please sign in again.",
    "INVALID_ID_TOKEN": "Invalid credentials. Please sign in again.",
    "USER_DISABLED": "This account has been disabled.",
    "USER_NOT_FOUND": "Account not found.",
    "CERTIFICATE_FETCH_FAILED": "Authentication service unavailable. Try again later.",
}


def auth_error_message(code: str) -> str:
    """Map a Firebase error code to a user-facing message"""
    return AUTH_ERROR_MESSAGES.get(code, GENERIC_AUTH_ERROR)


def get_firebase_app():
    """Initialize Firebase Admin SDK (lazy loading)"""
    if firebase_admin._apps:
        return firebase_admin.get_app()

    options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None
    if os.path.exists(settings.FIREBASE_CREDENTIALS_PATH):
        cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
        app = firebase_admin.initialize_app(cred, options)
        logger.info("Firebase Admin SDK initialized successfully")
    else:
        logger.warning(
            f"Firebase credentials file not found at {settings.FIREBASE_CREDENTIALS_PATH}, "
            "falling back to application default credentials"
        )
        app = firebase_admin.initialize_app(options=options)
    return app


def verify_id_token(id_token: str) -> Dict[str, Any]:
    """
    Verify a Firebase ID token

    Returns:
        Decoded token claims (uid, email, name, ...)

    Raises:
        AuthenticationError: with a user-facing message
    """
    try:
        return firebase_auth.verify_id_token(id_token, app=get_firebase_app(), check_revoked=True)
    except firebase_auth.ExpiredIdTokenError as e:
        logger.info(f"Expired ID token: {e}")
        code = "ID_TOKEN_EXPIRED"
    except firebase_auth.RevokedIdTokenError as e:
        logger.info(f"Revoked ID token: {e}")
        code = "ID_TOKEN_REVOKED"
    except firebase_auth.UserDisabledError as e:
        logger.info(f"Disabled user token: {e}")
        code = "USER_DISABLED"
    except firebase_auth.InvalidIdTokenError as e:
        logger.info(f"Invalid ID token: {e}")
        code = "INVALID_ID_TOKEN"
    except firebase_auth.UserNotFoundError as e:
        logger.info(f"Token for deleted user: {e}")
        code = "USER_NOT_FOUND"
    except firebase_auth.CertificateFetchError as e:
        logger.error(f"Could not fetch Firebase certificates: {e}")
        code = "CERTIFICATE_FETCH_FAILED"
    except FirebaseError as e:
        logger.error(f"Firebase error during token verification: {e}")
        code = getattr(e, "code", None) or "UNKNOWN"
    except ValueError as e:
        logger.info(f"Malformed ID token: {e}")
        code = "MALFORMED"
    raise AuthenticationError(auth_error_message(code), code=code)
