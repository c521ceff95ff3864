"""
Security Helpers
Password hashing, session tokens and webhook shared-secret checks.
"""

import hmac
import logging
from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings
from app.core.errors import AuthenticationError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password with bcrypt."""
    return pwd_context.hash(password)


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a session token for a user after registration or login."""
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": user_id, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_user_id(token: Optional[str]) -> str:
    """Return the user id carried by a session token or raise AuthenticationError."""
    if not token:
        raise AuthenticationError("User not authenticated")
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"[Auth] Rejected session token: {e}")
        raise AuthenticationError("User not authenticated")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("User not authenticated")
    return user_id


def verify_webhook_token(authorization: Optional[str]):
    """
    Validate the shared-secret Authorization header sent with provider webhooks.

    The header value must equal WEBHOOK_TOKEN exactly. An unset token rejects
    every request.
    """
    expected = settings.WEBHOOK_TOKEN
    if not expected:
        logger.error("[Webhook] WEBHOOK_TOKEN is not configured")
        raise AuthenticationError("Webhook authentication not configured")

    if not authorization:
        logger.warning("[Webhook] No Authorization header provided")
        raise AuthenticationError("Authorization header required")

    if not hmac.compare_digest(authorization.encode(), expected.encode()):
        logger.warning("[Webhook] Invalid authentication token provided")
        raise AuthenticationError("Invalid authentication token")
