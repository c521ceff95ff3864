"""
API Key Service
Issues, verifies and revokes keys for the public generation API.

Keys look like ``ak_<32 hex chars>``. Only the sha256 hash is persisted; the
plain key is returned once, at creation.
"""

import hashlib
import logging
import secrets
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.errors import AuthenticationError, NotFoundError
from app.models.api_key import ApiKey

logger = logging.getLogger(__name__)

KEY_PREFIX = "ak_"


def generate_api_key() -> str:
    return KEY_PREFIX + secrets.token_hex(16)


def hash_api_key(api_key: str) -> str:
    return hashlib.sha256(api_key.encode()).hexdigest()


def key_preview(api_key: str) -> str:
    return "..." + api_key[-4:]


class ApiKeyService:

    def __init__(self, db: Session):
        self.db = db

    def create(self, user_id: str, name: Optional[str] = None, expires_at: Optional[datetime] = None) -> Tuple[ApiKey, str]:
        """
        Create a key for a user.

        Returns:
            (record, plain_key)
        """
        plain_key = generate_api_key()
        record = ApiKey(
            user_id=user_id,
            key_hash=hash_api_key(plain_key),
            name=name,
            key_preview=key_preview(plain_key),
            is_active=True,
            expires_at=expires_at,
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        logger.info(f"[ApiKeys] Created key {record.id} for user {user_id}")
        return record, plain_key

    def verify(self, api_key: Optional[str]) -> str:
        """Return the owning user id for a valid, active, unexpired key."""
        if not api_key:
            raise AuthenticationError("API key required")
        if not api_key.startswith(KEY_PREFIX):
            raise AuthenticationError("Invalid API key format")

        record = self.db.query(ApiKey).filter(
            ApiKey.key_hash == hash_api_key(api_key),
            ApiKey.is_active.is_(True)
        ).first()

        if not record:
            raise AuthenticationError("Invalid API key")
        if record.expires_at is not None and record.expires_at <= datetime.utcnow():
            raise AuthenticationError("API key has expired")

        return record.user_id

    def list_for_user(self, user_id: str) -> List[ApiKey]:
        return self.db.query(ApiKey).filter(
            ApiKey.user_id == user_id
        ).order_by(ApiKey.created_at.desc()).all()

    def _require_owned(self, key_id: str, user_id: str) -> ApiKey:
        record = self.db.query(ApiKey).filter(
            ApiKey.id == key_id,
            ApiKey.user_id == user_id
        ).first()
        if not record:
            raise NotFoundError("API key not found")
        return record

    def revoke(self, user_id: str, key_id: str) -> ApiKey:
        record = self._require_owned(key_id, user_id)
        record.is_active = False
        self.db.commit()
        self.db.refresh(record)
        logger.info(f"[ApiKeys] Revoked key {key_id}")
        return record

    def delete(self, user_id: str, key_id: str):
        record = self._require_owned(key_id, user_id)
        self.db.delete(record)
        self.db.commit()
        logger.info(f"[ApiKeys] Deleted key {key_id}")
