"""
API Key Model
Hashed API keys for programmatic access to the generation API.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean

from app.core.database import Base


class ApiKey(Base):
    """API key record. Only the sha256 hash of the key is stored."""

    __tablename__ = "api_keys"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False, index=True)

    key_hash = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=True)  # e.g. "Production App"
    key_preview = Column(String, nullable=False)  # "...abcd"

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<ApiKey {self.id} {self.key_preview} active={self.is_active}>"
