"""
API Key Schemas
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class CreateApiKeyRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    expires_at: Optional[datetime] = None


class ApiKeyResponse(BaseModel):
    """Safe view of an API key (never includes the key itself)."""
    id: str
    name: Optional[str] = None
    key_preview: str
    is_active: bool
    created_at: datetime
    expires_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CreatedApiKeyResponse(BaseModel):
    """Returned once at creation; plain_key is not retrievable afterwards."""
    api_key: ApiKeyResponse
    plain_key: str
