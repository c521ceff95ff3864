"""
Dataset Schemas
Request/Response models for dataset upload and registration.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class UploadUrlRequest(BaseModel):
    """Request a presigned URL for uploading a dataset ZIP."""
    dataset_id: Optional[str] = Field(None, description="Client-chosen dataset id; generated when omitted")
    file_name: str = Field(..., min_length=1, description="Client-side archive name, logged only; the key is derived from the dataset id")


class UploadUrlResponse(BaseModel):
    upload_url: str
    key: str
    dataset_id: str
    expires_in: int


class CreateDatasetRequest(BaseModel):
    """Register a dataset after the ZIP upload finished."""
    zip_key: str = Field(..., min_length=1, description="<user>/datasets/<dataset_id>.zip")
    number_of_images: int = Field(..., ge=1)


class DatasetResponse(BaseModel):
    id: str
    user_id: str
    url: str
    number_of_images: int
    created_at: datetime

    class Config:
        from_attributes = True
