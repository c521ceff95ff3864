"""
Model Schemas
Pydantic models for the model lifecycle API.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, List, Any
from pydantic import BaseModel, Field


class ProviderStatus(str, Enum):
    """Training provider job status, normalised to a closed vocabulary."""
    TRAINING = "training"
    COMPLETED = "completed"
    FAILED = "failed"
    UNKNOWN = "unknown"


# --- Request Schemas ---

class CreateModelRequest(BaseModel):
    """Request to create a model on a dataset and start training."""
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = ""
    type: str = Field(..., min_length=1, description="Model type tag, e.g. 'fast' or 'high-quality'")
    resolution: Optional[str] = Field(None, description="Target resolution, e.g. '1024x1024'")
    training_steps: int = Field(1000, ge=1, le=100000)
    estimated_time_minutes: Optional[int] = Field(None, ge=0)
    dataset_id: str = Field(..., min_length=1)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "My portrait model",
                "type": "high-quality",
                "resolution": "1024x1024",
                "training_steps": 1000,
                "dataset_id": "5f1c0b9e-3a0e-4d6b-9a43-0c2f4f0f9d11"
            }
        }


# --- Response Schemas ---

class ModelResponse(BaseModel):
    """Full model details."""
    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    type: str
    resolution: Optional[str] = None
    training_steps: Optional[int] = None
    estimated_time_minutes: Optional[int] = None
    status: str
    training_run_id: Optional[str] = None
    url: Optional[str] = None
    endpoint_url: Optional[str] = None
    dataset_id: str
    number_of_images: Optional[int] = None
    created_at: datetime
    training_finished_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TrainingStatusReport(BaseModel):
    """Result of a status poll."""
    model_config = {"protected_namespaces": ()}

    model_id: str
    status: str  # local lifecycle status after the poll
    provider_status: ProviderStatus
    current_step: int = 0
    total_steps: int = 0
    progress_percent: float = 0.0


class CleanupStepResult(BaseModel):
    """Outcome of one best-effort cleanup step."""
    step: str
    outcome: str  # succeeded | failed | skipped
    error: Optional[str] = None


class CancelResult(BaseModel):
    model_config = {"protected_namespaces": ()}

    model_id: str
    status: str
    provider_cancelled: bool
    message: str


class DeleteResult(BaseModel):
    model_config = {"protected_namespaces": ()}

    model_id: str
    cleanup: List[CleanupStepResult] = []


class DownloadLink(BaseModel):
    """Time-limited retrieval URL for a model artifact."""
    download_url: str
    file_name: str
    expires_in: int


class ApiResult(BaseModel):
    """Envelope used by lifecycle routes."""
    success: bool = True
    data: Any = None


__all__ = [
    "ProviderStatus",
    "CreateModelRequest",
    "ModelResponse",
    "TrainingStatusReport",
    "CleanupStepResult",
    "CancelResult",
    "DeleteResult",
    "DownloadLink",
    "ApiResult",
]
