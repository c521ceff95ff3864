# Pydantic schemas package
from app.schemas.model import (
    ProviderStatus, CreateModelRequest, ModelResponse, TrainingStatusReport,
    CleanupStepResult, CancelResult, DeleteResult, DownloadLink, ApiResult
)
from app.schemas.webhook import TrainingFinishedPayload, DeploymentFinishedPayload
from app.schemas.dataset import UploadUrlRequest, UploadUrlResponse, CreateDatasetRequest, DatasetResponse
from app.schemas.api_key import CreateApiKeyRequest, ApiKeyResponse, CreatedApiKeyResponse
from app.schemas.generate import GenerateImageRequest, GenerateImageResponse, GenerationParameters

__all__ = [
    "ProviderStatus", "CreateModelRequest", "ModelResponse", "TrainingStatusReport",
    "CleanupStepResult", "CancelResult", "DeleteResult", "DownloadLink", "ApiResult",
    "TrainingFinishedPayload", "DeploymentFinishedPayload",
    "UploadUrlRequest", "UploadUrlResponse", "CreateDatasetRequest", "DatasetResponse",
    "CreateApiKeyRequest", "ApiKeyResponse", "CreatedApiKeyResponse",
    "GenerateImageRequest", "GenerateImageResponse", "GenerationParameters",
]
