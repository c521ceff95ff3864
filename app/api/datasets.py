"""
Dataset API Routes
Presigned ZIP upload and dataset registration.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user_id, get_db, get_storage
from app.core.errors import ValidationError
from app.schemas.dataset import (
    CreateDatasetRequest,
    DatasetResponse,
    UploadUrlRequest,
    UploadUrlResponse,
)
from app.schemas.model import ApiResult
from app.services.dataset_store import DatasetStore
from app.services.storage import StorageService

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_path_segment(value: str, label: str):
    if "/" in value or "\\" in value or ".." in value:
        raise ValidationError(f"Invalid {label} format")


def dataset_id_from_key(zip_key: str, user_id: str) -> str:
    """Validate ``<user>/datasets/<id>.zip`` and return the dataset id."""
    parts = zip_key.split("/")
    if len(parts) != 3 or parts[1] != "datasets" or not parts[2].endswith(".zip"):
        raise ValidationError("Invalid ZIP key format")
    if parts[0] != user_id:
        raise ValidationError("ZIP key does not belong to the current user")

    dataset_id = parts[2][: -len(".zip")]
    if not dataset_id or ".." in dataset_id:
        raise ValidationError("Invalid ZIP key format")
    return dataset_id


@router.post("/upload-url", response_model=UploadUrlResponse)
async def create_upload_url(
    request: UploadUrlRequest,
    user_id: str = Depends(get_current_user_id),
    storage: StorageService = Depends(get_storage),
):
    """Presigned PUT URL for a dataset ZIP."""
    _check_path_segment(request.file_name, "file name")

    dataset_id = request.dataset_id or str(uuid.uuid4())
    _check_path_segment(dataset_id, "dataset id")

    key = f"{user_id}/datasets/{dataset_id}.zip"
    upload_url = await storage.generate_upload_url(key)
    logger.info(f"[Datasets] Issued upload URL for {request.file_name} -> {key}")

    return UploadUrlResponse(
        upload_url=upload_url,
        key=key,
        dataset_id=dataset_id,
        expires_in=storage.url_expiration,
    )


@router.post("", response_model=ApiResult, status_code=status.HTTP_201_CREATED)
async def create_dataset(
    request: CreateDatasetRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    """Register a dataset once its ZIP is uploaded."""
    dataset_id = dataset_id_from_key(request.zip_key, user_id)

    store = DatasetStore(db)
    if store.get(dataset_id):
        raise ValidationError("Dataset already exists")

    dataset = store.create(
        dataset_id=dataset_id,
        user_id=user_id,
        url=storage.build_uri(request.zip_key),
        number_of_images=request.number_of_images,
    )
    return ApiResult(data=DatasetResponse.model_validate(dataset))


@router.get("", response_model=ApiResult)
async def list_datasets(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    datasets = DatasetStore(db).list_for_user(user_id)
    return ApiResult(data=[DatasetResponse.model_validate(d) for d in datasets])
