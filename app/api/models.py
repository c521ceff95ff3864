"""
Models API Routes
User-facing model lifecycle: create, train, poll, cancel, delete, download.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user_id, get_db, get_lifecycle, get_storage
from app.schemas.model import ApiResult, CreateModelRequest, ModelResponse
from app.services.artifact_resolver import ArtifactResolver
from app.services.lifecycle import LifecycleController
from app.services.storage import StorageService

router = APIRouter()


@router.post("", response_model=ApiResult, status_code=status.HTTP_201_CREATED)
async def create_model(
    request: CreateModelRequest,
    user_id: str = Depends(get_current_user_id),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    """
    Create a model on a dataset and start training it.

    The model is left failed (not pending) if the provider rejects the job.
    """
    model = await lifecycle.create_and_start(user_id, request)
    return ApiResult(data=ModelResponse.model_validate(model))


@router.get("", response_model=ApiResult)
async def list_models(
    user_id: str = Depends(get_current_user_id),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    models = lifecycle.list_models(user_id)
    return ApiResult(data=[ModelResponse.model_validate(m) for m in models])


@router.get("/{model_id}", response_model=ApiResult)
async def get_model(
    model_id: str,
    user_id: str = Depends(get_current_user_id),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    model = lifecycle.get_model(user_id, model_id)
    return ApiResult(data=ModelResponse.model_validate(model))


@router.post("/{model_id}/train", response_model=ApiResult)
async def start_training(
    model_id: str,
    user_id: str = Depends(get_current_user_id),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    """Start training for a pending model."""
    model = await lifecycle.start_training(user_id, model_id)
    return ApiResult(data=ModelResponse.model_validate(model))


@router.get("/{model_id}/status", response_model=ApiResult)
async def get_training_status(
    model_id: str,
    user_id: str = Depends(get_current_user_id),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    """Poll training progress (records provider-reported failure)."""
    report = await lifecycle.poll_status(user_id, model_id)
    return ApiResult(data=report)


@router.post("/{model_id}/cancel", response_model=ApiResult)
async def cancel_training(
    model_id: str,
    user_id: str = Depends(get_current_user_id),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    result = await lifecycle.cancel_training(user_id, model_id)
    return ApiResult(data=result)


@router.delete("/{model_id}", response_model=ApiResult)
async def delete_model(
    model_id: str,
    user_id: str = Depends(get_current_user_id),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    """Delete a model. Cleanup failures are reported, not raised."""
    result = await lifecycle.delete_model(user_id, model_id)
    return ApiResult(data=result)


@router.get("/{model_id}/download", response_model=ApiResult)
async def download_model(
    model_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    link = await ArtifactResolver(db, storage).resolve_download(user_id, model_id)
    return ApiResult(data=link)
