"""
API Key Routes
Manage keys for the public generation API.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user_id, get_db
from app.schemas.api_key import ApiKeyResponse, CreateApiKeyRequest, CreatedApiKeyResponse
from app.schemas.model import ApiResult
from app.services.api_keys import ApiKeyService

router = APIRouter()


@router.post("", response_model=ApiResult, status_code=status.HTTP_201_CREATED)
async def create_api_key(
    request: CreateApiKeyRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Create a key. The plain key is only ever returned here."""
    record, plain_key = ApiKeyService(db).create(user_id, name=request.name, expires_at=request.expires_at)
    return ApiResult(data=CreatedApiKeyResponse(
        api_key=ApiKeyResponse.model_validate(record),
        plain_key=plain_key,
    ))


@router.get("", response_model=ApiResult)
async def list_api_keys(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    keys = ApiKeyService(db).list_for_user(user_id)
    return ApiResult(data=[ApiKeyResponse.model_validate(k) for k in keys])


@router.post("/{key_id}/revoke", response_model=ApiResult)
async def revoke_api_key(
    key_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    record = ApiKeyService(db).revoke(user_id, key_id)
    return ApiResult(data=ApiKeyResponse.model_validate(record))


@router.delete("/{key_id}", response_model=ApiResult)
async def delete_api_key(
    key_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    ApiKeyService(db).delete(user_id, key_id)
    return ApiResult(data={"id": key_id})
