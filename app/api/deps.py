"""
API Dependencies
Common dependencies for FastAPI routes (database sessions, auth, collaborators).
"""

from typing import Generator, Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.database import SessionLocal
from app.core.security import decode_user_id
from app.services.api_keys import ApiKeyService
from app.services.billing import BillingService
from app.services.deploy_trigger import DeployTrigger
from app.services.inference import InferenceService
from app.services.job_provider import JobProviderClient
from app.services.lifecycle import LifecycleController
from app.services.storage import StorageService

bearer_scheme = HTTPBearer(auto_error=False)


def get_db() -> Generator:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """Resolve the session user from the bearer token."""
    return decode_user_id(credentials.credentials if credentials else None)


def get_storage() -> StorageService:
    return StorageService()


def get_job_provider() -> JobProviderClient:
    return JobProviderClient()


def get_deploy_trigger() -> DeployTrigger:
    return DeployTrigger()


def get_lifecycle(
    db: Session = Depends(get_db),
    provider: JobProviderClient = Depends(get_job_provider),
    storage: StorageService = Depends(get_storage),
) -> LifecycleController:
    return LifecycleController(db, provider, storage)


def get_inference(db: Session = Depends(get_db)) -> InferenceService:
    return InferenceService(db)


def get_billing(db: Session = Depends(get_db)) -> BillingService:
    return BillingService(db)


def get_api_key_user(
    x_api_key: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> str:
    """Resolve the user owning the X-API-Key header."""
    return ApiKeyService(db).verify(x_api_key)
