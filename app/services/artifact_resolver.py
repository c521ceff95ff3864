"""
Artifact Resolver
Turns a finished model's stored weights into a time-limited download link.
"""

import logging

from sqlalchemy.orm import Session

from app.core.errors import ArtifactUnavailableError
from app.schemas.model import DownloadLink
from app.services.lifecycle import download_file_name
from app.services.model_store import ModelStore
from app.services.storage import StorageService, extract_storage_key

logger = logging.getLogger(__name__)


class ArtifactResolver:

    def __init__(self, db: Session, storage: StorageService):
        self.models = ModelStore(db)
        self.storage = storage

    async def resolve_download(self, user_id: str, model_id: str) -> DownloadLink:
        """
        Build a presigned download link for a model's weights.

        Raises:
            NotFoundError: model missing or not owned by user
            ArtifactUnavailableError: no weights recorded, or the object is gone
            StorageError: storage could not be queried
        """
        model = self.models.require_owned(model_id, user_id)

        if not model.url:
            raise ArtifactUnavailableError("Model is not ready for download yet")

        key = extract_storage_key(model.url)
        if not await self.storage.file_exists(key):
            logger.warning(f"[Storage] Model {model.id} points at missing object {key}")
            raise ArtifactUnavailableError("Model file not found in storage")

        download_url = await self.storage.generate_download_url(key)
        return DownloadLink(
            download_url=download_url,
            file_name=download_file_name(model.name),
            expires_in=self.storage.url_expiration,
        )
