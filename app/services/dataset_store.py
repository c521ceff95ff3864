"""
Dataset Store
Persistence for uploaded training datasets.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.models.dataset import Dataset

logger = logging.getLogger(__name__)


class DatasetStore:
    """Read/write contract for dataset records."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, dataset_id: str, user_id: str, url: str, number_of_images: int) -> Dataset:
        dataset = Dataset(id=dataset_id, user_id=user_id, url=url, number_of_images=number_of_images)
        self.db.add(dataset)
        self.db.commit()
        self.db.refresh(dataset)
        logger.info(f"Created dataset {dataset.id} ({number_of_images} images) for user {user_id}")
        return dataset

    def get(self, dataset_id: str) -> Optional[Dataset]:
        return self.db.query(Dataset).filter(Dataset.id == dataset_id).first()

    def get_owned(self, dataset_id: str, user_id: str) -> Optional[Dataset]:
        return self.db.query(Dataset).filter(
            Dataset.id == dataset_id,
            Dataset.user_id == user_id
        ).first()

    def require_owned(self, dataset_id: str, user_id: str) -> Dataset:
        dataset = self.get_owned(dataset_id, user_id)
        if not dataset:
            raise NotFoundError("Dataset not found")
        return dataset

    def list_for_user(self, user_id: str) -> List[Dataset]:
        return self.db.query(Dataset).filter(
            Dataset.user_id == user_id
        ).order_by(Dataset.created_at.desc()).all()

    def delete(self, dataset: Dataset):
        dataset_id = dataset.id
        self.db.delete(dataset)
        self.db.commit()
        logger.info(f"Deleted dataset record {dataset_id}")
