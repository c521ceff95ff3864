"""
Dataset Model
Packaged training images (a single ZIP archive in object storage).
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer
from sqlalchemy.orm import relationship

from app.core.database import Base


class Dataset(Base):
    """Uploaded dataset archive owned by one user."""

    __tablename__ = "datasets"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False, index=True)

    url = Column(String, nullable=False)  # r2://bucket/<user>/datasets/<id>.zip
    number_of_images = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    models = relationship("TrainedModel", back_populates="dataset")

    def __repr__(self):
        return f"<Dataset {self.id} ({self.number_of_images} images)>"
