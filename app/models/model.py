"""
Trained Model
Database model for user-trained image models and their lifecycle metadata.

A model is created in ``pending`` when a dataset is attached, moves to
``training`` once the provider accepts the job, to ``deploying`` when the
provider reports finished weights, and to ``completed`` once the inference
endpoint is live. ``failed`` and ``cancelled`` are the other terminal states.
"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Column, String, Text, DateTime, Integer, ForeignKey
from sqlalchemy.orm import relationship

from app.core.database import Base


class ModelStatus(str, Enum):
    """Lifecycle states of a trained model."""
    PENDING = "pending"        # Row created, training not started
    TRAINING = "training"      # Provider job running
    DEPLOYING = "deploying"    # Weights stored, inference endpoint being built
    COMPLETED = "completed"    # Endpoint live
    FAILED = "failed"          # Start or training failed
    CANCELLED = "cancelled"    # Cancelled by the owner

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({ModelStatus.COMPLETED, ModelStatus.FAILED, ModelStatus.CANCELLED})


class TrainedModel(Base):
    """A user's model: training configuration, provider linkage and artifact locations."""

    __tablename__ = "models"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False, index=True)

    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String, nullable=False)  # e.g. "fast", "small", "high-quality"
    resolution = Column(String, nullable=True)  # e.g. "1024x1024"
    training_steps = Column(Integer, nullable=True)
    estimated_time_minutes = Column(Integer, nullable=True)

    status = Column(String, nullable=False, default=ModelStatus.PENDING.value, index=True)

    # Provider job id, written once when training starts
    training_run_id = Column(String, nullable=True)
    # r2:// location of the trained weights, written by the training-finished webhook
    url = Column(String, nullable=True)
    # Inference endpoint, written by the deployment-finished webhook
    endpoint_url = Column(String, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    training_finished_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)  # Set on entry into a terminal state

    dataset_id = Column(String, ForeignKey("datasets.id"), nullable=False)
    dataset = relationship("Dataset", back_populates="models")

    def __repr__(self):
        return f"<TrainedModel {self.id} ({self.status})>"

    @property
    def model_status(self) -> ModelStatus:
        return ModelStatus(self.status)

    @property
    def number_of_images(self):
        return self.dataset.number_of_images if self.dataset else None
