"""
Model Record Store
Persistence for TrainedModel rows.

All lookups that serve a user request are owner-scoped: a model that exists
but belongs to someone else is indistinguishable from a missing one.
Status changes go through ``transition``, a conditional update on the
expected current status, so two racing requests cannot both win.
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session, joinedload

from app.core.errors import ConsistencyError, NotFoundError
from app.models.model import TrainedModel, ModelStatus

logger = logging.getLogger(__name__)


class ModelStore:
    """Read/write contract for model records."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, **fields) -> TrainedModel:
        model = TrainedModel(**fields)
        self.db.add(model)
        self.db.commit()
        self.db.refresh(model)
        logger.info(f"Created model {model.id} for user {model.user_id} ({model.status})")
        return model

    def get(self, model_id: str) -> Optional[TrainedModel]:
        """Get a model by id, regardless of owner (webhooks only)."""
        return self.db.query(TrainedModel).filter(TrainedModel.id == model_id).first()

    def get_owned(self, model_id: str, user_id: str) -> Optional[TrainedModel]:
        return self.db.query(TrainedModel).options(joinedload(TrainedModel.dataset)).filter(
            TrainedModel.id == model_id,
            TrainedModel.user_id == user_id
        ).first()

    def require_owned(self, model_id: str, user_id: str) -> TrainedModel:
        model = self.get_owned(model_id, user_id)
        if not model:
            raise NotFoundError("Model not found")
        return model

    def list_for_user(self, user_id: str) -> List[TrainedModel]:
        """List a user's models, newest first."""
        return self.db.query(TrainedModel).options(joinedload(TrainedModel.dataset)).filter(
            TrainedModel.user_id == user_id
        ).order_by(TrainedModel.created_at.desc()).all()

    def transition(
        self,
        model_id: str,
        expected: Iterable[ModelStatus],
        new_status: ModelStatus,
        **fields
    ) -> TrainedModel:
        """
        Move a model to new_status if its current status is one of expected.

        Args:
            model_id: Model to update
            expected: Statuses the model may currently be in
            new_status: Status to write
            **fields: Other columns written in the same statement

        Returns:
            The refreshed model

        Raises:
            ConsistencyError: the model is not in an expected status (or is gone)
        """
        expected_values = [status.value for status in expected]
        result = self.db.execute(
            update(TrainedModel)
            .where(TrainedModel.id == model_id, TrainedModel.status.in_(expected_values))
            .values(status=new_status.value, **fields)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

        if result.rowcount == 0:
            current = self.get(model_id)
            current_status = current.status if current else "deleted"
            logger.warning(
                f"Rejected transition of model {model_id} to {new_status.value}: "
                f"status is {current_status}, expected one of {expected_values}"
            )
            raise ConsistencyError(
                f"Model is {current_status} and cannot move to {new_status.value}"
            )

        model = self.get(model_id)
        self.db.refresh(model)
        logger.info(f"Model {model_id} -> {new_status.value}")
        return model

    def delete(self, model: TrainedModel):
        model_id = model.id
        self.db.delete(model)
        self.db.commit()
        logger.info(f"Deleted model record {model_id}")
