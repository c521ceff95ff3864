"""
Model Lifecycle Controller
State machine for a model's progression from dataset attachment to a live endpoint.

    pending ──start──▶ training ──training-finished──▶ deploying ──deployment-finished──▶ completed
       │                 │  │
       └─start error─▶ failed ◀─poll: failed
                         │
                         └──cancel──▶ cancelled

Entry points are user actions (create/start, poll, cancel, delete) and
provider webhooks. Every status write is a conditional update on the status
the operation expects, so a lost race surfaces as ConsistencyError instead of
silently overwriting a newer state.
"""

import logging
import re
from datetime import datetime
from typing import Dict, FrozenSet, List, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import (
    ConsistencyError,
    JobNotFoundError,
    JobProviderError,
    NotFoundError,
    ValidationError,
)
from app.models.model import TrainedModel, ModelStatus
from app.schemas.model import (
    CancelResult,
    CleanupStepResult,
    CreateModelRequest,
    DeleteResult,
    ProviderStatus,
    TrainingStatusReport,
)
from app.services.cleanup import CleanupPlan
from app.services.dataset_store import DatasetStore
from app.services.job_provider import JobProviderClient, TrainingJobSpec, ProviderJobStatus
from app.services.model_store import ModelStore
from app.services.storage import StorageService

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: Dict[ModelStatus, FrozenSet[ModelStatus]] = {
    ModelStatus.PENDING: frozenset({ModelStatus.TRAINING, ModelStatus.FAILED}),
    ModelStatus.TRAINING: frozenset({ModelStatus.DEPLOYING, ModelStatus.FAILED, ModelStatus.CANCELLED}),
    ModelStatus.DEPLOYING: frozenset({ModelStatus.COMPLETED}),
    ModelStatus.COMPLETED: frozenset(),
    ModelStatus.FAILED: frozenset(),
    ModelStatus.CANCELLED: frozenset(),
}


def can_transition(from_status: ModelStatus, to_status: ModelStatus) -> bool:
    return to_status in ALLOWED_TRANSITIONS[from_status]


def artifact_paths(bucket: str, user_id: str, model_id: str) -> Tuple[str, str]:
    """Storage locations the provider writes weights and logs to."""
    model_path = f"r2://{bucket}/{user_id}/models/model-{model_id}.safetensors"
    log_path = f"r2://{bucket}/{user_id}/models/training-{model_id}.log"
    return model_path, log_path


def download_file_name(model_name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", model_name) + ".safetensors"


class LifecycleController:
    """
    Orchestrates model status transitions.

    Handles:
    - Creating models on a user's dataset and starting provider training
    - Client-driven status polls (never regress a finished model)
    - Cancellation and deletion with best-effort provider/storage cleanup
    - Training-finished and deployment-finished provider callbacks
    """

    def __init__(self, db: Session, provider: JobProviderClient, storage: StorageService):
        self.db = db
        self.provider = provider
        self.storage = storage
        self.models = ModelStore(db)
        self.datasets = DatasetStore(db)

    # --- Queries ---

    def get_model(self, user_id: str, model_id: str) -> TrainedModel:
        return self.models.require_owned(model_id, user_id)

    def list_models(self, user_id: str) -> List[TrainedModel]:
        return self.models.list_for_user(user_id)

    # --- Creation and start ---

    def create_model(self, user_id: str, request: CreateModelRequest) -> TrainedModel:
        """
        Create a pending model on one of the user's datasets.

        The dataset is checked before the row is written, so a bad dataset id
        never leaves a pending model behind.
        """
        self.datasets.require_owned(request.dataset_id, user_id)

        return self.models.create(
            user_id=user_id,
            name=request.name,
            description=request.description or "",
            type=request.type,
            resolution=request.resolution,
            training_steps=request.training_steps,
            estimated_time_minutes=request.estimated_time_minutes,
            status=ModelStatus.PENDING.value,
            dataset_id=request.dataset_id,
        )

    async def create_and_start(self, user_id: str, request: CreateModelRequest) -> TrainedModel:
        model = self.create_model(user_id, request)
        return await self.start_training(user_id, model.id)

    async def start_training(self, user_id: str, model_id: str) -> TrainedModel:
        """
        Submit a pending model to the training provider.

        Raises:
            NotFoundError: model or its dataset is missing (model stays pending)
            ValidationError: model is not pending
            JobProviderError: provider rejected the job (model becomes failed)
        """
        model = self.models.require_owned(model_id, user_id)

        if model.model_status != ModelStatus.PENDING:
            raise ValidationError(f"Training can only be started for pending models (model is {model.status})")

        dataset = self.datasets.get_owned(model.dataset_id, user_id)
        if not dataset:
            logger.error(f"Dataset {model.dataset_id} for model {model.id} could not be loaded")
            raise NotFoundError("Failed to get dataset information for training")

        model_path, log_path = artifact_paths(self.storage.bucket, user_id, model.id)
        spec = TrainingJobSpec(
            dataset_bucket_path=dataset.url,
            model_bucket_path=model_path,
            steps=model.training_steps,
            model_type=model.type,
            log_bucket_path=log_path,
            callback_url=f"{settings.APP_URL.rstrip('/')}/api/models/{model.id}/training-finished",
        )

        try:
            job_id = await self.provider.start(spec)
        except JobProviderError as e:
            logger.error(f"Failed to start training for model {model.id}: {e}")
            try:
                self._move(model.id, ModelStatus.PENDING, ModelStatus.FAILED)
            except ConsistencyError:
                logger.warning(f"Model {model.id} changed while its start was failing; status left as is")
            raise JobProviderError(f"Failed to start training: {e.message}", http_status=e.http_status) from e

        try:
            return self._move(model.id, ModelStatus.PENDING, ModelStatus.TRAINING, training_run_id=job_id)
        except ConsistencyError:
            # Model was deleted or changed while the job was being submitted
            logger.error(f"Model {model.id} no longer pending after starting job {job_id}; cancelling job")
            try:
                await self.provider.cancel(job_id)
            except JobProviderError as cancel_error:
                logger.error(f"Could not cancel orphaned job {job_id}: {cancel_error}")
            raise

    # --- Polling ---

    async def poll_status(self, user_id: str, model_id: str) -> TrainingStatusReport:
        """
        Report training progress for a model.

        Only models in training are checked with the provider. Anything past
        training is answered from the stored state, so a poll can never move
        a finished model backwards.
        """
        model = self.models.require_owned(model_id, user_id)

        if model.model_status != ModelStatus.TRAINING or not model.training_run_id:
            return self._local_report(model)

        try:
            job = await self.provider.status(model.training_run_id)
        except JobNotFoundError:
            # Provider archived the job; a webhook may already have finished it
            self.db.refresh(model)
            if model.model_status in (ModelStatus.COMPLETED, ModelStatus.FAILED):
                return self._local_report(model)
            logger.warning(f"Provider has no job {model.training_run_id} for model {model.id}; status unknown")
            return self._report(model, ProviderStatus.UNKNOWN)

        if job.status == ProviderStatus.FAILED:
            try:
                model = self._move(model.id, ModelStatus.TRAINING, ModelStatus.FAILED)
            except ConsistencyError:
                self.db.refresh(model)
                return self._local_report(model)
        elif job.status == ProviderStatus.UNKNOWN:
            logger.info(f"Unrecognized provider status '{job.raw_status}' for model {model.id}")

        return self._report(model, job.status, job)

    def _report(self, model: TrainedModel, provider_status: ProviderStatus, job: ProviderJobStatus = None) -> TrainingStatusReport:
        return TrainingStatusReport(
            model_id=model.id,
            status=model.status,
            provider_status=provider_status,
            current_step=job.current_step if job else 0,
            total_steps=job.total_steps if job else (model.training_steps or 0),
            progress_percent=job.progress_percent if job else 0.0,
        )

    def _local_report(self, model: TrainedModel) -> TrainingStatusReport:
        steps = model.training_steps or 0
        status = model.model_status
        if status in (ModelStatus.DEPLOYING, ModelStatus.COMPLETED):
            return TrainingStatusReport(
                model_id=model.id, status=model.status, provider_status=ProviderStatus.COMPLETED,
                current_step=steps, total_steps=steps, progress_percent=100.0,
            )
        if status == ModelStatus.FAILED:
            return TrainingStatusReport(
                model_id=model.id, status=model.status, provider_status=ProviderStatus.FAILED,
                current_step=0, total_steps=steps, progress_percent=0.0,
            )
        return self._report(model, ProviderStatus.UNKNOWN)

    # --- Cancellation and deletion ---

    async def cancel_training(self, user_id: str, model_id: str) -> CancelResult:
        """
        Cancel a model that is training.

        The provider cancel call is best effort: the model is marked cancelled
        even if the provider could not be reached.
        """
        model = self.models.require_owned(model_id, user_id)

        if not model.training_run_id:
            raise ValidationError("No active training to cancel")
        if model.model_status != ModelStatus.TRAINING:
            raise ValidationError("Training is not in progress and cannot be cancelled")

        provider_cancelled = True
        try:
            await self.provider.cancel(model.training_run_id)
        except JobProviderError as e:
            provider_cancelled = False
            logger.warning(f"Provider cancel for model {model.id} failed, cancelling locally: {e}")

        model = self._move(model.id, ModelStatus.TRAINING, ModelStatus.CANCELLED)
        return CancelResult(
            model_id=model.id,
            status=model.status,
            provider_cancelled=provider_cancelled,
            message="Training cancelled successfully",
        )

    async def delete_model(self, user_id: str, model_id: str) -> DeleteResult:
        """
        Delete a model and, best effort, everything it owns.

        Order: cancel the provider job, delete the weights, delete the dataset
        archive, delete the model row, delete the dataset row. Only the model
        row deletion can fail the operation.
        """
        model = self.models.require_owned(model_id, user_id)
        job_id = model.training_run_id
        artifact_url = model.url
        dataset = model.dataset
        dataset_shared = dataset is not None and any(m.id != model.id for m in dataset.models)

        plan = CleanupPlan(label=f"delete {model.id}")
        if model.model_status == ModelStatus.TRAINING and job_id:
            plan.add("cancel_training_job", lambda: self.provider.cancel(job_id))
        else:
            plan.skip("cancel_training_job", "no training in progress")

        if artifact_url:
            plan.add("delete_model_file", lambda: self.storage.delete_uri(artifact_url))
        else:
            plan.skip("delete_model_file", "no artifact stored")

        if dataset is None:
            plan.skip("delete_dataset_file", "no dataset")
        elif dataset_shared:
            plan.skip("delete_dataset_file", "dataset used by other models")
        else:
            dataset_url = dataset.url
            plan.add("delete_dataset_file", lambda: self.storage.delete_uri(dataset_url))

        results = await plan.run()

        self.models.delete(model)

        if dataset is not None and not dataset_shared:
            async def _delete_dataset_record():
                self.datasets.delete(dataset)

            results += await CleanupPlan(label=f"delete {model_id}").add(
                "delete_dataset_record", _delete_dataset_record
            ).run()

        return DeleteResult(
            model_id=model_id,
            cleanup=[CleanupStepResult(**r.as_dict()) for r in results],
        )

    # --- Provider callbacks ---

    def mark_training_finished(self, model_id: str, model_path: str) -> Tuple[TrainedModel, bool]:
        """
        Record finished weights and move the model to deploying.

        Returns:
            (model, changed); changed is False for a repeated delivery of the
            same callback, in which case nothing is written
        """
        model = self.models.get(model_id)
        if not model:
            raise NotFoundError("Model not found")

        if model.url == model_path and model.model_status in (ModelStatus.DEPLOYING, ModelStatus.COMPLETED):
            logger.info(f"Duplicate training-finished callback for model {model_id}; ignoring")
            return model, False

        model = self._move(
            model_id,
            ModelStatus.TRAINING,
            ModelStatus.DEPLOYING,
            url=model_path,
            training_finished_at=datetime.utcnow(),
        )
        return model, True

    def mark_deployment_finished(self, model_id: str, endpoint_url: str) -> Tuple[TrainedModel, bool]:
        """Record the live inference endpoint and complete the model."""
        model = self.models.get(model_id)
        if not model:
            raise NotFoundError("Model not found")

        if model.endpoint_url == endpoint_url and model.model_status == ModelStatus.COMPLETED:
            logger.info(f"Duplicate deployment-finished callback for model {model_id}; ignoring")
            return model, False

        model = self._move(model_id, ModelStatus.DEPLOYING, ModelStatus.COMPLETED, endpoint_url=endpoint_url)
        return model, True

    # --- Internals ---

    def _move(self, model_id: str, from_status: ModelStatus, to_status: ModelStatus, **fields) -> TrainedModel:
        if not can_transition(from_status, to_status):
            raise ValidationError(f"Illegal transition {from_status.value} -> {to_status.value}")
        if to_status.is_terminal:
            fields.setdefault("completed_at", datetime.utcnow())
        return self.models.transition(model_id, [from_status], to_status, **fields)
