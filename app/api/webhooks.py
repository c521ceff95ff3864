"""
Webhook API Routes
Callbacks from the training provider and the deployment pipeline.

Both endpoints authenticate with the shared WEBHOOK_TOKEN before the body
is even parsed, so an unauthenticated caller learns nothing about payload
shape or model existence.
"""

import logging
from typing import Optional, Type

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.api.deps import get_deploy_trigger, get_lifecycle
from app.core.errors import ValidationError
from app.core.security import verify_webhook_token
from app.schemas.webhook import DeploymentFinishedPayload, TrainingFinishedPayload
from app.services.deploy_trigger import DeployTrigger, dispatch_deployment
from app.services.lifecycle import LifecycleController

logger = logging.getLogger(__name__)

router = APIRouter()


async def _parse_payload(request: Request, schema: Type[BaseModel], field: str):
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("Request body must be valid JSON")
    try:
        return schema.model_validate(body)
    except PydanticValidationError:
        raise ValidationError(f"{field} is required")


@router.post("/{model_id}/training-finished")
async def training_finished(
    model_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    authorization: Optional[str] = Header(None),
    lifecycle: LifecycleController = Depends(get_lifecycle),
    trigger: DeployTrigger = Depends(get_deploy_trigger),
):
    """Training finished: record weights, move to deploying, dispatch deployment."""
    verify_webhook_token(authorization)
    payload = await _parse_payload(request, TrainingFinishedPayload, "model_path")

    logger.info(f"[Webhook] training-finished for model {model_id}: {payload.model_path}")
    model, changed = lifecycle.mark_training_finished(model_id, payload.model_path)

    if changed:
        background_tasks.add_task(dispatch_deployment, trigger, model.id, payload.model_path)

    return {
        "success": True,
        "message": "Model training completed successfully",
        "model_id": model.id,
        "model_path": payload.model_path,
    }


@router.post("/{model_id}/deployment-finished")
async def deployment_finished(
    model_id: str,
    request: Request,
    authorization: Optional[str] = Header(None),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    """Deployment finished: record the endpoint and complete the model."""
    verify_webhook_token(authorization)
    payload = await _parse_payload(request, DeploymentFinishedPayload, "endpoint_url")

    logger.info(f"[Webhook] deployment-finished for model {model_id}: {payload.endpoint_url}")
    model, _ = lifecycle.mark_deployment_finished(model_id, payload.endpoint_url)

    return {
        "success": True,
        "message": "Model deployment completed successfully",
        "model_id": model.id,
        "endpoint_url": payload.endpoint_url,
    }
