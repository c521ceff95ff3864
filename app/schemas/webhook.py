"""
Webhook Schemas
Payloads sent by the training provider and the deployment pipeline.
"""

from pydantic import BaseModel, Field


class TrainingFinishedPayload(BaseModel):
    """Training finished: weights are stored at model_path."""
    model_path: str = Field(..., min_length=1)

    model_config = {"protected_namespaces": ()}


class DeploymentFinishedPayload(BaseModel):
    """Deployment finished: the inference endpoint is live at endpoint_url."""
    endpoint_url: str = Field(..., min_length=1)
