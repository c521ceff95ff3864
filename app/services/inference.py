"""
Inference Service
Image generation against a completed model's serverless endpoint.
"""

import logging
import random
import time
from typing import Any, List, Optional

import httpx
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ArtifactUnavailableError, UpstreamError
from app.schemas.generate import GenerateImageRequest, GenerateImageResponse, GenerationParameters
from app.services.model_store import ModelStore

logger = logging.getLogger(__name__)

MAX_SEED = 999999


def strip_data_url(image: str) -> str:
    """Drop a ``data:image/...;base64,`` prefix, keeping raw base64."""
    if image.startswith("data:image/"):
        return image.split(",", 1)[1]
    return image


def extract_images(payload: Any) -> List[str]:
    """Find the image list in an endpoint response: output.images, output, or images."""
    images = None
    if isinstance(payload, dict):
        output = payload.get("output")
        if isinstance(output, dict):
            images = output.get("images")
        if images is None and isinstance(output, list):
            images = output
        if images is None:
            images = payload.get("images")

    if not isinstance(images, list):
        raise UpstreamError("Invalid response format: missing images array")
    return [strip_data_url(image) for image in images]


class InferenceService:

    def __init__(
        self,
        db: Session,
        api_key: Optional[str] = None,
        timeout: float = 300.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.models = ModelStore(db)
        self.api_key = api_key if api_key is not None else settings.RUNPOD_API_KEY
        self.timeout = timeout
        self._transport = transport

    async def generate(self, user_id: str, model_id: str, request: GenerateImageRequest) -> GenerateImageResponse:
        """
        Generate images with a user's completed model.

        Raises:
            NotFoundError: model missing or not owned by the key's user
            ArtifactUnavailableError: model has no live endpoint yet
            UpstreamError: endpoint failed or returned no images
        """
        model = self.models.require_owned(model_id, user_id)
        if not model.endpoint_url:
            raise ArtifactUnavailableError("Model is not ready for generation yet")
        if not self.api_key:
            raise UpstreamError("RUNPOD_API_KEY is not configured")

        parameters = GenerationParameters(
            **request.model_dump(exclude={"seed"}),
            seed=request.seed if request.seed is not None else random.randint(0, MAX_SEED),
        )

        started = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{model.endpoint_url.rstrip('/')}/runsync",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={"input": parameters.model_dump()},
                )
        except httpx.HTTPError as e:
            logger.error(f"[Inference] Network error for model {model.id}: {e}")
            raise UpstreamError(f"Image generation request failed: {e}")

        if response.is_error:
            logger.error(f"[Inference] Endpoint error for model {model.id}: {response.status_code} {response.text[:300]}")
            raise UpstreamError(
                f"Image generation request failed: {response.status_code} {response.reason_phrase}",
                http_status=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError:
            raise UpstreamError("Invalid JSON from inference endpoint", http_status=response.status_code)

        images = extract_images(payload)
        inference_time = round(time.monotonic() - started, 3)
        logger.info(f"[Inference] Model {model.id}: {len(images)} image(s) in {inference_time}s")

        return GenerateImageResponse(images=images, inference_time=inference_time, parameters=parameters)
