"""
Generation API Routes
Public image generation with a completed model, authenticated by X-API-Key.
"""

import logging

from fastapi import APIRouter, Depends

from app.api.deps import get_api_key_user, get_inference
from app.schemas.generate import GenerateImageRequest, GenerateImageResponse
from app.services.inference import InferenceService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/models/{model_id}/generate", response_model=GenerateImageResponse)
async def generate_images(
    model_id: str,
    request: GenerateImageRequest,
    user_id: str = Depends(get_api_key_user),
    inference: InferenceService = Depends(get_inference),
):
    logger.info(f"[Generate] {request.count} image(s) for model {model_id}")
    return await inference.generate(user_id, model_id, request)
