"""
Generate Schemas
Pydantic models for the public image generation API.
"""

from typing import Optional, List
from pydantic import BaseModel, Field

# Default values for generation parameters
DEFAULT_COUNT = 1
DEFAULT_INFERENCE_STEPS = 20
DEFAULT_GUIDANCE_SCALE = 7.5
DEFAULT_SIZE = 1024

PROMPT_MAX_LENGTH = 1000


class GenerateImageRequest(BaseModel):
    """Schema for a generation request against a completed model."""
    prompt: str = Field(..., min_length=1, max_length=PROMPT_MAX_LENGTH)
    negative_prompt: str = Field("", max_length=PROMPT_MAX_LENGTH)
    count: int = Field(DEFAULT_COUNT, ge=1, le=4)
    num_inference_steps: int = Field(DEFAULT_INFERENCE_STEPS, ge=1, le=50)
    guidance_scale: float = Field(DEFAULT_GUIDANCE_SCALE, ge=1, le=20)
    height: int = Field(DEFAULT_SIZE, ge=256, le=2048, multiple_of=64)
    width: int = Field(DEFAULT_SIZE, ge=256, le=2048, multiple_of=64)
    seed: Optional[int] = Field(None, ge=0)


class GenerationParameters(BaseModel):
    """Parameters actually used, with the seed resolved."""
    prompt: str
    negative_prompt: str
    count: int
    num_inference_steps: int
    guidance_scale: float
    height: int
    width: int
    seed: int


class GenerateImageResponse(BaseModel):
    """Schema for generation response."""
    images: List[str]  # base64 encoded, no data URL prefix
    inference_time: float
    parameters: GenerationParameters
