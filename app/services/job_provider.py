"""
Job Provider Client
Thin HTTP client for the RunPod serverless training endpoint.

┌─────────────────┐  start/status/cancel  ┌──────────────────┐      ┌─────────────────┐
│  DiffusionLab   │ ───────────────────▶  │   RunPod GPU     │ ──▶  │   R2 Bucket     │
│  API            │ ◀───────────────────  │   training job   │      │  (weights/logs) │
└─────────────────┘   training-finished   └──────────────────┘      └─────────────────┘

Every call is a single request with no retry. Failures are raised as
JobProviderError and the caller decides what to do with them.
"""

import logging
import math
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any

import httpx

from app.core.config import settings
from app.core.errors import JobProviderError, JobNotFoundError
from app.schemas.model import ProviderStatus

logger = logging.getLogger(__name__)

# Provider vocabulary -> local vocabulary. Anything else is UNKNOWN.
_PROVIDER_STATUS_MAP = {
    "training": ProviderStatus.TRAINING,
    "in_progress": ProviderStatus.TRAINING,
    "completed": ProviderStatus.COMPLETED,
    "failed": ProviderStatus.FAILED,
}


def map_provider_status(raw: Optional[str]) -> ProviderStatus:
    """Map a free-form provider status string ("IN_PROGRESS", "COMPLETED", ...)."""
    if not isinstance(raw, str):
        return ProviderStatus.UNKNOWN
    return _PROVIDER_STATUS_MAP.get(raw.strip().lower(), ProviderStatus.UNKNOWN)


def _number(value) -> float:
    """Progress fields are free-form; anything non-numeric counts as 0."""
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


@dataclass
class TrainingJobSpec:
    """Input for a training job, sent as the provider's ``input`` object."""
    dataset_bucket_path: str
    model_bucket_path: str
    steps: int
    model_type: str
    log_bucket_path: str
    callback_url: str


@dataclass
class ProviderJobStatus:
    """Status of a provider job as reported by the status endpoint."""
    raw_status: str
    status: ProviderStatus
    current_step: int = 0
    total_steps: int = 0
    progress_percent: float = 0.0


class JobProviderClient:
    """Client for starting, polling and cancelling provider training jobs."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.RUNPOD_API_KEY
        self.endpoint = (endpoint if endpoint is not None else settings.RUNPOD_TRAINING_ENDPOINT).rstrip("/")
        self.timeout = timeout or settings.JOB_PROVIDER_TIMEOUT
        self._transport = transport

    async def start(self, spec: TrainingJobSpec) -> str:
        """Start a training job and return the provider job id."""
        data = await self._request("POST", "run", json={"input": asdict(spec)}, action="training")

        job_id = data.get("id")
        if not job_id:
            raise JobProviderError("Invalid response from RunPod API: missing training run ID")

        job_id = str(job_id)
        logger.info(f"[JobProvider] Started training job {job_id} ({spec.steps} steps, type={spec.model_type})")
        return job_id

    async def status(self, job_id: str) -> ProviderJobStatus:
        """Fetch the status and progress of a job. Raises JobNotFoundError on 404."""
        data = await self._request("GET", f"status/{job_id}", action="status")

        output = data.get("output")
        if not isinstance(output, dict):
            output = {}
        raw_status = output.get("status") or data.get("status") or "UNKNOWN"

        return ProviderJobStatus(
            raw_status=str(raw_status),
            status=map_provider_status(raw_status),
            current_step=int(_number(output.get("step"))),
            total_steps=int(_number(output.get("total_steps"))),
            progress_percent=_number(output.get("progress_percent")),
        )

    async def cancel(self, job_id: str) -> Dict[str, Any]:
        """Cancel a running job."""
        data = await self._request("POST", f"cancel/{job_id}", action="cancel")
        logger.info(f"[JobProvider] Cancelled training job {job_id}")
        return data

    async def _request(self, method: str, path: str, action: str, json: Optional[dict] = None) -> Dict[str, Any]:
        if not self.api_key:
            raise JobProviderError("RunPod API key not configured")
        if not self.endpoint:
            raise JobProviderError("RunPod training endpoint not configured")

        url = f"{self.endpoint}/{path}"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, headers=headers, json=json)
        except httpx.HTTPError as e:
            logger.error(f"[JobProvider] Network error calling {action} endpoint: {e}")
            raise JobProviderError(f"Network error connecting to RunPod API: {e}")

        if response.is_error:
            logger.error(
                f"[JobProvider] RunPod {action} API error: {response.status_code} "
                f"{response.reason_phrase} body={response.text[:500]}"
            )
            message = self._error_message(response, action)
            if response.status_code == 404 and action == "status":
                raise JobNotFoundError(message, http_status=404)
            raise JobProviderError(message, http_status=response.status_code)

        try:
            data = response.json()
        except ValueError:
            raise JobProviderError(f"Invalid JSON from RunPod {action} API", http_status=response.status_code)

        if not isinstance(data, dict):
            logger.error(f"[JobProvider] Unexpected {action} response shape: {type(data).__name__}")
            raise JobProviderError(f"Invalid response from RunPod {action} API", http_status=response.status_code)
        return data

    @staticmethod
    def _error_message(response: httpx.Response, action: str) -> str:
        default = f"RunPod {action} API error: {response.status_code} {response.reason_phrase}"
        try:
            body = response.json()
        except ValueError:
            return default
        if isinstance(body, dict):
            return body.get("message") or body.get("error") or default
        return default
