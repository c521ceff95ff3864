"""
Deploy Trigger
Dispatches the build-and-deploy GitHub Actions workflow for freshly trained weights.

The workflow builds an inference endpoint for the weights and reports back on
``/api/models/{id}/deployment-finished``.
"""

import logging
from typing import Optional

import httpx

from app.core.config import settings
from app.core.errors import DeployTriggerError

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"


class DeployTrigger:
    """Fire-and-forget client for GitHub workflow_dispatch."""

    def __init__(
        self,
        token: Optional[str] = None,
        repo: Optional[str] = None,
        workflow: Optional[str] = None,
        ref: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token if token is not None else settings.GITHUB_TOKEN
        self.repo = repo if repo is not None else settings.GITHUB_REPO
        self.workflow = workflow or settings.GITHUB_WORKFLOW
        self.ref = ref or settings.GITHUB_REF
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.token and self.repo)

    async def dispatch(self, model_id: str, model_path: str) -> bool:
        """
        Trigger deployment of a model's weights.

        Returns:
            True if dispatched, False if the pipeline is not configured

        Raises:
            DeployTriggerError: GitHub rejected the dispatch or was unreachable
        """
        if not self.configured:
            logger.warning(f"[Deploy] GitHub deployment not configured; model {model_id} stays in deploying")
            return False

        callback_url = f"{settings.APP_URL.rstrip('/')}/api/models/{model_id}/deployment-finished"
        url = f"{GITHUB_API_URL}/repos/{self.repo}/actions/workflows/{self.workflow}/dispatches"

        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
                response = await client.post(
                    url,
                    headers={
                        "Authorization": f"Bearer {self.token}",
                        "Accept": "application/vnd.github.v3+json",
                    },
                    json={
                        "ref": self.ref,
                        "inputs": {
                            "model_url": model_path,
                            "webhook_url": callback_url,
                        },
                    },
                )
        except httpx.HTTPError as e:
            raise DeployTriggerError(f"Error calling GitHub Action: {e}")

        if response.is_error:
            raise DeployTriggerError(
                f"Failed to trigger GitHub Action: {response.status_code} {response.text[:300]}",
                http_status=response.status_code,
            )

        logger.info(f"[Deploy] Dispatched {self.workflow} for model {model_id}")
        return True


async def dispatch_deployment(trigger: DeployTrigger, model_id: str, model_path: str):
    """Background-task wrapper: log failures, never raise."""
    try:
        await trigger.dispatch(model_id, model_path)
    except DeployTriggerError as e:
        logger.error(f"[Deploy] Deployment dispatch for model {model_id} failed: {e}")
    except Exception:
        logger.exception(f"[Deploy] Unexpected error dispatching deployment for model {model_id}")
