# Services package - lifecycle logic and external integrations
from app.services.storage import StorageService
from app.services.job_provider import JobProviderClient
from app.services.deploy_trigger import DeployTrigger
from app.services.lifecycle import LifecycleController

__all__ = [
    "StorageService",
    "JobProviderClient",
    "DeployTrigger",
    "LifecycleController",
]
