"""Client-side helpers for consumers of the lifecycle API."""

from app.client.status_poller import StatusPoller

__all__ = ["StatusPoller"]
