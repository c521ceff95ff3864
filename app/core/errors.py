"""
Application Errors
Typed error taxonomy shared by services and API routes.

Services raise these; the exception handlers in app.main turn them into
``{"success": false, "error": ...}`` responses with the matching status code.
"""

from typing import Optional


class AppError(Exception):
    """Base exception for errors surfaced to API callers."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class AuthenticationError(AppError):
    """Missing or invalid credential (session token, webhook secret, API key)."""

    status_code = 401


class NotFoundError(AppError):
    """Referenced record does not exist, or is not owned by the caller."""

    status_code = 404


class ValidationError(AppError):
    """Malformed request or operation not allowed in the current state."""

    status_code = 400


class ConsistencyError(AppError):
    """Stored state changed underneath the operation (lost a conditional update)."""

    status_code = 409


class ArtifactUnavailableError(AppError):
    """Model artifact is not ready or no longer present in storage."""

    status_code = 409


class UpstreamError(AppError):
    """An external collaborator failed or was unreachable."""

    status_code = 502

    def __init__(
        self,
        message: str,
        http_status: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.http_status = http_status

    @property
    def retryable(self) -> bool:
        """Network errors and 5xx responses are worth retrying; 4xx are not."""
        return self.http_status is None or self.http_status >= 500


class JobProviderError(UpstreamError):
    """Training provider returned an error or could not be reached."""


class JobNotFoundError(JobProviderError):
    """Training provider no longer knows the job (archived or purged)."""


class StorageError(UpstreamError):
    """Object storage call failed."""


class DeployTriggerError(UpstreamError):
    """Deployment pipeline dispatch failed."""


class PaymentProviderError(UpstreamError):
    """Payment provider (Stripe) call failed."""


__all__ = [
    "AppError",
    "AuthenticationError",
    "NotFoundError",
    "ValidationError",
    "ConsistencyError",
    "ArtifactUnavailableError",
    "UpstreamError",
    "JobProviderError",
    "JobNotFoundError",
    "StorageError",
    "DeployTriggerError",
    "PaymentProviderError",
]
