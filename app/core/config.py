"""
Application Configuration
Loads settings from environment variables.
"""

from typing import List
from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    APP_NAME: str = "DiffusionLab API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    APP_URL: str = "http://localhost:8000"  # Public base URL used for provider callbacks

    # Database - SQLite for local dev, PostgreSQL for production
    DATABASE_URL: str = "sqlite:///./diffusionlab.db"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Session tokens issued by the identity provider (JWT, sub = user id)
    SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 720

    # Shared secret sent by the training provider in the Authorization header
    WEBHOOK_TOKEN: str = ""

    # Training provider (RunPod serverless endpoint)
    RUNPOD_API_KEY: str = ""
    RUNPOD_TRAINING_ENDPOINT: str = ""  # e.g. https://api.runpod.ai/v2/<endpoint_id>
    JOB_PROVIDER_TIMEOUT: float = 30.0

    # Object storage - Cloudflare R2 (S3 compatible)
    R2_ENDPOINT: str = ""
    R2_ACCESS_KEY_ID: str = ""
    R2_SECRET_ACCESS_KEY: str = ""
    R2_BUCKET: str = "img-gen-studio-dev"
    R2_URL_EXPIRATION: int = 3600  # Presigned URL lifetime in seconds

    # Deployment pipeline (GitHub Actions workflow_dispatch)
    GITHUB_TOKEN: str = ""
    GITHUB_REPO: str = ""  # owner/repo
    GITHUB_WORKFLOW: str = "build-and-deploy.yml"
    GITHUB_REF: str = "main"

    # Billing (Stripe Checkout, credits kept in cents)
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    BILLING_CURRENCY: str = "eur"
    FRONTEND_URL: str = "http://localhost:3000"  # Checkout success/cancel redirects

    # Client-side status polling
    STATUS_POLL_INTERVAL: float = 5.0

    @field_validator(
        'WEBHOOK_TOKEN', 'RUNPOD_API_KEY', 'R2_ACCESS_KEY_ID', 'R2_SECRET_ACCESS_KEY', 'GITHUB_TOKEN',
        'STRIPE_SECRET_KEY', 'STRIPE_WEBHOOK_SECRET',
        mode='before'
    )
    @classmethod
    def strip_secrets(cls, v):
        """Strip whitespace and newlines from secrets loaded from env files."""
        if isinstance(v, str):
            return v.strip()
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
