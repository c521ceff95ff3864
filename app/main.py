"""
DiffusionLab API - Model Training & Deployment Lifecycle
FastAPI Backend Entry Point
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.core.config import settings
from app.core.database import SessionLocal, init_db
from app.core.errors import AppError
from app.core.logging_config import setup_logging
from app.api import api_keys, auth, billing, datasets, models, webhooks
from app.api.v1 import generate

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    setup_logging()
    logger.info(f"Starting {settings.APP_NAME}...")
    init_db()
    yield
    logger.info(f"Shutting down {settings.APP_NAME}...")


app = FastAPI(
    title="DiffusionLab API",
    description="Custom image model training, deployment and generation",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": message},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Internal server error"},
    )


# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(models.router, prefix="/api/models", tags=["Models"])
app.include_router(webhooks.router, prefix="/api/models", tags=["Webhooks"])
app.include_router(datasets.router, prefix="/api/datasets", tags=["Datasets"])
app.include_router(api_keys.router, prefix="/api/api-keys", tags=["API Keys"])
app.include_router(generate.router, prefix="/api/v1", tags=["Image Generation"])
app.include_router(billing.router, prefix="/api/billing", tags=["Billing"])


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for the load balancer and monitoring."""
    health = {
        "status": "healthy",
        "version": VERSION,
        "services": {},
    }

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
        health["services"]["database"] = "ok"
    except Exception as e:
        health["services"]["database"] = f"error: {e}"
        health["status"] = "degraded"

    health["services"]["job_provider"] = "configured" if settings.RUNPOD_TRAINING_ENDPOINT else "not configured"
    health["services"]["deploy_pipeline"] = "configured" if settings.GITHUB_TOKEN and settings.GITHUB_REPO else "not configured"
    health["services"]["payments"] = "configured" if settings.STRIPE_SECRET_KEY else "not configured"
    return health


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": "DiffusionLab API - Model Training & Deployment",
        "docs": "/docs",
        "health": "/health",
    }
