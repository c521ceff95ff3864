#!/usr/bin/env python3
"""
API Server Startup Script
Runs the DiffusionLab API under uvicorn.

Usage:
    python scripts/run_api.py                     # 0.0.0.0:8000
    python scripts/run_api.py --port 9000 --reload
    python scripts/run_api.py --init-db           # create tables and exit
"""

import argparse
import logging
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import uvicorn

from app.core.config import settings
from app.core.database import init_db
from app.core.logging_config import setup_logging

logger = logging.getLogger("diffusionlab.server")


def main():
    parser = argparse.ArgumentParser(description="Run the DiffusionLab API")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", 8000)))
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    parser.add_argument("--workers", type=int, default=1, help="Number of uvicorn worker processes")
    parser.add_argument("--init-db", action="store_true", help="Create database tables and exit")
    args = parser.parse_args()

    setup_logging()

    if args.init_db:
        init_db()
        logger.info("Database tables created")
        return

    logger.info(f"Starting {settings.APP_NAME} on {args.host}:{args.port}")
    uvicorn.run(
        "app.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=None if args.reload else args.workers,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
