"""
Chirpline Backend: Health Check Route
=======================================

GET /health reports whether the two things every write needs are usable:
the database (SELECT 1) and the media storage directory (exists and is
writable). Either one failing makes the service "unhealthy"; the endpoint
itself still answers 200 so health checkers can read the body.
"""

import logging
import os
import time

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app import __version__
from app.config import settings
from app.database import engine
from app.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

STARTED_AT = time.monotonic()


async def _database_status() -> str:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Health check: database unreachable: %s", e)
        return "disconnected"
    return "connected"


def _storage_status() -> str:
    root = settings.storage_root
    if os.path.isdir(root) and os.access(root, os.W_OK):
        return "writable"
    logger.warning("Health check: storage root %s missing or read-only", root)
    return "unavailable"


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check() -> HealthResponse:
    database = await _database_status()
    storage = _storage_status()
    healthy = database == "connected" and storage == "writable"
    return HealthResponse(
        status="healthy" if healthy else "unhealthy",
        version=__version__,
        database=database,
        storage=storage,
        uptime_seconds=round(time.monotonic() - STARTED_AT, 2),
    )
