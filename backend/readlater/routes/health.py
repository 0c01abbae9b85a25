"""
ReadLater Backend — Health Check Route
=======================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Verifies the storage root, or the directory it will be created in,
       is writable. The check never creates anything.

Status levels:
    - healthy:   storage writable (HTTP 200)
    - unhealthy: storage missing or read-only (HTTP 503)
"""

import logging
import os
import time
from pathlib import Path

import aiofiles.os
from fastapi import APIRouter, Depends, Response

from readlater import __version__
from readlater.dependencies import get_storage_service
from readlater.schemas.content import HealthResponse
from readlater.services.storage_service import StorageService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


async def _storage_writable(root: Path) -> bool:
    """Writable root, or a writable directory it would be created under. Creates nothing."""
    candidate = root
    while not await aiofiles.os.path.exists(candidate):
        if candidate.parent == candidate:
            return False
        candidate = candidate.parent
    if not await aiofiles.os.path.isdir(candidate):
        logger.warning("Health check: %s is not a directory", candidate)
        return False
    return await aiofiles.os.access(candidate, os.W_OK)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    response: Response,
    storage: StorageService = Depends(get_storage_service),
) -> HealthResponse:
    if await _storage_writable(storage.storage_root):
        storage_status, overall = "writable", "healthy"
    else:
        storage_status, overall = "unavailable", "unhealthy"
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        storage=storage_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
