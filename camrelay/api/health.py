"""Health endpoints: liveness and readiness."""
import logging
import os
from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from camrelay.api.deps import get_relay
from camrelay.services.relay import Relay

router = APIRouter(tags=["health"])
logger = logging.getLogger("camrelay.health")


def _writable_dir(path: Path) -> bool:
    path = path.resolve()
    while not path.exists():
        path = path.parent
    return path.is_dir() and os.access(path, os.W_OK)


@router.get("/health/live")
async def liveness():
    """Liveness: process is running. No dependencies checked."""
    return {"status": "ok"}


@router.get("/health/ready")
async def readiness(relay: Relay = Depends(get_relay)):
    """Readiness: configuration file and frame storage can be written."""
    errors = []
    config_dir = relay.config_store.path.parent
    if not _writable_dir(config_dir):
        logger.warning("Configuration directory not writable: %s", config_dir)
        errors.append("config")

    if relay.ingestor.mode == "reference":
        upload_dir = relay.ingestor.upload_dir
        if not _writable_dir(upload_dir):
            logger.warning("Upload directory not writable: %s", upload_dir)
            errors.append("uploads")

    if errors:
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "errors": errors},
        )
    return {"status": "ok", "producer_connected": relay.registry.has_producer}
