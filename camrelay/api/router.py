"""
Relay HTTP API.

- POST /upload       — raw image body from the camera, relayed to viewers
- POST /upload-file  — same, as a multipart "image" field
- GET  /get-config   — device configuration document
- POST /set-config   — partial configuration update (merged, persisted)
- GET  /stats        — registry and fanout counters
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile

from camrelay.api.deps import get_relay
from camrelay.core.schemas import DeviceConfig, DeviceConfigUpdate, StatsOut, UploadOut
from camrelay.services.config_store import ConfigPersistenceError
from camrelay.services.ingest import IngestError
from camrelay.services.relay import Relay

router = APIRouter()
logger = logging.getLogger("camrelay.api")


async def _ingest(relay: Relay, payload: bytes) -> UploadOut:
    try:
        delivered = await relay.ingestor.ingest(payload)
    except IngestError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc))
    except Exception:
        logger.exception("Error while processing the image")
        raise HTTPException(status_code=500, detail="Internal server error")
    return UploadOut(size=len(payload), delivered=delivered)


def _declared_length(request: Request) -> Optional[int]:
    value = request.headers.get("content-length", "")
    return int(value) if value.isdigit() else None


@router.post("/upload", response_model=UploadOut, summary="Relay one raw image")
async def upload(request: Request, relay: Relay = Depends(get_relay)):
    """Body is the image itself, e.g. Content-Type: image/jpeg."""
    try:
        payload = await relay.ingestor.read_stream(request.stream(), _declared_length(request))
    except IngestError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc))
    return await _ingest(relay, payload)


@router.post("/upload-file", response_model=UploadOut, summary="Relay one image from a form")
async def upload_file(
    image: Optional[UploadFile] = File(None),
    relay: Relay = Depends(get_relay),
):
    payload = b""
    if image is not None:
        try:
            relay.ingestor.check_size(image.size)
        except IngestError as exc:
            raise HTTPException(status_code=exc.status_code, detail=str(exc))
        payload = await image.read()
    return await _ingest(relay, payload)


@router.get("/get-config", response_model=DeviceConfig)
async def get_config(relay: Relay = Depends(get_relay)):
    logger.info("Configuration requested")
    return relay.config_store.current


@router.post("/set-config", response_model=DeviceConfig)
async def set_config(changes: DeviceConfigUpdate, relay: Relay = Depends(get_relay)):
    """Only the fields present in the body are changed."""
    try:
        return await relay.config_store.update(changes)
    except ConfigPersistenceError:
        raise HTTPException(status_code=500, detail="Could not save configuration")


@router.get("/stats", response_model=StatsOut)
async def stats(relay: Relay = Depends(get_relay)):
    return StatsOut(**relay.stats())
