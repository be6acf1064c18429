"""
Image ingestion: validate an uploaded frame and hand it to the broadcaster.

inline mode relays the bytes; reference mode stores the frame as
<UPLOAD_DIR>/latest.jpg and relays its URL.
"""
from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import AsyncIterator, Optional

from camrelay.core.config import Settings
from camrelay.services.broadcaster import FanoutBroadcaster

logger = logging.getLogger("camrelay.ingest")

LATEST_FRAME = "latest.jpg"


class IngestError(Exception):
    """Upload rejected before any fanout."""

    status_code = 400


class EmptyPayloadError(IngestError):
    status_code = 400


class PayloadTooLargeError(IngestError):
    status_code = 413


class ImageIngestor:
    def __init__(self, broadcaster: FanoutBroadcaster, settings: Settings):
        self._broadcaster = broadcaster
        self._settings = settings
        self._upload_dir = Path(settings.UPLOAD_DIR)
        self._version = 0
        # orders reference-mode writes and version numbers
        self._store_lock = asyncio.Lock()
        self.uploads = 0
        self.rejected = 0

    @property
    def mode(self) -> str:
        return self._settings.BROADCAST_MODE

    @property
    def upload_dir(self) -> Path:
        return self._upload_dir

    @property
    def max_bytes(self) -> int:
        return self._settings.MAX_UPLOAD_BYTES

    def check_size(self, size: Optional[int]) -> None:
        """Reject a declared or running size above the limit; None means unknown."""
        if size is not None and size > self.max_bytes:
            self.rejected += 1
            raise PayloadTooLargeError(
                f"Image too large ({size} bytes, limit {self.max_bytes})"
            )

    async def read_stream(
        self, chunks: AsyncIterator[bytes], declared: Optional[int] = None
    ) -> bytes:
        """Collect a request body, stopping as soon as it passes the limit."""
        self.check_size(declared)
        body = bytearray()
        async for chunk in chunks:
            body.extend(chunk)
            self.check_size(len(body))
        return bytes(body)

    def _check(self, payload: bytes | None) -> bytes:
        if not payload:
            self.rejected += 1
            raise EmptyPayloadError("No image received")
        self.check_size(len(payload))
        return payload

    async def ingest(self, payload: bytes | None) -> int:
        """Validate and relay one frame. Returns the number of consumers reached."""
        payload = self._check(payload)
        self.uploads += 1
        logger.info("Image received over HTTP (%d bytes)", len(payload))
        if self.mode == "reference":
            async with self._store_lock:
                await asyncio.to_thread(self._store, payload)
                self._version += 1
                url = self._settings.latest_frame_url(self._version)
            return await self._broadcaster.broadcast_reference(url)
        return await self._broadcaster.broadcast_image(payload)

    def _store(self, payload: bytes) -> Path:
        self._upload_dir.mkdir(parents=True, exist_ok=True)
        target = self._upload_dir / LATEST_FRAME
        fd, tmp = tempfile.mkstemp(dir=self._upload_dir, prefix=LATEST_FRAME, suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(payload)
            os.replace(tmp, target)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        return target
