"""
Headless relay viewer.

- Connects to the relay WebSocket and identifies as a consumer.
- Decodes image envelopes and keeps the latest frame on disk.
- Reconnects with exponential backoff when the relay goes away.
"""
import asyncio
import base64
import binascii
import json
import logging
import os
from pathlib import Path
from typing import Any

import websockets

from camrelay.core.config import settings

logger = logging.getLogger("camrelay.viewer")

LATEST_FRAME = "latest.jpg"
MAX_RETRY_DELAY_SEC = 60


class ViewerWorker:
    def __init__(self, url: str | None = None, output_dir: str | None = None):
        self._url = url or settings.RELAY_WS_URL
        self._output_dir = Path(output_dir or settings.VIEWER_OUTPUT_DIR)
        self._running = False
        self._task: asyncio.Task[Any] | None = None
        self._streaming = False
        self.last_reference: str | None = None
        self.stats = {
            "status": "stopped",
            "frames": 0,
            "references": 0,
            "bytes": 0,
            "errors": 0,
            "relay_errors": 0,
        }

    @property
    def latest_frame_path(self) -> Path:
        return self._output_dir / LATEST_FRAME

    async def start(self) -> None:
        self._running = True
        self._output_dir.mkdir(parents=True, exist_ok=True)
        self._task = asyncio.create_task(self._connect_loop(), name="relay-viewer")
        logger.info("Viewer started, relay %s, frames in %s", self._url, self._output_dir)

    async def stop(self) -> None:
        self._running = False
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        self.stats["status"] = "stopped"
        logger.info("Viewer stopped (%d frames)", self.stats["frames"])

    async def wait(self) -> None:
        """Block until the viewer is stopped or cancelled."""
        if self._task is not None:
            await asyncio.shield(self._task)

    async def _connect_loop(self) -> None:
        delay = 1
        while self._running:
            self._streaming = False
            try:
                await self._stream()
            except asyncio.CancelledError:
                break
            except Exception as exc:
                self.stats["errors"] += 1
                self.stats["status"] = f"disconnected ({exc})"
                logger.warning("Lost relay %s (%s)", self._url, exc)
            else:
                self.stats["status"] = "disconnected"
                logger.info("Relay %s closed the connection", self._url)
            if self._streaming:
                # backoff starts over after a session that actually streamed
                delay = 1
            logger.info("Reconnecting to relay in %ds", delay)
            await asyncio.sleep(delay)
            delay = min(delay * 2, MAX_RETRY_DELAY_SEC)

    async def _stream(self) -> None:
        async with websockets.connect(self._url, ping_interval=20, ping_timeout=30) as ws:
            await ws.send(json.dumps({"type": "consumer"}))
            self.stats["status"] = "streaming"
            self._streaming = True
            logger.info("Connected to relay %s", self._url)
            async for raw in ws:
                if not self._running:
                    break
                try:
                    self.handle(raw)
                except Exception as exc:
                    self.stats["errors"] += 1
                    logger.debug("Frame error: %s", exc)

    def handle(self, raw: str | bytes) -> None:
        """Process one message from the relay."""
        msg = json.loads(raw)
        kind = msg.get("type") if isinstance(msg, dict) else None
        if kind == "image":
            if "data" in msg:
                self._save_frame(msg["data"])
            elif "url" in msg:
                self.last_reference = msg["url"]
                self.stats["references"] += 1
                logger.info("New frame available at %s", msg["url"])
        elif kind == "error":
            self.stats["relay_errors"] += 1
            logger.warning("Relay error: %s", msg.get("message"))
        else:
            logger.debug("Ignoring message type %r", kind)

    def _save_frame(self, data: str) -> None:
        try:
            frame = base64.b64decode(data, validate=True)
        except (binascii.Error, TypeError) as exc:
            raise ValueError(f"bad image data: {exc}") from exc
        self._output_dir.mkdir(parents=True, exist_ok=True)
        tmp = self.latest_frame_path.with_name(LATEST_FRAME + ".tmp")
        tmp.write_bytes(frame)
        os.replace(tmp, self.latest_frame_path)
        self.stats["frames"] += 1
        self.stats["bytes"] += len(frame)
        logger.debug("Frame saved (%d bytes)", len(frame))


async def run_viewer() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    viewer = ViewerWorker()
    await viewer.start()
    try:
        await viewer.wait()
    finally:
        await viewer.stop()


def main() -> None:
    asyncio.run(run_viewer())


if __name__ == "__main__":
    main()
