"""
FastAPI application for the camera relay.

- WebSocket: /ws and / (identification, image fanout to viewers)
- API: /upload, /upload-file, /get-config, /set-config, /stats
- Health: /health/live, /health/ready
- /images: stored frames when BROADCAST_MODE=reference
"""
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from camrelay.api.health import router as health_router
from camrelay.api.router import router as api_router
from camrelay.api.websocket import router as ws_router
from camrelay.core.config import Settings, settings
from camrelay.services.relay import Relay

logger = logging.getLogger("camrelay.main")


def _setup_logging(app_settings: Settings) -> None:
    level = getattr(logging, app_settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _setup_logging(app_settings)
        relay = Relay.from_settings(app_settings)
        relay.config_store.load()
        app.state.relay = relay
        logger.info("Relay ready (broadcast mode: %s)", app_settings.BROADCAST_MODE)

        yield

        logger.info(
            "Relay stopping (%d consumers, producer connected: %s)",
            relay.registry.consumer_count,
            relay.registry.has_producer,
        )

    app = FastAPI(
        title="Camera Relay",
        description="Relays camera frames to viewers and serves the device configuration",
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    if app_settings.BROADCAST_MODE == "reference":
        os.makedirs(app_settings.UPLOAD_DIR, exist_ok=True)
        app.mount(
            app_settings.IMAGE_URL_PREFIX,
            StaticFiles(directory=app_settings.UPLOAD_DIR),
            name="images",
        )

    app.include_router(health_router)
    app.include_router(api_router)
    app.include_router(ws_router)
    return app


app = create_app()


def run() -> None:
    logger.info("Starting relay server on port %d", settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
