from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Server ────────────────────────────────────────────────
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"

    # ── Device configuration document ────────────────────────
    CONFIG_FILE: str = "config.json"

    # ── Image relay ───────────────────────────────────────────
    # inline: consumers get the frame as base64
    # reference: frame is stored under UPLOAD_DIR, consumers get its URL
    BROADCAST_MODE: Literal["inline", "reference"] = "inline"
    UPLOAD_DIR: str = "uploads"
    IMAGE_URL_PREFIX: str = "/images"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    SEND_TIMEOUT_SEC: float = 5.0

    # ── Viewer worker ─────────────────────────────────────────
    RELAY_WS_URL: str = "ws://localhost:8080/ws"
    VIEWER_OUTPUT_DIR: str = "frames"

    def latest_frame_url(self, version: int) -> str:
        """Public URL of the stored frame, versioned so viewers skip stale caches."""
        prefix = self.IMAGE_URL_PREFIX.rstrip("/")
        return f"{prefix}/latest.jpg?v={version}"


settings = Settings()
