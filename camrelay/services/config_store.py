"""
File-backed device configuration document.

The in-memory document is only replaced after the merged version has been
written, so the last successfully persisted document stays authoritative.
"""
from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from camrelay.core.schemas import DeviceConfig, DeviceConfigUpdate

logger = logging.getLogger("camrelay.config")


class ConfigPersistenceError(Exception):
    """Raised when the configuration file cannot be written."""


class ConfigStore:
    def __init__(self, path: str | os.PathLike):
        self._path = Path(path)
        self._config = DeviceConfig()
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def current(self) -> DeviceConfig:
        return self._config

    def load(self) -> DeviceConfig:
        """Read the file, or create it with defaults when missing. Never raises."""
        if self._path.exists():
            try:
                self._config = DeviceConfig.model_validate_json(
                    self._path.read_text(encoding="utf-8")
                )
                logger.info("Configuration loaded from %s", self._path)
            except (OSError, ValidationError) as exc:
                logger.error("Error loading configuration from %s: %s", self._path, exc)
        else:
            try:
                self._write(self._config)
                logger.info("Default configuration created at %s", self._path)
            except OSError as exc:
                logger.error("Could not create default configuration: %s", exc)
        return self._config

    async def update(self, changes: DeviceConfigUpdate) -> DeviceConfig:
        """Merge the provided fields over the current document and persist it."""
        fields = changes.model_dump(exclude_unset=True)
        async with self._lock:
            merged = self._config.model_copy(update=fields)
            try:
                await asyncio.to_thread(self._write, merged)
            except OSError as exc:
                logger.error("Error saving configuration to %s: %s", self._path, exc)
                raise ConfigPersistenceError(str(exc)) from exc
            self._config = merged
        logger.info("Configuration updated: %s", ", ".join(sorted(fields)) or "no fields")
        return merged

    def _write(self, config: DeviceConfig) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_text(config.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        os.replace(tmp, self._path)
