"""
Relay state owned by one application instance.

Built at app lifespan start and stored on app.state; routes and the
WebSocket endpoint reach it through camrelay.api.deps.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from camrelay.core.config import Settings
from camrelay.services.broadcaster import FanoutBroadcaster
from camrelay.services.config_store import ConfigStore
from camrelay.services.ingest import ImageIngestor
from camrelay.services.registry import ClientRegistry


@dataclass
class Relay:
    registry: ClientRegistry
    broadcaster: FanoutBroadcaster
    ingestor: ImageIngestor
    config_store: ConfigStore

    @classmethod
    def from_settings(cls, settings: Settings) -> "Relay":
        registry = ClientRegistry()
        broadcaster = FanoutBroadcaster(registry, send_timeout=settings.SEND_TIMEOUT_SEC)
        return cls(
            registry=registry,
            broadcaster=broadcaster,
            ingestor=ImageIngestor(broadcaster, settings),
            config_store=ConfigStore(settings.CONFIG_FILE),
        )

    def stats(self) -> Dict[str, Any]:
        return {
            "producer_connected": self.registry.has_producer,
            "consumers": self.registry.consumer_count,
            "broadcast_mode": self.ingestor.mode,
            "uploads": self.ingestor.uploads,
            "rejected_uploads": self.ingestor.rejected,
            "broadcasts": self.broadcaster.broadcasts,
            "delivered": self.broadcaster.delivered,
            "failed": self.broadcaster.failed,
        }
