from camrelay.services.broadcaster import FanoutBroadcaster
from camrelay.services.config_store import ConfigPersistenceError, ConfigStore
from camrelay.services.connection import ClientConnection
from camrelay.services.ingest import (
    EmptyPayloadError,
    ImageIngestor,
    IngestError,
    PayloadTooLargeError,
)
from camrelay.services.registry import ClientRegistry
from camrelay.services.relay import Relay
from camrelay.services.session import ConnectionSession, SessionState

__all__ = [
    "ClientConnection",
    "ClientRegistry",
    "ConfigPersistenceError",
    "ConfigStore",
    "ConnectionSession",
    "EmptyPayloadError",
    "FanoutBroadcaster",
    "ImageIngestor",
    "IngestError",
    "PayloadTooLargeError",
    "Relay",
    "SessionState",
]
