"""Dependency accessors for the per-app relay state (HTTP and WebSocket routes)."""
from fastapi.requests import HTTPConnection

from camrelay.services.relay import Relay


def get_relay(conn: HTTPConnection) -> Relay:
    relay = getattr(conn.app.state, "relay", None)
    if relay is None:
        raise RuntimeError("Relay state not initialized")
    return relay
