"""Connection handle shared by the registry, the session and the broadcaster."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

from camrelay.services.protocol import Role

logger = logging.getLogger("camrelay.connection")


class Transport(Protocol):
    """The subset of starlette's WebSocket the relay relies on."""

    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None: ...


class ClientConnection:
    """
    One open transport connection.

    role and client_id are filled in by the registry at registration, so a
    close event can be matched to its slot without scanning the consumer set.
    """

    def __init__(self, transport: Transport, label: str = "?"):
        self.transport = transport
        self.label = label
        self.role: Optional[Role] = None
        self.client_id: Optional[int] = None
        self._closed = False
        # keeps one consumer's outbound frames in order across overlapping broadcasts
        self._send_lock = asyncio.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def mark_closed(self) -> None:
        self._closed = True

    async def send_text(self, text: str) -> None:
        async with self._send_lock:
            await self.transport.send_text(text)

    async def close(self, code: int, reason: str) -> None:
        """Close the transport once; later calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        try:
            await self.transport.close(code=code, reason=reason)
        except Exception as exc:
            # peer already gone; the transport is closed either way
            logger.debug("close(%d) on %s failed: %s", code, self.label, exc)

    def __repr__(self) -> str:
        return f"<ClientConnection {self.label} role={self.role} id={self.client_id}>"
