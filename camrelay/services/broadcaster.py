"""
In-memory image fanout to WebSocket consumers.

- One snapshot of the consumer set per broadcast; sends run concurrently.
- Each send is bounded by a timeout so a stalled viewer cannot hold up the others.
- A failed send is logged and counted; the consumer stays registered until its
  own close event removes it.
"""
import asyncio
import logging

from camrelay.services import protocol
from camrelay.services.connection import ClientConnection
from camrelay.services.registry import ClientRegistry

logger = logging.getLogger("camrelay.broadcast")


class FanoutBroadcaster:
    """broadcast_image(payload) delivers one envelope to every registered consumer."""

    def __init__(self, registry: ClientRegistry, send_timeout: float = 5.0):
        self._registry = registry
        self._send_timeout = send_timeout
        self._broadcasts = 0
        self._delivered = 0
        self._failed = 0

    async def broadcast_image(self, payload: bytes) -> int:
        """Send the frame itself, base64 encoded. Returns the number of deliveries."""
        return await self._fanout(protocol.image_envelope(payload))

    async def broadcast_reference(self, url: str) -> int:
        """Send a retrieval URL for a stored frame instead of the bytes."""
        return await self._fanout(protocol.image_ref_envelope(url))

    async def _fanout(self, message: str) -> int:
        consumers = await self._registry.current_consumers()
        self._broadcasts += 1
        if not consumers:
            logger.info("No consumer connected to receive the image")
            return 0
        results = await asyncio.gather(*(self._send(c, message) for c in consumers))
        delivered = sum(results)
        logger.debug("Fanout delivered to %d/%d consumers", delivered, len(consumers))
        return delivered

    async def _send(self, conn: ClientConnection, message: str) -> bool:
        if conn.closed:
            return False
        try:
            await asyncio.wait_for(conn.send_text(message), timeout=self._send_timeout)
        except asyncio.TimeoutError:
            self._failed += 1
            logger.warning(
                "Send to consumer %s timed out after %.1fs", conn.client_id, self._send_timeout
            )
            return False
        except Exception as exc:
            self._failed += 1
            logger.warning("Error sending image to consumer %s: %s", conn.client_id, exc)
            return False
        self._delivered += 1
        return True

    @property
    def broadcasts(self) -> int:
        return self._broadcasts

    @property
    def delivered(self) -> int:
        return self._delivered

    @property
    def failed(self) -> int:
        return self._failed
