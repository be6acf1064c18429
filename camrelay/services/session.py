"""
Per-connection identification state machine.

UNIDENTIFIED --producer tag--> PRODUCER
UNIDENTIFIED --consumer tag--> CONSUMER
UNIDENTIFIED --unknown tag---> UNIDENTIFIED (error envelope sent, may retry)
any          --invalid JSON--> CLOSED (closed with 1002)
any          --close/error---> CLOSED (registry.unregister exactly once)
"""
from __future__ import annotations

import enum
import logging
from typing import Optional

from camrelay.services import protocol
from camrelay.services.connection import ClientConnection
from camrelay.services.protocol import CLOSE_PROTOCOL_ERROR, Identify, ProtocolViolation, Role
from camrelay.services.registry import ClientRegistry

logger = logging.getLogger("camrelay.session")


class SessionState(enum.Enum):
    UNIDENTIFIED = "unidentified"
    PRODUCER = "producer"
    CONSUMER = "consumer"
    CLOSED = "closed"


_ROLE_STATES = {
    Role.PRODUCER: SessionState.PRODUCER,
    Role.CONSUMER: SessionState.CONSUMER,
}


class ConnectionSession:
    def __init__(self, conn: ClientConnection, registry: ClientRegistry):
        self.conn = conn
        self._registry = registry
        self.state = SessionState.UNIDENTIFIED

    @property
    def closed(self) -> bool:
        return self.state is SessionState.CLOSED

    async def handle_message(self, raw: str | bytes | None) -> None:
        if self.closed:
            return
        try:
            message = protocol.decode_message(raw)
        except ProtocolViolation as exc:
            logger.error("Invalid message from %s: %s", self.conn.label, exc)
            await self.conn.close(*CLOSE_PROTOCOL_ERROR)
            await self.handle_close(*CLOSE_PROTOCOL_ERROR)
            return

        if isinstance(message, Identify):
            await self._identify(message.role)
        elif self.state is SessionState.UNIDENTIFIED:
            logger.warning("Unknown client type %r from %s", message.type, self.conn.label)
            await self._send_error("unknown client type")
        else:
            logger.debug("Ignoring message from identified %s", self.conn.label)

    async def _identify(self, role: Role) -> None:
        target = _ROLE_STATES[role]
        if self.state is target:
            logger.debug("%s re-sent %s identification", self.conn.label, role.value)
            return
        if self.state is not SessionState.UNIDENTIFIED:
            logger.warning(
                "%s already identified as %s, refusing %s",
                self.conn.label,
                self.state.value,
                role.value,
            )
            await self._send_error(f"client already identified as {self.state.value}")
            return

        self.state = target
        if role is Role.PRODUCER:
            await self._registry.register_producer(self.conn)
            logger.info("Producer connected (%s)", self.conn.label)
        else:
            client_id = await self._registry.register_consumer(self.conn)
            logger.info(
                "Consumer %d identified (%s). Total: %d",
                client_id,
                self.conn.label,
                self._registry.consumer_count,
            )

    async def _send_error(self, text: str) -> None:
        try:
            await self.conn.send_text(protocol.error_envelope(text))
        except Exception as exc:
            logger.warning("Could not send error to %s: %s", self.conn.label, exc)

    def handle_error(self, exc: BaseException) -> None:
        """Transport error: log only, the close that follows unregisters."""
        logger.error("WebSocket error on %s: %s", self.conn.label, exc)

    async def handle_close(self, code: Optional[int] = None, reason: str = "") -> None:
        if self.closed:
            return
        previous = self.state
        self.state = SessionState.CLOSED
        self.conn.mark_closed()
        vacated = await self._registry.unregister(self.conn)
        if vacated is Role.PRODUCER:
            logger.info("Producer disconnected. Code: %s, reason: %s", code, reason)
        elif vacated is Role.CONSUMER:
            logger.info(
                "Consumer %s disconnected. Total: %d",
                self.conn.client_id,
                self._registry.consumer_count,
            )
        else:
            logger.debug(
                "%s connection %s closed. Code: %s", previous.value, self.conn.label, code
            )
