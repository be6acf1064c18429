"""
Client registry: the single producer slot and the consumer set.

All mutations and the broadcaster's snapshot read go through one asyncio.Lock.
Network I/O (closing a superseded producer) happens outside the lock.
"""
from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Dict, List, Optional

from camrelay.services.connection import ClientConnection
from camrelay.services.protocol import CLOSE_SUPERSEDED, Role

logger = logging.getLogger("camrelay.registry")


class ClientRegistry:
    """At most one producer, any number of consumers keyed by a monotonic id."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._producer: Optional[ClientConnection] = None
        self._consumers: Dict[int, ClientConnection] = {}
        self._ids = itertools.count(1)

    async def register_producer(self, conn: ClientConnection) -> None:
        """Make conn the producer, closing the one it replaces."""
        async with self._lock:
            previous, self._producer = self._producer, conn
            conn.role = Role.PRODUCER
        if previous is not None and previous is not conn:
            logger.info("Producer %s superseded by %s", previous.label, conn.label)
            await previous.close(*CLOSE_SUPERSEDED)

    async def register_consumer(self, conn: ClientConnection) -> int:
        async with self._lock:
            if conn.client_id is not None and self._consumers.get(conn.client_id) is conn:
                return conn.client_id
            client_id = next(self._ids)
            self._consumers[client_id] = conn
            conn.client_id = client_id
            conn.role = Role.CONSUMER
        return client_id

    async def unregister(self, conn: ClientConnection) -> Optional[Role]:
        """Remove conn from whichever slot holds it. Returns the vacated role, if any."""
        async with self._lock:
            if conn is self._producer:
                self._producer = None
                return Role.PRODUCER
            client_id = conn.client_id
            # identity check: a stale id must never evict another connection
            if client_id is not None and self._consumers.get(client_id) is conn:
                del self._consumers[client_id]
                return Role.CONSUMER
        return None

    async def current_consumers(self) -> List[ClientConnection]:
        """Snapshot of the consumer set, safe to iterate while the registry changes."""
        async with self._lock:
            return list(self._consumers.values())

    @property
    def producer(self) -> Optional[ClientConnection]:
        return self._producer

    @property
    def has_producer(self) -> bool:
        return self._producer is not None

    @property
    def consumer_count(self) -> int:
        return len(self._consumers)
