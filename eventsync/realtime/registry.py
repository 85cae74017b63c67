"""Connection registry: the single owner of live realtime connection state.

Every read and write of the membership set goes through one asyncio lock.
Nothing else in the process holds references to the set itself; callers get
`Connection` handles or point-in-time snapshots.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol

from loguru import logger

from eventsync.core.usecases.tokens import Identity
from eventsync.infra.repos._common import new_id
from eventsync.observability.metrics import ACTIVE_CONNECTIONS


class Transport(Protocol):
    async def send_json(self, data: Any) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    ACTIVE = "active"
    CLOSED = "closed"


class ConnectionStateError(RuntimeError):
    pass


# Outbox marker telling the writer to stop.
CLOSE = object()


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(eq=False)
class Connection:
    id: str
    transport: Transport
    outbox: asyncio.Queue
    identity: Identity | None = None
    state: ConnectionState = ConnectionState.CONNECTING
    connected_at: str = field(default_factory=_utcnow_iso)

    def activate(self, identity: Identity) -> None:
        if self.state is not ConnectionState.CONNECTING:
            raise ConnectionStateError(f"cannot activate connection {self.id} in state {self.state.value}")
        self.identity = identity
        self.state = ConnectionState.ACTIVE

    def close(self) -> None:
        """Mark closed, drop anything still queued and wake the writer."""
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED
        while True:
            try:
                self.outbox.get_nowait()
            except asyncio.QueueEmpty:
                break
            self.outbox.task_done()
        self.outbox.put_nowait(CLOSE)

    @property
    def is_active(self) -> bool:
        return self.state is ConnectionState.ACTIVE

    def offer(self, message: dict) -> bool:
        """Queue a message without waiting. False means it was not accepted."""
        if not self.is_active:
            return False
        try:
            self.outbox.put_nowait(message)
        except asyncio.QueueFull:
            return False
        return True


class ConnectionRegistry:
    def __init__(self, *, outbox_size: int = 256):
        self._outbox_size = max(1, int(outbox_size))
        self._connections: dict[str, Connection] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._connections)

    async def register(self, transport: Transport, identity: Identity) -> str:
        """Admit a gate-approved transport and return its fresh connection id."""
        async with self._lock:
            connection_id = new_id("conn")
            while connection_id in self._connections:
                connection_id = new_id("conn")
            connection = Connection(
                id=connection_id,
                transport=transport,
                outbox=asyncio.Queue(maxsize=self._outbox_size),
            )
            connection.activate(identity)
            self._connections[connection_id] = connection
            ACTIVE_CONNECTIONS.set(len(self._connections))
        logger.info("realtime connection registered id={} subject={}", connection_id, identity.subject)
        return connection_id

    async def unregister(self, connection_id: str) -> Connection | None:
        """Remove a connection. Unknown or already removed ids are a no-op."""
        async with self._lock:
            connection = self._connections.pop(connection_id, None)
            if connection is None:
                return None
            connection.close()
            ACTIVE_CONNECTIONS.set(len(self._connections))
        logger.info("realtime connection unregistered id={}", connection_id)
        return connection

    async def get(self, connection_id: str) -> Connection | None:
        async with self._lock:
            return self._connections.get(connection_id)

    async def snapshot(self) -> tuple[Connection, ...]:
        async with self._lock:
            return tuple(self._connections.values())

    async def close_all(self, *, code: int = 1001) -> int:
        async with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
            ACTIVE_CONNECTIONS.set(0)
        for connection in connections:
            connection.close()
            try:
                await connection.transport.close(code=code)
            except Exception as exc:
                logger.debug("closing connection {} failed: {}", connection.id, exc)
        return len(connections)
