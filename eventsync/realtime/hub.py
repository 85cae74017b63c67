"""Broadcast hub for task change notifications.

`publish` fans one envelope out to a registry snapshot by queueing it on each
connection's outbox; nothing in the fan-out awaits, so every publish sees one
membership view and is never torn. Each connection has exactly one writer
(`run_writer`) that drains its outbox in order, so two events published one
after the other reach every continuously connected client in that order.
A slow or broken client only ever stalls its own writer.
"""

from __future__ import annotations

import asyncio
import time

from loguru import logger

from eventsync.core.task_events import TASK_UPDATED, TaskChangeEvent
from eventsync.observability.metrics import DELIVERY_LATENCY_SEC, EVENTS_PUBLISHED_TOTAL, record_delivery
from eventsync.realtime.registry import CLOSE, Connection, ConnectionRegistry


class DeliveryFailure(Exception):
    def __init__(self, connection_id: str, reason: str, detail: str = ""):
        self.connection_id = connection_id
        self.reason = reason
        self.detail = detail
        super().__init__(f"delivery to {connection_id} failed: {reason}{f' ({detail})' if detail else ''}")


class BroadcastHub:
    def __init__(self, registry: ConnectionRegistry, *, send_timeout_sec: float = 5.0):
        self._registry = registry
        self._send_timeout_sec = max(0.001, float(send_timeout_sec))
        self.failures = 0

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    async def publish(self, event: TaskChangeEvent) -> int:
        """Queue `event` for every live connection; returns how many accepted it.

        Never raises because of a single connection's state.
        """
        message = event.to_message()
        targets = await self._registry.snapshot()
        rejected: list[Connection] = [conn for conn in targets if not conn.offer(message)]
        EVENTS_PUBLISHED_TOTAL.labels(type=TASK_UPDATED).inc()

        for connection in rejected:
            await self._fail(DeliveryFailure(connection.id, "outbox_full"))

        accepted = len(targets) - len(rejected)
        logger.debug(
            "published {} task={} status={} to {}/{} connections",
            TASK_UPDATED,
            event.task_id,
            event.status,
            accepted,
            len(targets),
        )
        return accepted

    async def send(self, connection: Connection, message: dict) -> bool:
        """Queue a control message (ping/pong/error) for one connection."""
        if connection.offer(message):
            return True
        if connection.is_active:
            await self._fail(DeliveryFailure(connection.id, "outbox_full"))
        return False

    async def run_writer(self, connection: Connection) -> None:
        """Drain one connection's outbox until it is closed or a write fails."""
        while True:
            message = await connection.outbox.get()
            try:
                if message is CLOSE:
                    return
                started = time.perf_counter()
                try:
                    await asyncio.wait_for(connection.transport.send_json(message), timeout=self._send_timeout_sec)
                except asyncio.TimeoutError:
                    await self._fail(DeliveryFailure(connection.id, "timeout", f"{self._send_timeout_sec:g}s"))
                    return
                except Exception as exc:
                    await self._fail(DeliveryFailure(connection.id, "transport_error", str(exc)))
                    return
                DELIVERY_LATENCY_SEC.observe(max(0.0, time.perf_counter() - started))
                record_delivery("delivered")
            finally:
                connection.outbox.task_done()

    async def _fail(self, failure: DeliveryFailure) -> None:
        self.failures += 1
        record_delivery(failure.reason)
        logger.warning("{}; dropping connection", failure)
        await self._registry.unregister(failure.connection_id)
