from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Protocol

from huddle.channels.envelope import Delivery
from huddle.core.registry import Session
from huddle.core.routing import Dispatcher
from huddle.infra.logging_config import get_logger

logger = get_logger("runtime")

OUTBOX_LIMIT = 1000


class FrameSink(Protocol):
    async def send_json(self, data: Any) -> None: ...


@dataclass
class _Outbox:
    queue: asyncio.Queue
    writer: asyncio.Task


class ConnectionHub:
    """
    Binds live sockets to sessions and delivers dispatcher output.

    Dispatcher calls run under one lock and enqueue their frames on per-session
    outboxes before releasing it, so every recipient sees events in the order
    the dispatcher produced them. Each outbox is drained by its own writer
    task; socket I/O never runs under the lock, and a client that stops
    reading only stalls its own outbox.
    """

    def __init__(self, dispatcher: Dispatcher, outbox_limit: int = OUTBOX_LIMIT) -> None:
        self.dispatcher = dispatcher
        self._outbox_limit = outbox_limit
        self._outboxes: Dict[str, _Outbox] = {}
        self._lock: Optional[asyncio.Lock] = None

    @property
    def lock(self) -> asyncio.Lock:
        # Created on first use so it binds to the running loop.
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def connect(self, sink: FrameSink, token: Optional[str]) -> Session:
        """Authenticate and attach a socket. AuthError propagates to the caller."""
        async with self.lock:
            session, deliveries = self.dispatcher.connect(token)
            queue: asyncio.Queue = asyncio.Queue(maxsize=self._outbox_limit)
            writer = asyncio.create_task(self._write(session.id, sink, queue))
            self._outboxes[session.id] = _Outbox(queue=queue, writer=writer)
            self._enqueue(deliveries)
        return session

    async def dispatch(self, session_id: str, frame: Any) -> None:
        async with self.lock:
            deliveries = self.dispatcher.handle_raw(session_id, frame)
            self._enqueue(deliveries)

    async def disconnect(self, session_id: str) -> None:
        async with self.lock:
            outbox = self._outboxes.pop(session_id, None)
            deliveries = self.dispatcher.disconnect(session_id)
            self._enqueue(deliveries)
        if outbox is not None:
            outbox.writer.cancel()
            try:
                await outbox.writer
            except asyncio.CancelledError:
                pass

    async def flush(self, session_id: Optional[str] = None) -> None:
        """Wait until queued frames (for one session or all) have been written."""
        if session_id is not None:
            outbox = self._outboxes.get(session_id)
            outboxes = [outbox] if outbox is not None else []
        else:
            outboxes = list(self._outboxes.values())
        await asyncio.gather(*(outbox.queue.join() for outbox in outboxes))

    def connected(self) -> list[str]:
        return list(self._outboxes)

    def _enqueue(self, deliveries: Iterable[Delivery]) -> None:
        for delivery in deliveries:
            frame = delivery.frame()
            for session_id in delivery.recipients:
                outbox = self._outboxes.get(session_id)
                if outbox is None:
                    continue
                try:
                    outbox.queue.put_nowait(frame)
                except asyncio.QueueFull:
                    logger.warning(
                        "Outbox full for %s, dropped %s", session_id, delivery.event
                    )

    async def _write(self, session_id: str, sink: FrameSink, queue: asyncio.Queue) -> None:
        while True:
            frame = await queue.get()
            try:
                await sink.send_json(frame)
            except Exception as e:
                # A dead socket is cleaned up by its own receive loop.
                logger.warning(
                    "Failed to deliver %s to %s: %s", frame["event"], session_id, e
                )
            finally:
                queue.task_done()
