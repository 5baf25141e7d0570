"""Non-blocking telemetry emitter."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from .events import WorkflowEvent


logger = logging.getLogger(__name__)


@dataclass
class TelemetryEmitter:
    """
    Non-blocking emitter for workflow audit events.

    Route handlers put events on a bounded asyncio queue; a background
    loop hands them to the consumers. A full queue drops the event rather
    than delaying the response.
    """
    max_queue_size: int = 10000

    _queue: asyncio.Queue | None = field(default=None, init=False)
    _consumers: list[Callable[[WorkflowEvent], Any]] = field(default_factory=list, init=False)
    _stats: dict = field(default_factory=dict, init=False)

    def __post_init__(self):
        self._stats = {
            "emitted": 0,
            "dropped": 0,
            "errors": 0,
        }

    async def start(self) -> None:
        """Initialize the emitter (call on startup)."""
        self._queue = asyncio.Queue(maxsize=self.max_queue_size)
        logger.info(f"Telemetry emitter started (max_queue={self.max_queue_size})")

    async def stop(self) -> None:
        """Deliver whatever is still queued."""
        if self._queue:
            while not self._queue.empty():
                event = self._queue.get_nowait()
                await self._deliver(event)
        logger.info(f"Telemetry emitter stopped. Stats: {self._stats}")

    def add_consumer(self, consumer: Callable[[WorkflowEvent], Any]) -> None:
        """Add a consumer (sync function or coroutine function)."""
        self._consumers.append(consumer)

    def emit(self, event: WorkflowEvent) -> bool:
        """
        Emit an event (non-blocking).

        Returns True if queued, False if dropped.
        """
        if self._queue is None:
            logger.warning("Telemetry emitter not started, dropping event")
            self._stats["dropped"] += 1
            return False

        try:
            self._queue.put_nowait(event)
            self._stats["emitted"] += 1
            return True
        except asyncio.QueueFull:
            self._stats["dropped"] += 1
            return False

    async def process_loop(self) -> None:
        """Deliver queued events until cancelled. Run as a background task."""
        if self._queue is None:
            raise RuntimeError("Emitter not started")

        logger.info("Telemetry processing loop started")

        while True:
            try:
                event = await self._queue.get()
                await self._deliver(event)
                self._queue.task_done()
            except asyncio.CancelledError:
                logger.info("Telemetry processing loop cancelled")
                break

    async def _deliver(self, event: WorkflowEvent) -> None:
        """Deliver event to all consumers."""
        for consumer in self._consumers:
            try:
                result = consumer(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Telemetry consumer error: {e}")
                self._stats["errors"] += 1

    @property
    def queue_depth(self) -> int:
        return self._queue.qsize() if self._queue else 0

    @property
    def stats(self) -> dict:
        """Get emitter statistics."""
        return {
            **self._stats,
            "queue_depth": self.queue_depth,
            "consumers": len(self._consumers),
        }
