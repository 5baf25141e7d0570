"""Base sink interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..events import WorkflowEvent


class TelemetrySink(ABC):
    """Destination for workflow audit events."""

    @abstractmethod
    async def send(self, events: list[WorkflowEvent]) -> None:
        """Send a batch of events to the sink."""
        ...

    async def __call__(self, event: WorkflowEvent) -> None:
        # Sinks plug straight into TelemetryEmitter.add_consumer
        await self.send([event])

    async def start(self) -> None:
        """Initialize the sink (called on startup)."""
        pass

    async def stop(self) -> None:
        """Clean up the sink (called on shutdown)."""
        pass
