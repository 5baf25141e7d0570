"""Console sink for development/debugging."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass

from ..events import WorkflowEvent
from .base import TelemetrySink


@dataclass
class ConsoleSink(TelemetrySink):
    """Sink that prints events to stdout or stderr."""
    stream: str = "stdout"  # stdout | stderr
    format: str = "json"    # json | compact
    prefix: str = "[AUDIT] "

    async def send(self, events: list[WorkflowEvent]) -> None:
        out = sys.stdout if self.stream == "stdout" else sys.stderr

        for event in events:
            print(f"{self.prefix}{self._format_event(event)}", file=out)

    def _format_event(self, event: WorkflowEvent) -> str:
        if self.format == "compact":
            return (
                f"{event.timestamp.isoformat()} "
                f"{event.actor} ({event.actor_role}) "
                f"{event.operation.value} "
                f"{event.request_id or '-'} "
                f"{event.outcome.value} "
                f"{event.latency_ms:.1f}ms"
            )
        return json.dumps(event.to_dict(), default=str)
