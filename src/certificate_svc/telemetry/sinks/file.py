"""File sink for telemetry."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

from ..events import WorkflowEvent
from .base import TelemetrySink


@dataclass
class FileSink(TelemetrySink):
    """
    Sink that appends events to a file, one JSON object per line.
    """
    path: str = "audit.jsonl"
    encoding: str = "utf-8"

    _file: IO[str] | None = field(default=None, init=False)

    async def start(self) -> None:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.path, "a", encoding=self.encoding)

    async def stop(self) -> None:
        if self._file:
            self._file.close()
            self._file = None

    async def send(self, events: list[WorkflowEvent]) -> None:
        if not self._file:
            await self.start()

        for event in events:
            self._file.write(json.dumps(event.to_dict(), default=str) + "\n")

        self._file.flush()
