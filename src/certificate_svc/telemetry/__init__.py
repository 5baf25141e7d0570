"""Telemetry system - non-blocking workflow audit events."""

from .events import WorkflowEvent, EventOutcome, Operation
from .emitter import TelemetryEmitter

__all__ = [
    "WorkflowEvent",
    "EventOutcome",
    "Operation",
    "TelemetryEmitter",
]
