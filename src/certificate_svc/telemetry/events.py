"""Telemetry event types."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class EventOutcome(str, Enum):
    """Outcome of a workflow call."""
    SUCCESS = "success"
    INVALID = "invalid"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    CONFLICT = "conflict"
    ERROR = "error"


class Operation(str, Enum):
    """Type of operation performed."""
    REQUEST_CREATE = "request_create"
    REQUEST_APPROVE = "request_approve"
    REQUEST_REJECT = "request_reject"
    REQUEST_RELOAD = "request_reload"
    CERTIFICATE_ISSUE = "certificate_issue"


@dataclass(frozen=True, slots=True)
class WorkflowEvent:
    """
    A single audit event for a workflow call.

    Captures who acted, on which request, and what came of it.
    """
    event_id: str
    timestamp: datetime

    # Who
    actor: str
    actor_role: str

    # What
    operation: Operation
    request_id: str | None

    # Outcome
    outcome: EventOutcome
    error_code: str | None = None
    error_message: str | None = None

    # Status of the request after the call
    status: str | None = None

    latency_ms: float = 0.0

    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        operation: Operation,
        actor: str,
        actor_role: str,
        request_id: str | None,
        outcome: EventOutcome,
        latency_ms: float = 0.0,
        **kwargs,
    ) -> WorkflowEvent:
        """Factory method with sensible defaults."""
        return cls(
            event_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            actor=actor,
            actor_role=actor_role,
            operation=operation,
            request_id=request_id,
            outcome=outcome,
            latency_ms=latency_ms,
            **kwargs,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "actor": self.actor,
            "actor_role": self.actor_role,
            "operation": self.operation.value,
            "request_id": self.request_id,
            "outcome": self.outcome.value,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "status": self.status,
            "latency_ms": self.latency_ms,
            "metadata": self.metadata,
        }
