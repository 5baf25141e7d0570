"""Workflow errors raised by the approval ledger and the workflow service."""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for certificate workflow failures."""
    code = "workflow_error"


class ValidationError(WorkflowError):
    """Raised when required input is missing or malformed."""
    code = "validation_error"


class ReasonRequired(ValidationError):
    """Raised when a rejection carries no reason."""
    code = "reason_required"


class NotFound(WorkflowError):
    """Raised when a request id does not exist in the store."""
    code = "not_found"


class Unauthorized(WorkflowError):
    """Raised when the actor's role does not hold the request's current gate."""
    code = "unauthorized"


class OutOfOrder(WorkflowError):
    """Raised when a gate would be filled while a lower gate is still open."""
    code = "out_of_order"


class AlreadyFinal(WorkflowError):
    """Raised when the request is already approved or rejected."""
    code = "already_final"


class AlreadyActioned(WorkflowError):
    """Raised when the actor's gate was already filled by another decision."""
    code = "already_actioned"


class NotIssuable(WorkflowError):
    """Raised when a certificate is requested before final approval."""
    code = "not_issuable"
