"""
Approval ledger - pure rules for the three-gate certificate workflow.

Gates are signed strictly in order (Zone Leader, Pastor, Parish Pastor).
A rejection at any gate, or the final approval, ends the workflow. Nothing
in this module mutates state: transitions return new request values.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable

from .errors import (
    AlreadyActioned,
    AlreadyFinal,
    OutOfOrder,
    ReasonRequired,
    Unauthorized,
    ValidationError,
)
from .types import (
    LEVEL_FOR_ROLE,
    LEVEL_TITLES,
    Actor,
    ActorRole,
    ApprovalRecord,
    CertificateRequest,
    RequestStatus,
)


def derive_status(request: CertificateRequest) -> RequestStatus:
    """Compute the status of a request from its approvals and rejection."""
    if request.rejection_reason:
        return RequestStatus.REJECTED
    approvals = request.approvals
    if approvals.level3 is not None:
        return RequestStatus.APPROVED
    if approvals.level2 is not None:
        return RequestStatus.APPROVED_L2
    if approvals.level1 is not None:
        return RequestStatus.APPROVED_L1
    return RequestStatus.PENDING


def pending_level(request: CertificateRequest) -> int | None:
    """The gate awaiting a decision, or None once the request is final."""
    status = derive_status(request)
    if status.is_terminal:
        return None
    for level in (1, 2, 3):
        if request.approvals.get(level) is None:
            return level
    return None


def can_act(role: ActorRole, request: CertificateRequest) -> int | None:
    """
    Return the gate ``role`` may decide on for ``request``, or None.

    At most one role can act on a request at any time.
    """
    level = LEVEL_FOR_ROLE.get(role)
    if level is None:
        return None
    if pending_level(request) != level:
        return None
    return level


def check_action(
    role: ActorRole,
    request: CertificateRequest,
    level: int | None = None,
) -> int:
    """
    Validate that ``role`` may decide on ``request`` now.

    Returns the granted gate. ``level`` is the gate the caller believes it
    is deciding on; when given it must match the role's gate.

    Raises:
        Unauthorized: role holds no gate, level mismatch, or a lower gate is open
        AlreadyFinal: request is approved or rejected
        AlreadyActioned: the role's gate has already been signed
    """
    role_level = LEVEL_FOR_ROLE.get(role)
    if role_level is None:
        raise Unauthorized(f"Role '{role.value}' cannot approve or reject requests")
    if level is not None and level != role_level:
        raise Unauthorized(
            f"Role '{role.value}' decides level {role_level}, not level {level}"
        )

    status = derive_status(request)
    if status.is_terminal:
        raise AlreadyFinal(f"Request {request.id} is already {status.value}")

    if request.approvals.get(role_level) is not None:
        raise AlreadyActioned(
            f"Level {role_level} of request {request.id} has already been decided"
        )

    granted = can_act(role, request)
    if granted is None:
        awaiting = pending_level(request)
        raise Unauthorized(
            f"Request {request.id} is awaiting {LEVEL_TITLES[awaiting]} approval "
            f"(level {awaiting})"
        )
    return granted


def apply_approval(
    request: CertificateRequest,
    level: int,
    actor: Actor,
    comment: str | None = None,
    now: str | None = None,
) -> CertificateRequest:
    """Sign gate ``level`` of ``request`` on behalf of ``actor``."""
    granted = check_action(actor.role, request, level)
    _check_order(request, granted)

    record = ApprovalRecord(
        by=actor.name,
        done_at=now or _utcnow(),
        comment=(comment or "").strip() or None,
    )
    return replace(request, approvals=request.approvals.with_level(granted, record))


def apply_rejection(
    request: CertificateRequest,
    level: int,
    actor: Actor,
    reason: str,
    now: str | None = None,
) -> CertificateRequest:
    """Reject ``request`` at gate ``level`` on behalf of ``actor``."""
    reason = (reason or "").strip()
    if not reason:
        raise ReasonRequired("A reason is required to reject a request")

    granted = check_action(actor.role, request, level)
    _check_order(request, granted)

    return replace(
        request,
        rejection_reason=reason,
        rejected_by=actor.name,
        rejected_at=now or _utcnow(),
        rejected_level=granted,
    )


def progress_step(request: CertificateRequest) -> int:
    """Number of completed gates (0 when rejected, 3 when approved)."""
    status = derive_status(request)
    if status == RequestStatus.REJECTED:
        return 0
    if status == RequestStatus.APPROVED:
        return 3
    return len(request.approvals.filled())


def is_issuable(request: CertificateRequest) -> bool:
    """Whether a certificate document may be produced for ``request``."""
    return derive_status(request) == RequestStatus.APPROVED


def summarize(requests: Iterable[CertificateRequest]) -> dict[str, int]:
    """Count requests by workflow stage."""
    counts = {"total": 0, "pending": 0, "in_review": 0, "approved": 0, "rejected": 0}
    for request in requests:
        status = derive_status(request)
        counts["total"] += 1
        if status in (RequestStatus.APPROVED_L1, RequestStatus.APPROVED_L2):
            counts["in_review"] += 1
        else:
            counts[status.value] += 1
    return counts


def check_consistency(request: CertificateRequest) -> None:
    """
    Verify that a stored request is one the ledger could have produced.

    Slots fill from level 1 upward with no gaps, and a rejection names the
    open gate it was made at, after every lower gate was signed.

    Raises:
        ValidationError: the recorded facts contradict each other
    """
    filled = request.approvals.filled()
    if filled != list(range(1, len(filled) + 1)):
        raise ValidationError(
            f"Request {request.id}: approval levels {filled} are not contiguous from level 1"
        )

    if not request.rejection_reason:
        if request.rejected_level is not None or request.rejected_by:
            raise ValidationError(f"Request {request.id}: rejection recorded without a reason")
        return

    level = request.rejected_level
    if level not in LEVEL_TITLES:
        raise ValidationError(f"Request {request.id}: invalid rejection level {level!r}")
    if not request.rejected_by:
        raise ValidationError(f"Request {request.id}: rejection has no actor")
    if len(filled) != level - 1:
        raise ValidationError(
            f"Request {request.id}: rejected at level {level} but levels {filled} are signed"
        )


def _check_order(request: CertificateRequest, level: int) -> None:
    for lower in range(1, level):
        if request.approvals.get(lower) is None:
            raise OutOfOrder(
                f"Level {level} of request {request.id} cannot be decided "
                f"before level {lower}"
            )


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()
