"""FastAPI routes for the certificate request & approval workflow."""

from __future__ import annotations

import logging
import time
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException

from ..approvals import ledger
from ..approvals.errors import (
    AlreadyActioned,
    AlreadyFinal,
    NotFound,
    NotIssuable,
    OutOfOrder,
    Unauthorized,
    ValidationError,
    WorkflowError,
)
from ..approvals.types import ActorRole, CertificateRequest
from ..identity.extractor import ActorIdentity, extract_identity
from ..telemetry.emitter import TelemetryEmitter
from ..telemetry.events import EventOutcome, Operation, WorkflowEvent
from .models import (
    ApprovalRecordModel,
    ApprovalsModel,
    ApproveBody,
    CertificateRequestModel,
    CreateRequestBody,
    RejectBody,
    ReloadResponse,
    RequestListResponse,
    SummaryResponse,
)
from .registry import YamlRequestRegistry
from .service import WorkflowService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/requests", tags=["Requests"])

# Configuration - set during app startup
_service: WorkflowService | None = None
_emitter: TelemetryEmitter | None = None

# HTTP status and audit outcome for each workflow error kind
_ERROR_MAP: list[tuple[type[WorkflowError], int, EventOutcome]] = [
    (ValidationError, 400, EventOutcome.INVALID),
    (NotFound, 404, EventOutcome.NOT_FOUND),
    (Unauthorized, 403, EventOutcome.UNAUTHORIZED),
    (OutOfOrder, 409, EventOutcome.CONFLICT),
    (AlreadyFinal, 409, EventOutcome.CONFLICT),
    (AlreadyActioned, 409, EventOutcome.CONFLICT),
    (NotIssuable, 409, EventOutcome.CONFLICT),
]


def configure(
    service: WorkflowService | None,
    emitter: TelemetryEmitter | None = None,
) -> None:
    """Configure the request routes with the workflow service."""
    global _service, _emitter
    _service = service
    _emitter = emitter


def _get_service() -> WorkflowService:
    """Get the workflow service, raising if not configured."""
    if _service is None:
        raise HTTPException(status_code=503, detail="Request module not initialized")
    return _service


def _classify(error: WorkflowError) -> tuple[int, EventOutcome]:
    for error_type, status_code, outcome in _ERROR_MAP:
        if isinstance(error, error_type):
            return status_code, outcome
    return 500, EventOutcome.ERROR


def _http_error(error: WorkflowError) -> HTTPException:
    status_code, _ = _classify(error)
    return HTTPException(
        status_code=status_code,
        detail={"message": str(error), "code": error.code},
    )


def _emit(
    operation: Operation,
    identity: ActorIdentity,
    request_id: str | None,
    started: float,
    request: CertificateRequest | None = None,
    error: WorkflowError | None = None,
) -> None:
    """Emit an audit event for a workflow call."""
    if _emitter is None:
        return

    outcome = EventOutcome.SUCCESS
    if error is not None:
        _, outcome = _classify(error)

    _emitter.emit(WorkflowEvent.create(
        operation=operation,
        actor=identity.principal,
        actor_role=identity.role.value,
        request_id=request.id if request is not None else request_id,
        outcome=outcome,
        latency_ms=(time.perf_counter() - started) * 1000,
        error_code=error.code if error is not None else None,
        error_message=str(error) if error is not None else None,
        status=request.status.value if request is not None else None,
    ))


def _request_to_model(req: CertificateRequest) -> CertificateRequestModel:
    """Convert a CertificateRequest to its Pydantic response model."""
    slots = {}
    for level in req.approvals.filled():
        record = req.approvals.get(level)
        slots[f"level{level}"] = ApprovalRecordModel(
            by=record.by,
            done_at=record.done_at,
            comment=record.comment,
        )

    return CertificateRequestModel(
        id=req.id,
        member_id=req.member_id,
        member_name=req.member_name,
        certificate_type=req.certificate_type.value,
        purpose=req.purpose,
        request_date=req.request_date,
        zone_id=req.zone_id,
        approvals=ApprovalsModel(**slots),
        status=req.status.value,
        pending_level=ledger.pending_level(req),
        progress_step=ledger.progress_step(req),
        rejection_reason=req.rejection_reason,
        rejected_by=req.rejected_by,
        rejected_at=req.rejected_at,
        rejected_level=req.rejected_level,
    )


def _check_can_read(identity: ActorIdentity, request: CertificateRequest) -> None:
    """Members may only see their own requests; approvers see all."""
    if identity.role == ActorRole.MEMBER and request.member_id != identity.user_id:
        raise Unauthorized("Members can only view their own requests")


def _require_approver(identity: ActorIdentity, action: str) -> None:
    if identity.role == ActorRole.MEMBER:
        raise Unauthorized(f"Only approvers can {action}")


def _list_response(service: WorkflowService, requests: list[CertificateRequest]) -> RequestListResponse:
    return RequestListResponse(
        requests=[_request_to_model(r) for r in requests],
        total=len(requests),
        by_status=service.summary(requests),
    )


# =============================================================================
# Submit Request
# =============================================================================

@router.post("", response_model=CertificateRequestModel, status_code=201)
async def create_request(
    body: CreateRequestBody,
    identity: ActorIdentity = Depends(extract_identity),
):
    """
    Submit a new certificate request.

    A member may only request certificates for themselves.
    """
    service = _get_service()
    started = time.perf_counter()

    try:
        if (
            identity.role == ActorRole.MEMBER
            and identity.user_id
            and identity.user_id != body.member_id
        ):
            raise Unauthorized("Members can only request certificates for themselves")

        request = service.create(
            member_id=body.member_id,
            member_name=body.member_name,
            certificate_type=body.certificate_type,
            purpose=body.purpose,
            zone_id=body.zone_id,
        )
    except WorkflowError as e:
        _emit(Operation.REQUEST_CREATE, identity, None, started, error=e)
        raise _http_error(e) from e

    _emit(Operation.REQUEST_CREATE, identity, request.id, started, request=request)
    return _request_to_model(request)


# =============================================================================
# List / Get Requests
# =============================================================================

@router.get("", response_model=RequestListResponse)
async def list_requests(
    view: Literal["all", "mine", "pending"] = "all",
    member_id: str | None = None,
    identity: ActorIdentity = Depends(extract_identity),
):
    """
    List requests, newest first.

    - ``all``: every request (approvers only)
    - ``mine``: requests of ``member_id`` (defaults to the caller)
    - ``pending``: the caller's actionable queue
    """
    service = _get_service()

    if view == "mine":
        owner = member_id or identity.user_id
        if not owner:
            raise HTTPException(status_code=400, detail="member_id is required for view=mine")
        if identity.role == ActorRole.MEMBER and identity.user_id and owner != identity.user_id:
            raise HTTPException(status_code=403, detail="Members can only list their own requests")
        requests = service.list_mine(owner)
    elif view == "pending":
        requests = service.list_pending_for(identity.role, zone_id=identity.zone_id)
    else:
        if identity.role == ActorRole.MEMBER:
            raise HTTPException(status_code=403, detail="Members can only list their own requests")
        requests = service.list_all()

    return _list_response(service, requests)


@router.get("/summary", response_model=SummaryResponse)
async def request_summary(identity: ActorIdentity = Depends(extract_identity)):
    """Counts of requests by workflow stage (approvers only)."""
    service = _get_service()
    try:
        _require_approver(identity, "view the request summary")
    except WorkflowError as e:
        raise _http_error(e) from e
    return SummaryResponse(**service.summary())


@router.get("/{request_id}", response_model=CertificateRequestModel)
async def get_request(
    request_id: str,
    identity: ActorIdentity = Depends(extract_identity),
):
    """Get a single request by ID. Members may only read their own."""
    service = _get_service()
    try:
        request = service.get(request_id)
        _check_can_read(identity, request)
    except WorkflowError as e:
        raise _http_error(e) from e
    return _request_to_model(request)


@router.get("/{request_id}/certificate", response_model=CertificateRequestModel)
async def get_certificate(
    request_id: str,
    identity: ActorIdentity = Depends(extract_identity),
):
    """Get a fully approved request for certificate rendering."""
    service = _get_service()
    started = time.perf_counter()
    try:
        _check_can_read(identity, service.get(request_id))
        request = service.get_issuable(request_id)
    except WorkflowError as e:
        _emit(Operation.CERTIFICATE_ISSUE, identity, request_id, started, error=e)
        raise _http_error(e) from e

    _emit(Operation.CERTIFICATE_ISSUE, identity, request_id, started, request=request)
    return _request_to_model(request)


# =============================================================================
# Approve / Reject
# =============================================================================

@router.post("/{request_id}/approve", response_model=CertificateRequestModel)
async def approve_request(
    request_id: str,
    body: ApproveBody,
    identity: ActorIdentity = Depends(extract_identity),
):
    """Approve a request at the caller's gate."""
    service = _get_service()
    started = time.perf_counter()

    try:
        request = service.approve(
            request_id,
            actor_role=identity.role,
            actor_name=identity.principal,
            comment=body.comment,
            level=body.level,
        )
    except WorkflowError as e:
        _emit(Operation.REQUEST_APPROVE, identity, request_id, started, error=e)
        raise _http_error(e) from e

    _emit(Operation.REQUEST_APPROVE, identity, request_id, started, request=request)
    return _request_to_model(request)


@router.post("/{request_id}/reject", response_model=CertificateRequestModel)
async def reject_request(
    request_id: str,
    body: RejectBody,
    identity: ActorIdentity = Depends(extract_identity),
):
    """Reject a request at the caller's gate. A reason is required."""
    service = _get_service()
    started = time.perf_counter()

    try:
        request = service.reject(
            request_id,
            actor_role=identity.role,
            actor_name=identity.principal,
            reason=body.reason,
            level=body.level,
        )
    except WorkflowError as e:
        _emit(Operation.REQUEST_REJECT, identity, request_id, started, error=e)
        raise _http_error(e) from e

    _emit(Operation.REQUEST_REJECT, identity, request_id, started, request=request)
    return _request_to_model(request)


# =============================================================================
# Reload
# =============================================================================

@router.post("/reload", response_model=ReloadResponse)
async def reload_requests(identity: ActorIdentity = Depends(extract_identity)):
    """
    Reload requests from the YAML file (approvers only).

    An invalid file is refused with 400 and the loaded requests stay as
    they were.
    """
    service = _get_service()
    store = service.store
    started = time.perf_counter()

    try:
        _require_approver(identity, "reload requests")
    except WorkflowError as e:
        _emit(Operation.REQUEST_RELOAD, identity, None, started, error=e)
        raise _http_error(e) from e

    if not isinstance(store, YamlRequestRegistry):
        raise HTTPException(status_code=400, detail="No YAML file configured for requests")
    if not store.path.exists():
        raise HTTPException(status_code=404, detail=f"Requests file not found: {store.path}")

    try:
        count = store.reload()
    except WorkflowError as e:
        logger.error(f"Reload of {store.path} refused: {e}")
        _emit(Operation.REQUEST_RELOAD, identity, None, started, error=e)
        raise _http_error(e) from e

    _emit(Operation.REQUEST_RELOAD, identity, None, started)
    logger.info(f"Reloaded {count} requests from {store.path}")
    return ReloadResponse(success=True, count=count, message=f"Reloaded {count} requests")
