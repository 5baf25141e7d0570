"""Pydantic models for the certificate request API."""

from __future__ import annotations

from pydantic import BaseModel, Field


# =============================================================================
# Request Body Models
# =============================================================================

class CreateRequestBody(BaseModel):
    """Body for submitting a new certificate request."""
    member_id: str
    member_name: str = ""
    certificate_type: str
    purpose: str = ""
    zone_id: str | None = None


class ApproveBody(BaseModel):
    """Body for approving at the caller's gate."""
    comment: str | None = None
    level: int | None = Field(default=None, ge=1, le=3)


class RejectBody(BaseModel):
    """Body for rejecting at the caller's gate."""
    reason: str = ""
    level: int | None = Field(default=None, ge=1, le=3)


# =============================================================================
# Response Models
# =============================================================================

class ApprovalRecordModel(BaseModel):
    """A sign-off at one gate."""
    by: str
    done_at: str
    comment: str | None = None


class ApprovalsModel(BaseModel):
    """The three approval slots."""
    level1: ApprovalRecordModel | None = None
    level2: ApprovalRecordModel | None = None
    level3: ApprovalRecordModel | None = None


class CertificateRequestModel(BaseModel):
    """Full representation of a certificate request."""
    id: str
    member_id: str
    member_name: str = ""
    certificate_type: str
    purpose: str
    request_date: str
    zone_id: str | None = None
    approvals: ApprovalsModel = Field(default_factory=ApprovalsModel)

    # Derived
    status: str
    pending_level: int | None = None
    progress_step: int = 0

    # Rejection
    rejection_reason: str | None = None
    rejected_by: str | None = None
    rejected_at: str | None = None
    rejected_level: int | None = None


class RequestListResponse(BaseModel):
    """Response for listing requests."""
    requests: list[CertificateRequestModel]
    total: int
    by_status: dict[str, int] = Field(default_factory=dict)


class SummaryResponse(BaseModel):
    """Counts of requests by workflow stage."""
    total: int = 0
    pending: int = 0
    in_review: int = 0
    approved: int = 0
    rejected: int = 0


class ReloadResponse(BaseModel):
    """Response after reloading requests from disk."""
    success: bool
    count: int
    message: str = ""
