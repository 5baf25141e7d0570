"""
Certificate Approval Ledger

Pure data model and rules for the three-gate certificate workflow:
Zone Leader (level 1), Pastor (level 2), Parish Pastor (level 3).
Status is always derived from the recorded approvals and rejection.
"""

from .errors import (
    WorkflowError,
    ValidationError,
    ReasonRequired,
    NotFound,
    Unauthorized,
    OutOfOrder,
    AlreadyFinal,
    AlreadyActioned,
    NotIssuable,
)
from .types import (
    CertificateType,
    ActorRole,
    RequestStatus,
    ApprovalRecord,
    Approvals,
    CertificateRequest,
    Actor,
    LEVEL_FOR_ROLE,
)
from .ledger import (
    derive_status,
    pending_level,
    can_act,
    check_action,
    check_consistency,
    apply_approval,
    apply_rejection,
    progress_step,
    is_issuable,
    summarize,
)

__all__ = [
    "WorkflowError",
    "ValidationError",
    "ReasonRequired",
    "NotFound",
    "Unauthorized",
    "OutOfOrder",
    "AlreadyFinal",
    "AlreadyActioned",
    "NotIssuable",
    "CertificateType",
    "ActorRole",
    "RequestStatus",
    "ApprovalRecord",
    "Approvals",
    "CertificateRequest",
    "Actor",
    "LEVEL_FOR_ROLE",
    "derive_status",
    "pending_level",
    "can_act",
    "check_action",
    "check_consistency",
    "apply_approval",
    "apply_rejection",
    "progress_step",
    "is_issuable",
    "summarize",
]
