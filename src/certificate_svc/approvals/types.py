"""Approval ledger types - certificate requests and their approval records."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum

from .errors import ValidationError


class CertificateType(str, Enum):
    """Kinds of certificate a member can request."""
    BAPTISM = "baptism"
    MARRIAGE = "marriage"
    RECOMMENDATION = "recommendation"
    MEMBERSHIP = "membership"

    @classmethod
    def parse(cls, value: str | CertificateType) -> CertificateType:
        """
        Normalize a certificate type from any boundary spelling.

        ``confirmation`` and ``recommandation`` are synonyms of
        ``recommendation``.
        """
        if isinstance(value, CertificateType):
            return value
        key = (value or "").strip().lower()
        key = _CERTIFICATE_SYNONYMS.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValidationError(f"Unknown certificate type: {value!r}") from None


_CERTIFICATE_SYNONYMS = {
    "confirmation": "recommendation",
    "recommandation": "recommendation",
}


class ActorRole(str, Enum):
    """Role held by the user acting on a request."""
    MEMBER = "member"
    ZONE_LEADER = "zone-leader"
    PASTOR = "pastor"
    PARISH_PASTOR = "parish-pastor"

    @classmethod
    def parse(cls, value: str | ActorRole) -> ActorRole:
        """
        Normalize a role from any boundary spelling.

        Accepts ``zone-leader``, ``zone_leader``, ``ZONE_LEADER`` and the
        ``RoleEnum.ZONE_LEADER`` form emitted by the auth backend.
        """
        if isinstance(value, ActorRole):
            return value
        key = (value or "").strip()
        if key.startswith("RoleEnum."):
            key = key[len("RoleEnum."):]
        key = key.lower().replace("_", "-")
        try:
            return cls(key)
        except ValueError:
            raise ValidationError(f"Unknown role: {value!r}") from None


class RequestStatus(str, Enum):
    """Derived status of a certificate request."""
    PENDING = "pending"
    APPROVED_L1 = "approved_l1"
    APPROVED_L2 = "approved_l2"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (RequestStatus.APPROVED, RequestStatus.REJECTED)


# Gate each approving role signs at
LEVEL_FOR_ROLE: dict[ActorRole, int] = {
    ActorRole.ZONE_LEADER: 1,
    ActorRole.PASTOR: 2,
    ActorRole.PARISH_PASTOR: 3,
}

LEVEL_TITLES: dict[int, str] = {
    1: "Zone Leader",
    2: "Pastor",
    3: "Parish Pastor",
}


@dataclass(frozen=True, slots=True)
class ApprovalRecord:
    """A single sign-off at one approval gate."""
    by: str
    done_at: str            # ISO format
    comment: str | None = None


@dataclass(frozen=True, slots=True)
class Approvals:
    """The three ordered approval slots of a request."""
    level1: ApprovalRecord | None = None
    level2: ApprovalRecord | None = None
    level3: ApprovalRecord | None = None

    def get(self, level: int) -> ApprovalRecord | None:
        if level == 1:
            return self.level1
        if level == 2:
            return self.level2
        if level == 3:
            return self.level3
        raise ValueError(f"Invalid approval level: {level}")

    def with_level(self, level: int, record: ApprovalRecord) -> Approvals:
        """Return a copy with one slot filled."""
        self.get(level)
        return replace(self, **{f"level{level}": record})

    def filled(self) -> list[int]:
        """Levels that hold a record, lowest first."""
        return [lvl for lvl in (1, 2, 3) if self.get(lvl) is not None]


@dataclass(frozen=True, slots=True)
class CertificateRequest:
    """
    One member's request for one certificate.

    Immutable: every transition produces a new value. The status is never
    stored, it is derived from the approval slots and the rejection fact.
    """
    id: str
    member_id: str
    member_name: str
    certificate_type: CertificateType
    purpose: str
    request_date: str       # ISO format
    zone_id: str | None = None

    approvals: Approvals = field(default_factory=Approvals)

    # Rejection
    rejection_reason: str | None = None
    rejected_by: str | None = None
    rejected_at: str | None = None
    rejected_level: int | None = None

    @property
    def status(self) -> RequestStatus:
        from .ledger import derive_status
        return derive_status(self)


@dataclass(frozen=True, slots=True)
class Actor:
    """The role-bearing user performing an action."""
    role: ActorRole
    name: str
    zone_id: str | None = None
