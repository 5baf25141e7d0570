"""Workflow service - owns certificate requests and applies ledger transitions."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterable, Iterator

from ..approvals import ledger
from ..approvals.errors import NotFound, NotIssuable, ValidationError
from ..approvals.types import (
    LEVEL_FOR_ROLE,
    Actor,
    ActorRole,
    CertificateRequest,
    CertificateType,
)
from .registry import RequestRegistry, RequestStore

logger = logging.getLogger(__name__)


class WorkflowService:
    """
    Mediates every create and transition of certificate requests.

    Each approve/reject runs load -> check -> apply -> persist under a lock
    for that request ID only; different requests proceed in parallel.
    Ledger errors propagate unchanged.
    """

    def __init__(self, store: RequestStore | None = None) -> None:
        self.store: RequestStore = store if store is not None else RequestRegistry()
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # =========================================================================
    # Mutations
    # =========================================================================

    def create(
        self,
        member_id: str,
        member_name: str,
        certificate_type: str | CertificateType,
        purpose: str,
        zone_id: str | None = None,
    ) -> CertificateRequest:
        """Create a new pending request."""
        member_id = (member_id or "").strip()
        purpose = (purpose or "").strip()
        if not member_id:
            raise ValidationError("member_id is required")
        if not purpose:
            raise ValidationError("A purpose is required to request a certificate")
        cert_type = CertificateType.parse(certificate_type)

        request = CertificateRequest(
            id=self.store.next_id(),
            member_id=member_id,
            member_name=(member_name or "").strip(),
            certificate_type=cert_type,
            purpose=purpose,
            request_date=_utcnow(),
            zone_id=zone_id or None,
        )
        self.store.put(request)
        logger.info(
            f"Request created: {request.id} ({cert_type.value}) for member {member_id}"
        )
        return request

    def approve(
        self,
        request_id: str,
        actor_role: str | ActorRole,
        actor_name: str,
        comment: str | None = None,
        level: int | None = None,
    ) -> CertificateRequest:
        """Sign the actor's gate on a request."""
        actor = Actor(role=ActorRole.parse(actor_role), name=actor_name)

        with self._request_lock(request_id):
            request = self._load(request_id)
            granted = ledger.check_action(actor.role, request, level)
            updated = ledger.apply_approval(request, granted, actor, comment)
            self.store.put(updated)

        logger.info(
            f"Request {request_id} approved at level {granted} by {actor.name} "
            f"-> {updated.status.value}"
        )
        return updated

    def reject(
        self,
        request_id: str,
        actor_role: str | ActorRole,
        actor_name: str,
        reason: str,
        level: int | None = None,
    ) -> CertificateRequest:
        """Reject a request at the actor's gate."""
        if not (reason or "").strip():
            raise ValidationError("A reason is required to reject a request")
        actor = Actor(role=ActorRole.parse(actor_role), name=actor_name)

        with self._request_lock(request_id):
            request = self._load(request_id)
            granted = ledger.check_action(actor.role, request, level)
            updated = ledger.apply_rejection(request, granted, actor, reason)
            self.store.put(updated)

        logger.info(f"Request {request_id} rejected at level {granted} by {actor.name}")
        return updated

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, request_id: str) -> CertificateRequest:
        """Get a single request."""
        return self._load(request_id)

    def list_mine(self, member_id: str) -> list[CertificateRequest]:
        """A member's own requests, newest first."""
        return _newest_first(
            r for r in self.store.all_requests() if r.member_id == member_id
        )

    def list_pending_for(
        self,
        actor_role: str | ActorRole,
        zone_id: str | None = None,
    ) -> list[CertificateRequest]:
        """
        Requests the role can decide on right now, newest first.

        For zone leaders, ``zone_id`` narrows the queue to that zone;
        requests without a zone stay visible to every zone leader.
        """
        role = ActorRole.parse(actor_role)
        actionable = [
            r for r in self.store.all_requests()
            if ledger.can_act(role, r) is not None
        ]
        if zone_id and role == ActorRole.ZONE_LEADER:
            actionable = [r for r in actionable if r.zone_id in (None, zone_id)]
        return _newest_first(actionable)

    def list_all(self) -> list[CertificateRequest]:
        """Every request, newest first."""
        return _newest_first(self.store.all_requests())

    def summary(self, requests: Iterable[CertificateRequest] | None = None) -> dict[str, int]:
        """Counts by workflow stage."""
        if requests is None:
            requests = self.store.all_requests()
        return ledger.summarize(requests)

    def get_issuable(self, request_id: str) -> CertificateRequest:
        """Return a fully approved request for document rendering."""
        request = self._load(request_id)
        if not ledger.is_issuable(request):
            raise NotIssuable(
                f"Request {request_id} is {request.status.value}; "
                "a certificate can only be issued after final approval"
            )
        return request

    @staticmethod
    def gate_for(actor_role: str | ActorRole) -> int | None:
        """The gate a role signs at, or None for members."""
        return LEVEL_FOR_ROLE.get(ActorRole.parse(actor_role))

    # =========================================================================
    # Internals
    # =========================================================================

    def _load(self, request_id: str) -> CertificateRequest:
        request = self.store.get(request_id)
        if request is None:
            raise NotFound(f"Request not found: {request_id}")
        return request

    @contextmanager
    def _request_lock(self, request_id: str) -> Iterator[None]:
        # Locks exist only for stored requests; unknown ids raise NotFound
        with self._locks_guard:
            lock = self._locks.get(request_id)
            if lock is None:
                self._load(request_id)
                lock = self._locks[request_id] = threading.Lock()
        with lock:
            yield


def _newest_first(requests: Iterable[CertificateRequest]) -> list[CertificateRequest]:
    return sorted(requests, key=lambda r: (r.request_date, r.id), reverse=True)


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()
