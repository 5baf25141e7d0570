"""Shared test fixtures for the certificate workflow tests."""

import pytest

from certificate_svc.approvals.types import (
    Actor,
    ActorRole,
    ApprovalRecord,
    Approvals,
    CertificateRequest,
    CertificateType,
)
from certificate_svc.requests.registry import RequestRegistry
from certificate_svc.requests.service import WorkflowService


# =============================================================================
# Actors
# =============================================================================

@pytest.fixture
def zone_leader() -> Actor:
    return Actor(role=ActorRole.ZONE_LEADER, name="Grace Uwase", zone_id="zone-1")


@pytest.fixture
def pastor() -> Actor:
    return Actor(role=ActorRole.PASTOR, name="Pastor Jean")


@pytest.fixture
def parish_pastor() -> Actor:
    return Actor(role=ActorRole.PARISH_PASTOR, name="Father Paul")


@pytest.fixture
def member() -> Actor:
    return Actor(role=ActorRole.MEMBER, name="Alice Mukamana")


# =============================================================================
# Requests
# =============================================================================

def make_request(**overrides) -> CertificateRequest:
    """A pending baptism request with optional field overrides."""
    fields = dict(
        id="CERT-000001",
        member_id="m1",
        member_name="Alice Mukamana",
        certificate_type=CertificateType.BAPTISM,
        purpose="school",
        request_date="2025-06-01T10:00:00+00:00",
    )
    fields.update(overrides)
    return CertificateRequest(**fields)


def record(by: str, comment: str | None = None) -> ApprovalRecord:
    return ApprovalRecord(by=by, done_at="2025-06-02T09:00:00+00:00", comment=comment)


@pytest.fixture
def pending_request() -> CertificateRequest:
    return make_request()


@pytest.fixture
def l2_request() -> CertificateRequest:
    """A request signed by the Zone Leader and the Pastor."""
    return make_request(approvals=Approvals(
        level1=record("Grace Uwase"),
        level2=record("Pastor Jean"),
    ))


# =============================================================================
# Service
# =============================================================================

@pytest.fixture
def registry() -> RequestRegistry:
    """Empty in-memory request registry."""
    return RequestRegistry()


@pytest.fixture
def service(registry) -> WorkflowService:
    return WorkflowService(registry)
