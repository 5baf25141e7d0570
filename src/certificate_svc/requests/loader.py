"""Request persistence - YAML round-trip for certificate requests."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from ..approvals import ledger
from ..approvals.errors import ValidationError
from ..approvals.types import (
    ApprovalRecord,
    Approvals,
    CertificateRequest,
    CertificateType,
)

if TYPE_CHECKING:
    from .registry import RequestRegistry

logger = logging.getLogger(__name__)


def load_requests_from_yaml(path: str | Path) -> list[CertificateRequest]:
    """
    Load requests from a YAML file.

    Every record must be one the approval ledger could have produced.

    Raises:
        ValidationError: the file is not valid YAML, or a record is
            malformed, inconsistent or duplicated
    """
    path = Path(path)
    if not path.exists():
        logger.info(f"Requests file not found: {path}")
        return []

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValidationError(f"Requests file {path} is not valid YAML: {e}") from e

    if not data:
        return []
    if not isinstance(data, dict):
        raise ValidationError(f"Requests file {path} must be a mapping with a 'requests' list")
    if "requests" not in data:
        return []

    loaded: list[CertificateRequest] = []
    seen: set[str] = set()
    for index, req_data in enumerate(data["requests"] or []):
        if not isinstance(req_data, dict):
            raise ValidationError(f"Requests file {path}: entry {index} is not a mapping")
        try:
            request = _parse_request(req_data)
            ledger.check_consistency(request)
        except ValidationError as e:
            raise ValidationError(f"Requests file {path}: {e}") from e
        if request.id in seen:
            raise ValidationError(f"Requests file {path}: duplicate request id {request.id}")
        seen.add(request.id)
        loaded.append(request)

    logger.info(f"Loaded {len(loaded)} requests from {path}")
    return loaded


def save_requests_to_yaml(path: str | Path, registry: RequestRegistry) -> int:
    """
    Save all requests from the registry to a YAML file.

    Writes to a sibling temp file and renames it over the target so a
    crash mid-write never leaves a truncated file.
    """
    path = Path(path)
    requests = sorted(registry.all_requests(), key=lambda r: r.id)

    data: dict[str, Any] = {
        "requests": [_serialize_request(r) for r in requests],
    }

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)
    os.replace(tmp_path, path)

    logger.debug(f"Saved {len(requests)} requests to {path}")
    return len(requests)


def _parse_record(data: dict[str, Any] | None) -> ApprovalRecord | None:
    if not data:
        return None
    if not isinstance(data, dict) or not data.get("by"):
        raise ValidationError(f"approval record {data!r} has no 'by'")
    return ApprovalRecord(
        by=data.get("by", ""),
        done_at=data.get("done_at", ""),
        comment=data.get("comment"),
    )


def _parse_request(data: dict[str, Any]) -> CertificateRequest:
    """Parse a single request from a dictionary."""
    request_id = str(data.get("id") or "")
    if not request_id:
        raise ValidationError("request without an id")

    approvals_data = data.get("approvals") or {}
    if not isinstance(approvals_data, dict):
        raise ValidationError(f"Request {request_id}: approvals must be a mapping")
    try:
        approvals = Approvals(
            level1=_parse_record(approvals_data.get("level1")),
            level2=_parse_record(approvals_data.get("level2")),
            level3=_parse_record(approvals_data.get("level3")),
        )
        certificate_type = CertificateType.parse(data.get("certificate_type", ""))
    except ValidationError as e:
        raise ValidationError(f"Request {request_id}: {e}") from e

    rejection_reason = (data.get("rejection_reason") or "").strip() or None

    return CertificateRequest(
        id=request_id,
        member_id=str(data.get("member_id", "")),
        member_name=data.get("member_name", ""),
        certificate_type=certificate_type,
        purpose=data.get("purpose", ""),
        request_date=data.get("request_date", ""),
        zone_id=data.get("zone_id"),
        approvals=approvals,
        rejection_reason=rejection_reason,
        rejected_by=data.get("rejected_by"),
        rejected_at=data.get("rejected_at"),
        rejected_level=data.get("rejected_level"),
    )


def _serialize_record(record: ApprovalRecord) -> dict[str, Any]:
    data: dict[str, Any] = {"by": record.by, "done_at": record.done_at}
    if record.comment:
        data["comment"] = record.comment
    return data


def _serialize_request(req: CertificateRequest) -> dict[str, Any]:
    """Serialize a request to a dictionary."""
    data: dict[str, Any] = {
        "id": req.id,
        "member_id": req.member_id,
        "member_name": req.member_name,
        "certificate_type": req.certificate_type.value,
        "purpose": req.purpose,
        "request_date": req.request_date,
    }

    if req.zone_id:
        data["zone_id"] = req.zone_id

    approvals = {
        f"level{level}": _serialize_record(req.approvals.get(level))
        for level in req.approvals.filled()
    }
    if approvals:
        data["approvals"] = approvals

    if req.rejection_reason:
        data["rejection_reason"] = req.rejection_reason
        data["rejected_by"] = req.rejected_by
        data["rejected_at"] = req.rejected_at
        data["rejected_level"] = req.rejected_level

    return data
