"""Identity extraction from requests."""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from fastapi import HTTPException
from starlette.requests import Request

from ..approvals.errors import ValidationError
from ..approvals.types import Actor, ActorRole


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ActorIdentity:
    """
    Identity of the user calling the service.

    Authentication happens upstream; this only carries the role the caller
    holds and the name recorded on approvals.
    """
    role: ActorRole = ActorRole.MEMBER
    name: str = ""

    # Member / account identifier (from the token subject)
    user_id: str | None = None

    # Zone the caller belongs to (zone leaders review their own zone)
    zone_id: str | None = None

    claims: dict[str, Any] = field(default_factory=dict)

    @property
    def principal(self) -> str:
        """Primary identifier for this caller."""
        return self.name or self.user_id or "anonymous"

    @property
    def actor(self) -> Actor:
        return Actor(role=self.role, name=self.principal, zone_id=self.zone_id)

    def __str__(self) -> str:
        return f"{self.principal} ({self.role.value})"


@dataclass
class IdentityExtractor:
    """
    Extracts caller identity from HTTP requests.

    Supported sources, in order:
    - Custom extractor (if configured)
    - JWT bearer token payload (Authorization: Bearer ...)
    - Plain headers set by the gateway (X-User-Role, X-User-Name, ...)

    Signatures are not verified here; the gateway does that.
    """
    # Header names
    jwt_header: str = "Authorization"
    role_header: str = "X-User-Role"
    name_header: str = "X-User-Name"
    user_id_header: str = "X-User-ID"
    zone_header: str = "X-Zone-ID"

    # JWT claim mappings
    jwt_role_claim: str = "role"
    jwt_name_claim: str = "name"
    jwt_user_claim: str = "sub"
    jwt_zone_claim: str = "zone_id"

    custom_extractor: Callable[[Request], ActorIdentity | None] | None = None

    def extract(self, request: Request) -> ActorIdentity:
        """
        Extract caller identity from request.

        Raises:
            ValidationError: if the presented role is not a known role
        """
        if self.custom_extractor:
            identity = self.custom_extractor(request)
            if identity:
                return identity

        identity = self._extract_jwt(request)
        if identity:
            return identity

        return self._extract_headers(request)

    def _extract_jwt(self, request: Request) -> ActorIdentity | None:
        """Extract identity from a JWT bearer token."""
        auth_header = request.headers.get(self.jwt_header, "")
        if not auth_header.startswith("Bearer "):
            return None

        token = auth_header[7:]
        parts = token.split(".")
        if len(parts) != 3:
            return None

        # Decode payload (add padding if needed)
        payload_b64 = parts[1]
        padding = 4 - len(payload_b64) % 4
        if padding != 4:
            payload_b64 += "=" * padding

        try:
            payload = json.loads(base64.urlsafe_b64decode(payload_b64))
        except (binascii.Error, ValueError) as e:
            logger.debug(f"Failed to decode JWT payload: {e}")
            return None
        if not isinstance(payload, dict):
            return None

        role = payload.get(self.jwt_role_claim)
        return ActorIdentity(
            role=ActorRole.parse(role) if role else ActorRole.MEMBER,
            name=payload.get(self.jwt_name_claim) or "",
            user_id=payload.get(self.jwt_user_claim),
            zone_id=payload.get(self.jwt_zone_claim) or request.headers.get(self.zone_header),
            claims=payload,
        )

    def _extract_headers(self, request: Request) -> ActorIdentity:
        """Extract identity from gateway-provided headers."""
        role = request.headers.get(self.role_header)
        return ActorIdentity(
            role=ActorRole.parse(role) if role else ActorRole.MEMBER,
            name=request.headers.get(self.name_header, ""),
            user_id=request.headers.get(self.user_id_header),
            zone_id=request.headers.get(self.zone_header),
        )


# Default extractor instance
_default_extractor = IdentityExtractor()


def extract_identity(request: Request) -> ActorIdentity:
    """Extract identity using the default extractor."""
    try:
        return _default_extractor.extract(request)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
