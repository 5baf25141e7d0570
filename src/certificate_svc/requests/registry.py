"""Request registry - thread-safe stores for certificate requests."""

from __future__ import annotations

import logging
import re
import threading
from pathlib import Path
from typing import Protocol

from ..approvals.types import CertificateRequest
from .loader import load_requests_from_yaml, save_requests_to_yaml

logger = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r"^CERT-(\d+)$")


class RequestStore(Protocol):
    """Persistence boundary used by the workflow service."""

    def get(self, request_id: str) -> CertificateRequest | None: ...

    def put(self, request: CertificateRequest) -> None: ...

    def all_requests(self) -> list[CertificateRequest]: ...

    def next_id(self) -> str: ...


class RequestRegistry:
    """
    Thread-safe in-memory registry of certificate requests.

    Holds whole request values; writers replace a request with ``put``.
    """

    def __init__(self) -> None:
        self._requests: dict[str, CertificateRequest] = {}
        self._lock = threading.RLock()
        self._counter = 0

    def next_id(self) -> str:
        """Reserve the next unused request ID."""
        with self._lock:
            while True:
                self._counter += 1
                request_id = f"CERT-{self._counter:06d}"
                if request_id not in self._requests:
                    return request_id

    def get(self, request_id: str) -> CertificateRequest | None:
        """Get a request by ID."""
        with self._lock:
            return self._requests.get(request_id)

    def put(self, request: CertificateRequest) -> None:
        """Insert or replace a request."""
        with self._lock:
            self._requests[request.id] = request
            self._track_id(request.id)

    def all_requests(self) -> list[CertificateRequest]:
        """Get all requests."""
        with self._lock:
            return list(self._requests.values())

    def clear(self) -> None:
        """Clear all requests."""
        with self._lock:
            self._requests.clear()
            self._counter = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._requests)

    def _track_id(self, request_id: str) -> None:
        # Keep generated IDs ahead of IDs loaded from disk
        match = _ID_PATTERN.match(request_id)
        if match:
            self._counter = max(self._counter, int(match.group(1)))


class YamlRequestRegistry(RequestRegistry):
    """
    Request registry backed by a YAML file.

    Loads the file on construction and rewrites it on every ``put`` before
    returning, so a successful write survives a restart.
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = Path(path)
        self.reload()

    def put(self, request: CertificateRequest) -> None:
        with self._lock:
            previous = self._requests.get(request.id)
            super().put(request)
            try:
                save_requests_to_yaml(self.path, self)
            except Exception as e:
                logger.error(f"Failed to persist request {request.id} to {self.path}: {e}")
                # Keep memory consistent with disk
                if previous is None:
                    self._requests.pop(request.id, None)
                else:
                    self._requests[request.id] = previous
                raise

    def reload(self) -> int:
        """
        Replace the in-memory contents with the YAML file's.

        The file is parsed in full before anything is replaced; if it is
        invalid the error propagates and the current contents stay.
        """
        with self._lock:
            loaded = load_requests_from_yaml(self.path)
            self.clear()
            for request in loaded:
                super().put(request)
            return len(loaded)
