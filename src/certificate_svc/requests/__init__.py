"""
Certificate Request Workflow

Owns the collection of certificate requests. Members submit requests;
Zone Leaders, Pastors and Parish Pastors approve or reject them in turn
through the workflow service, which persists every change.
"""

from .registry import RequestStore, RequestRegistry, YamlRequestRegistry
from .loader import load_requests_from_yaml, save_requests_to_yaml
from .service import WorkflowService

__all__ = [
    "RequestStore",
    "RequestRegistry",
    "YamlRequestRegistry",
    "load_requests_from_yaml",
    "save_requests_to_yaml",
    "WorkflowService",
]
