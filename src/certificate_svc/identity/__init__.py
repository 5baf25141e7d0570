"""Caller identity extraction."""

from .extractor import ActorIdentity, IdentityExtractor, extract_identity

__all__ = ["ActorIdentity", "IdentityExtractor", "extract_identity"]
