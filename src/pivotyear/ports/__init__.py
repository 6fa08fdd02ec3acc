"""Ports - interfaces/protocols for external dependencies."""

from .identity import IdentityProvider, UserSession
from .document_store import DocumentStore, Subscription
from .local_cache import LocalCache

__all__ = [
    "IdentityProvider",
    "UserSession",
    "DocumentStore",
    "Subscription",
    "LocalCache",
]
