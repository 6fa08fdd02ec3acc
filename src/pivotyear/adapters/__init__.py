"""Adapters - I/O implementations of ports."""

from .firebase_auth import FirebaseAuthAdapter
from .firestore_store import FirestoreDocumentStore
from .local_storage import FileLocalStorage

__all__ = [
    "FirebaseAuthAdapter",
    "FirestoreDocumentStore",
    "FileLocalStorage",
]
