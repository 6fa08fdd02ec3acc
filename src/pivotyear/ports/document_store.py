"""Remote document store interface."""

from typing import AsyncIterator, Protocol


class Subscription(Protocol):
    """A live stream of collection snapshots.

    Each item is the full list of documents currently in the collection.
    Iteration raises SyncError if the listener fails.
    """

    def __aiter__(self) -> AsyncIterator[list[dict]]:
        ...

    async def __anext__(self) -> list[dict]:
        ...

    def close(self) -> None:
        """Stop listening. Pending iteration ends."""
        ...


class DocumentStore(Protocol):
    """Interface for a user's journal entry collection."""

    def subscribe(self, user_id: str) -> Subscription:
        """Start listening to the user's collection."""
        ...

    async def upsert(self, user_id: str, doc_id: str, data: dict) -> None:
        """Create or merge-update a single document."""
        ...

    async def commit_batch(self, user_id: str, documents: dict[str, dict]) -> None:
        """Atomically write several documents (doc id -> data), replacing each."""
        ...

    def close(self) -> None:
        """Release network resources."""
        ...
