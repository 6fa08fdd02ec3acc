"""Cloud Firestore adapter for the per-user entry collection."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable

from google.api_core.exceptions import GoogleAPIError
from google.auth import credentials as google_credentials
from google.auth.exceptions import GoogleAuthError, RefreshError
from google.cloud import firestore

from pivotyear.errors import AuthError, SyncError, SyncErrorKind

COLLECTION = "journal_entries"

logger = logging.getLogger(__name__)

_CLOSED = object()

# Seconds between checks that a live listener is still running
WATCH_POLL_INTERVAL = 1.0


class FirebaseUserCredentials(google_credentials.Credentials):
    """Presents the signed-in user's Firebase ID token as a bearer token."""

    def __init__(self, token_source: Callable[[], tuple[str, datetime]]):
        super().__init__()
        self._token_source = token_source

    def refresh(self, request) -> None:
        try:
            token, expiry = self._token_source()
        except AuthError as e:
            raise RefreshError(f"Could not obtain Firebase ID token: {e}") from e
        self.token = token
        # google-auth compares against naive UTC
        self.expiry = expiry.astimezone(timezone.utc).replace(tzinfo=None)


class FirestoreSubscription:
    """
    Live snapshot stream for one collection.

    Firestore invokes the listener on its own thread; snapshots are handed to
    the event loop through a queue so consumers only ever see them on the loop.
    A listener that stops without close() (denied access, a revoked token)
    surfaces as SyncError(SUBSCRIPTION_FAILED) on the next poll.
    """

    def __init__(self, collection_ref, loop: asyncio.AbstractEventLoop, poll_interval: float = WATCH_POLL_INTERVAL):
        self._ref = collection_ref
        self._loop = loop
        self._poll_interval = poll_interval
        self._queue: asyncio.Queue = asyncio.Queue()
        self._getter: asyncio.Future | None = None
        self._watch = None
        self._closed = False

    def start(self) -> None:
        try:
            self._watch = self._ref.on_snapshot(self._on_snapshot)
        except (GoogleAPIError, GoogleAuthError) as e:
            logger.error(f"Failed to open snapshot listener: {e}")
            self._queue.put_nowait(e)

    def _on_snapshot(self, docs, changes, read_time) -> None:
        if self._closed:
            return
        payload = [doc.to_dict() or {} for doc in docs]
        self._loop.call_soon_threadsafe(self._queue.put_nowait, payload)

    def _listener_stopped(self) -> bool:
        return not self._closed and self._watch is not None and not self._watch.is_active

    def __aiter__(self):
        return self

    async def __anext__(self) -> list[dict]:
        while True:
            if self._getter is None:
                self._getter = asyncio.ensure_future(self._queue.get())
            done, _ = await asyncio.wait({self._getter}, timeout=self._poll_interval)
            if done:
                break
            if self._listener_stopped():
                logger.error("Snapshot listener stopped unexpectedly")
                raise SyncError(SyncErrorKind.SUBSCRIPTION_FAILED, "snapshot listener stopped")

        item = self._getter.result()
        self._getter = None
        if item is _CLOSED:
            raise StopAsyncIteration
        if isinstance(item, Exception):
            raise SyncError(SyncErrorKind.SUBSCRIPTION_FAILED, str(item)) from item
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._watch is not None:
            self._watch.unsubscribe()
        self._queue.put_nowait(_CLOSED)


class FirestoreDocumentStore:
    """
    Firestore document store.

    Implements DocumentStore protocol. Entries live under
    artifacts/{app_id}/users/{uid}/journal_entries. No business logic - just I/O.
    """

    def __init__(
        self,
        project_id: str,
        app_id: str,
        token_source: Callable[[], tuple[str, datetime]],
        client: firestore.Client | None = None,
        poll_interval: float = WATCH_POLL_INTERVAL,
    ):
        self.project_id = project_id
        self.app_id = app_id
        self.poll_interval = poll_interval
        self._token_source = token_source
        self._client = client

    @property
    def client(self) -> firestore.Client:
        if self._client is None:
            self._client = firestore.Client(
                project=self.project_id,
                credentials=FirebaseUserCredentials(self._token_source),
            )
        return self._client

    def _collection(self, user_id: str):
        return self.client.collection("artifacts", self.app_id, "users", user_id, COLLECTION)

    def subscribe(self, user_id: str) -> FirestoreSubscription:
        subscription = FirestoreSubscription(
            self._collection(user_id), asyncio.get_running_loop(), self.poll_interval
        )
        subscription.start()
        return subscription

    async def upsert(self, user_id: str, doc_id: str, data: dict) -> None:
        ref = self._collection(user_id).document(doc_id)
        try:
            await asyncio.to_thread(ref.set, data, merge=True)
        except (GoogleAPIError, GoogleAuthError) as e:
            raise SyncError(SyncErrorKind.WRITE_FAILED, str(e)) from e

    async def commit_batch(self, user_id: str, documents: dict[str, dict]) -> None:
        collection = self._collection(user_id)
        batch = self.client.batch()
        for doc_id, data in documents.items():
            batch.set(collection.document(doc_id), data)
        try:
            await asyncio.to_thread(batch.commit)
        except (GoogleAPIError, GoogleAuthError) as e:
            raise SyncError(SyncErrorKind.WRITE_FAILED, str(e)) from e

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
