"""Shared fixtures: in-memory implementations of the ports."""

import asyncio
import inspect
from collections import defaultdict
from datetime import datetime, timedelta, timezone

import pytest

from pivotyear.config import Config
from pivotyear.context import ClientContext
from pivotyear.errors import AuthError, AuthErrorKind, SyncError, SyncErrorKind
from pivotyear.ports import UserSession


class FakeSubscription:
    """Snapshot stream fed by the test or by FakeDocumentStore writes."""

    def __init__(self):
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def push(self, documents) -> None:
        self.queue.put_nowait([dict(d) for d in documents])

    def fail(self, error: SyncError) -> None:
        self.queue.put_nowait(error)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.queue.get()
        if item is None:
            raise StopAsyncIteration
        if isinstance(item, SyncError):
            raise item
        return item

    def close(self) -> None:
        self.closed = True
        self.queue.put_nowait(None)


class FakeDocumentStore:
    """In-memory DocumentStore that echoes writes to live subscriptions."""

    def __init__(self):
        self.collections: dict[str, dict[str, dict]] = defaultdict(dict)
        self.subscriptions: dict[str, list[FakeSubscription]] = defaultdict(list)
        self.upserts: list[tuple[str, str, dict]] = []
        self.batches: list[tuple[str, dict[str, dict]]] = []
        self.fail_writes = False
        self.fail_batches = False
        self.fail_subscribe = False
        self.closed = False

    def seed(self, user_id: str, day: int, text: str) -> None:
        self.collections[user_id][f"day_{day}"] = {"day": day, "text": text, "updatedAt": datetime.now(timezone.utc)}

    def subscribe(self, user_id: str) -> FakeSubscription:
        if self.fail_subscribe:
            raise SyncError(SyncErrorKind.SUBSCRIPTION_FAILED, "permission denied")
        subscription = FakeSubscription()
        self.subscriptions[user_id].append(subscription)
        subscription.push(self.collections[user_id].values())
        return subscription

    def _broadcast(self, user_id: str) -> None:
        for subscription in self.subscriptions[user_id]:
            if not subscription.closed:
                subscription.push(self.collections[user_id].values())

    async def upsert(self, user_id: str, doc_id: str, data: dict) -> None:
        await asyncio.sleep(0)
        if self.fail_writes:
            raise SyncError(SyncErrorKind.WRITE_FAILED, "unavailable")
        self.upserts.append((user_id, doc_id, dict(data)))
        existing = self.collections[user_id].get(doc_id, {})
        self.collections[user_id][doc_id] = {**existing, **data}
        self._broadcast(user_id)

    async def commit_batch(self, user_id: str, documents: dict[str, dict]) -> None:
        await asyncio.sleep(0)
        if self.fail_batches:
            raise SyncError(SyncErrorKind.WRITE_FAILED, "unavailable")
        self.batches.append((user_id, {k: dict(v) for k, v in documents.items()}))
        for doc_id, data in documents.items():
            self.collections[user_id][doc_id] = dict(data)
        self._broadcast(user_id)

    def texts(self, user_id: str) -> dict[int, str]:
        return {d["day"]: d["text"] for d in self.collections[user_id].values()}

    def close(self) -> None:
        self.closed = True


class MemoryLocalCache:
    """Dict-backed LocalCache."""

    def __init__(self, data: dict[str, str] | None = None):
        self.data = dict(data or {})

    def get_item(self, key: str) -> str | None:
        return self.data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove_item(self, key: str) -> None:
        self.data.pop(key, None)


class FakeIdentity:
    """IdentityProvider that signs in without a network."""

    def __init__(self, user: UserSession | None = None):
        self.user = user
        self.listeners = []
        self.fail_with: AuthErrorKind | None = None
        self.closed = False

    def current_user(self):
        return self.user

    def on_auth_state_change(self, callback):
        self.listeners.append(callback)
        return lambda: self.listeners.remove(callback)

    async def _notify(self):
        for callback in list(self.listeners):
            result = callback(self.user)
            if inspect.isawaitable(result):
                await result

    async def restore(self):
        await self._notify()
        return self.user

    async def _sign_in(self, user: UserSession) -> UserSession:
        if self.fail_with is not None:
            raise AuthError(self.fail_with)
        self.user = user
        await self._notify()
        return user

    async def sign_in_anonymously(self):
        return await self._sign_in(UserSession(user_id="anon-1", is_anonymous=True))

    async def sign_in_with_password(self, email, password):
        return await self._sign_in(UserSession(user_id="user-1", is_anonymous=False, email=email))

    async def create_account(self, email, password):
        return await self._sign_in(UserSession(user_id="user-2", is_anonymous=False, email=email))

    async def sign_out(self):
        self.user = None
        await self._notify()

    def id_token(self):
        return "token", datetime.now(timezone.utc) + timedelta(hours=1)

    def close(self):
        self.closed = True


@pytest.fixture
def user():
    return UserSession(user_id="user-1", is_anonymous=False, email="me@example.com")


@pytest.fixture
def documents():
    return FakeDocumentStore()


@pytest.fixture
def local_cache():
    return MemoryLocalCache()


@pytest.fixture
def config(tmp_path):
    return Config(
        autosave_delay_ms=30,
        local_storage_file=str(tmp_path / "local_storage.json"),
        export_file=str(tmp_path / "export.txt"),
    )


@pytest.fixture
def context(config, documents, local_cache):
    return ClientContext(
        config=config,
        identity=FakeIdentity(),
        documents=documents,
        local_cache=local_cache,
    )
