"""Entry store - live per-user entry mapping plus one-time local migration."""

import asyncio
import logging
from datetime import datetime, timezone

from .core.entries import (
    ENTRIES_KEY,
    JournalEntry,
    decode_local_entries,
    document_id,
    encode_local_entries,
    entries_from_snapshot,
    is_valid_day,
    merge_snapshot,
)
from .core.status import SaveStatus, SaveStatusTracker
from .errors import SyncError, SyncErrorKind
from .ports import DocumentStore, LocalCache, Subscription, UserSession

logger = logging.getLogger(__name__)


def save_local_entry(cache: LocalCache, day: int, text: str) -> None:
    """Store an entry on this device only, to be migrated after sign-in."""
    if not is_valid_day(day):
        raise ValueError(f"Day out of range: {day}")
    entries = decode_local_entries(cache.get_item(ENTRIES_KEY)) or {}
    entries[day] = text
    cache.set_item(ENTRIES_KEY, encode_local_entries(entries))


class EntryStore:
    """
    Authoritative day -> text mapping for the signed-in user.

    Kept live by a subscription to the user's remote collection. Local edits
    are applied optimistically before they are persisted. When entries cached
    on the device are found, they are copied to the remote collection once
    and then removed from the device.
    """

    def __init__(
        self,
        documents: DocumentStore,
        local_cache: LocalCache,
        status: SaveStatusTracker | None = None,
    ):
        self._documents = documents
        self._local = local_cache
        self.status = status or SaveStatusTracker()
        self.entries: dict[int, str] = {}
        self.user: UserSession | None = None
        self._subscription: Subscription | None = None
        self._listener: asyncio.Task | None = None
        self._migration: asyncio.Task | None = None
        self._loaded = asyncio.Event()

    # ---------- Lifecycle ----------

    async def open(self, user: UserSession) -> None:
        """Start syncing the given user's entries."""
        if self.user is not None:
            await self.close()

        self.user = user
        self._loaded.clear()
        logger.info(f"Opening entry subscription for {user.user_id}")

        try:
            self._subscription = self._documents.subscribe(user.user_id)
        except SyncError as e:
            self._subscription_failed(e)
            return

        self._listener = asyncio.create_task(self._consume(self._subscription))
        self._maybe_migrate()

    async def close(self) -> None:
        """Stop syncing. An in-flight migration is allowed to finish."""
        if self._subscription is not None:
            self._subscription.close()
        if self._listener is not None:
            self._listener.cancel()
            await asyncio.gather(self._listener, return_exceptions=True)
        await self.wait_for_migration()

        if self.user is not None:
            logger.info(f"Closed entry subscription for {self.user.user_id}")
        self.user = None
        self.entries = {}
        self._subscription = None
        self._listener = None
        self._migration = None

    async def wait_until_loaded(self, timeout: float = 15.0) -> bool:
        """Wait for the first snapshot. Returns False on timeout."""
        try:
            await asyncio.wait_for(self._loaded.wait(), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"No snapshot received within {timeout}s")
            return False
        return True

    async def wait_for_migration(self) -> None:
        if self._migration is not None:
            await asyncio.gather(self._migration, return_exceptions=True)

    # ---------- Reads and writes ----------

    def get(self, day: int) -> str | None:
        return self.entries.get(day)

    def set_entry(self, day: int, text: str) -> None:
        """Apply an edit to the in-memory mapping immediately."""
        if not is_valid_day(day):
            raise ValueError(f"Day out of range: {day}")
        self.entries = {**self.entries, day: text}
        self._maybe_migrate()

    def read_local_entries(self) -> dict[int, str] | None:
        return decode_local_entries(self._local.get_item(ENTRIES_KEY))

    # ---------- Snapshots ----------

    async def _consume(self, subscription: Subscription) -> None:
        try:
            async for documents in subscription:
                self.apply_snapshot(documents)
        except SyncError as e:
            self._subscription_failed(e)
        finally:
            self._loaded.set()

    def apply_snapshot(self, documents: list[dict]) -> None:
        """Merge a delivered snapshot into the mapping."""
        loaded = entries_from_snapshot(documents)
        self.entries = merge_snapshot(self.entries, loaded, self.read_local_entries())
        logger.debug(f"Snapshot with {len(loaded)} entries, {len(self.entries)} in memory")
        self._loaded.set()
        self._maybe_migrate()

    def _subscription_failed(self, error: SyncError) -> None:
        logger.error(f"Error fetching entries: {error}")
        self.status.set(SaveStatus.ERROR)
        self._loaded.set()

    # ---------- Migration ----------

    def _maybe_migrate(self) -> None:
        """Start a migration if local entries exist and remote state has arrived."""
        if self.user is None or not self.entries:
            return
        if self._local.get_item(ENTRIES_KEY) is None:
            return
        if self._migration is not None and not self._migration.done():
            logger.debug("Migration already running")
            return
        self._migration = asyncio.create_task(self._migrate_quietly())

    async def _migrate_quietly(self) -> None:
        try:
            await self.migrate()
        except SyncError as e:
            logger.error(f"Migration failed, keeping local entries: {e}")

    async def migrate(self) -> int:
        """
        Copy locally cached entries to the remote collection in one batch.

        The local cache is removed only after the batch commits. Returns the
        number of entries migrated. Raises SyncError(MIGRATION_FAILED).
        """
        user = self.user
        if user is None:
            return 0

        local = self.read_local_entries()
        if local is None:
            return 0
        if not local:
            self._local.remove_item(ENTRIES_KEY)
            return 0

        now = datetime.now(timezone.utc)
        documents = {
            document_id(day): JournalEntry.create(day, text, now).to_document()
            for day, text in local.items()
        }

        try:
            await self._documents.commit_batch(user.user_id, documents)
        except SyncError as e:
            raise SyncError(SyncErrorKind.MIGRATION_FAILED, e.detail or str(e)) from e

        logger.info(f"Migration complete ({len(documents)} entries). Clearing local storage.")
        self._local.remove_item(ENTRIES_KEY)
        return len(documents)
