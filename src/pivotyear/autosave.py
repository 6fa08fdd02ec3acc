"""Debounced autosave of journal edits."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .core.entries import JournalEntry, document_id
from .core.status import SaveStatus
from .entry_store import EntryStore
from .errors import SyncError
from .ports import DocumentStore

logger = logging.getLogger(__name__)

DEFAULT_DELAY_MS = 1500


def job_id(day: int) -> str:
    return f"autosave:{document_id(day)}"


class AutosaveController:
    """
    Persists edits after a quiet period.

    Every edit updates the entry store immediately and (re)schedules one write
    for its day. A newer edit to the same day replaces the scheduled write, so
    only the last text is persisted. Pending writes are dropped, not flushed,
    when the controller is closed.
    """

    def __init__(
        self,
        store: EntryStore,
        documents: DocumentStore,
        delay_ms: int = DEFAULT_DELAY_MS,
        scheduler: AsyncIOScheduler | None = None,
    ):
        self._store = store
        self._documents = documents
        self.delay = timedelta(milliseconds=delay_ms)
        self._scheduler = scheduler
        # day -> generation of the write currently scheduled for it
        self._scheduled: dict[int, int] = {}
        self._generation = 0
        self._in_flight = 0
        self._settled = asyncio.Event()
        self._settled.set()

    @property
    def status(self) -> SaveStatus:
        return self._store.status.state

    @property
    def pending_days(self) -> list[int]:
        return sorted(self._scheduled)

    async def start(self) -> None:
        """Start the scheduler on the running event loop."""
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop(), timezone=timezone.utc)
        if not self._scheduler.running:
            self._scheduler.start()

    def handle_change(self, day: int, text: str) -> None:
        """Record an edit for a day and schedule its write. Requires start()."""
        if self._scheduler is None:
            raise RuntimeError("Autosave has not been started")
        self._store.set_entry(day, text)
        self._store.status.set(SaveStatus.SAVING)

        self._generation += 1
        self._scheduled[day] = self._generation
        self._settled.clear()

        self._scheduler.add_job(
            self._persist,
            "date",
            run_date=datetime.now(timezone.utc) + self.delay,
            args=[day, text, self._generation],
            id=job_id(day),
            replace_existing=True,
            misfire_grace_time=None,
        )

    async def _persist(self, day: int, text: str, generation: int) -> None:
        self._in_flight += 1
        if self._scheduled.get(day) == generation:
            del self._scheduled[day]

        try:
            user = self._store.user
            if user is None:
                logger.debug(f"No user signed in, day {day} kept in memory only")
                return

            entry = JournalEntry.create(day, text)
            await self._documents.upsert(user.user_id, document_id(day), entry.to_document())
        except SyncError as e:
            logger.error(f"Journal save error for day {day}: {e}")
            self._store.status.set(SaveStatus.ERROR)
        else:
            logger.debug(f"Saved day {day}")
            self._store.status.set(SaveStatus.SAVED)
        finally:
            self._in_flight -= 1
            self._update_settled()

    def _update_settled(self) -> None:
        if not self._scheduled and self._in_flight == 0:
            self._settled.set()
        else:
            self._settled.clear()

    async def wait_until_settled(self, timeout: float | None = None) -> bool:
        """Wait until nothing is scheduled or being written. False on timeout."""
        try:
            await asyncio.wait_for(self._settled.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def cancel_pending(self) -> int:
        """Drop scheduled writes without running them. Returns how many."""
        dropped = len(self._scheduled)
        for day in list(self._scheduled):
            job = self._scheduler.get_job(job_id(day)) if self._scheduler else None
            if job is not None:
                job.remove()
        self._scheduled.clear()
        self._update_settled()
        if dropped:
            logger.warning(f"Discarding {dropped} unsaved edit(s)")
        return dropped

    async def close(self) -> None:
        self.cancel_pending()
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
