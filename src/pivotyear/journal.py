"""Journal session - ties auth state, syncing, autosave and navigation together."""

import logging
from pathlib import Path

from .autosave import AutosaveController
from .context import ClientContext
from .core.entries import LAST_DAY_KEY, export_journal, is_valid_day, parse_last_day, progress_percent
from .core.prompts import DAYS_IN_YEAR, MONTHLY_THEMES, PromptRecord, all_prompts, month_start_day
from .core.status import SaveStatus, SaveStatusTracker
from .entry_store import EntryStore
from .ports import UserSession

logger = logging.getLogger(__name__)


class JournalSession:
    """
    One running instance of the journal.

    Opens the entry store when a user signs in and closes it (dropping unsaved
    debounced edits) when they sign out.
    """

    def __init__(self, context: ClientContext):
        self.context = context
        self.status_tracker = SaveStatusTracker()
        self.store = EntryStore(context.documents, context.local_cache, self.status_tracker)
        self.autosave = AutosaveController(
            self.store,
            context.documents,
            delay_ms=context.config.autosave_delay_ms,
        )
        self.current_day = 1
        self.auth_loading = True
        self._unsubscribe = None
        self._unsubscribe_status = self.status_tracker.subscribe(self._on_status_change)

    # ---------- Lifecycle ----------

    async def start(self) -> None:
        """Start autosave and resolve the initial auth state."""
        await self.autosave.start()
        self._unsubscribe = self.context.identity.on_auth_state_change(self._on_auth_state_change)
        await self.context.identity.restore()

    async def _on_auth_state_change(self, user: UserSession | None) -> None:
        self.auth_loading = False
        current = self.store.user

        if current is not None and (user is None or user.user_id != current.user_id):
            self.autosave.cancel_pending()
            await self.store.close()
            self.status_tracker.reset()

        if user is not None and self.store.user is None:
            await self.store.open(user)
            self.restore_last_day()

    def _on_status_change(self, status: SaveStatus) -> None:
        if status is SaveStatus.ERROR:
            logger.warning(f"{status.label}: edits are kept in memory until a save succeeds")
        else:
            logger.info(f"Sync status: {status.label}")

    async def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.autosave.close()
        await self.store.close()
        if self._unsubscribe_status is not None:
            self._unsubscribe_status()
            self._unsubscribe_status = None

    @property
    def user(self) -> UserSession | None:
        return self.context.identity.current_user()

    # ---------- Navigation ----------

    def restore_last_day(self) -> None:
        """Return to the day viewed last time on this device."""
        day = parse_last_day(self.context.local_cache.get_item(LAST_DAY_KEY))
        if day is not None:
            self.current_day = day

    def change_day(self, day: int) -> bool:
        """Move to a day. Days outside the year are ignored."""
        if not is_valid_day(day):
            return False
        self.current_day = day
        self.context.local_cache.set_item(LAST_DAY_KEY, str(day))
        return True

    def next_day(self) -> bool:
        return self.change_day(self.current_day + 1)

    def previous_day(self) -> bool:
        return self.change_day(self.current_day - 1)

    def jump_to_month(self, month_index: int) -> bool:
        """Jump to the first day of a theme month (0-based)."""
        if not 0 <= month_index < len(MONTHLY_THEMES):
            return False
        return self.change_day(month_start_day(month_index))

    # ---------- Entries ----------

    @property
    def current_prompt(self) -> PromptRecord:
        return all_prompts()[self.current_day - 1]

    def entry(self, day: int | None = None) -> str:
        return self.store.get(day or self.current_day) or ""

    def edit(self, text: str) -> None:
        """Edit the entry for the day being viewed."""
        self.autosave.handle_change(self.current_day, text)

    @property
    def status(self) -> SaveStatus:
        return self.status_tracker.state

    @property
    def progress(self) -> float:
        return progress_percent(self.store.entries)

    @property
    def days_written(self) -> int:
        return len(self.store.entries)

    # ---------- Export ----------

    def export_text(self) -> str:
        return export_journal(all_prompts(), self.store.entries)

    def export(self, path: Path | str | None = None) -> Path:
        """Write the plain-text export and return where it went."""
        target = Path(path or self.context.config.export_file).expanduser()
        target.write_text(self.export_text())
        logger.info(f"Exported {self.days_written}/{DAYS_IN_YEAR} entries to {target}")
        return target
