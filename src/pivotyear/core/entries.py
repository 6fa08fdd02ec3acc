"""Pure journal entry logic - no I/O dependencies."""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Mapping

from .prompts import DAYS_IN_YEAR, PromptRecord

logger = logging.getLogger(__name__)

ENTRIES_KEY = "pivotYearEntries"
LAST_DAY_KEY = "pivotYearLastDay"

EXPORT_TITLE = "MY PIVOT YEAR JOURNAL"
EXPORT_SEPARATOR = "===================================="
NO_ENTRY = "(No entry)"


@dataclass
class JournalEntry:
    """One day's entry as stored remotely."""

    day: int
    text: str
    updated_at: datetime

    def to_document(self) -> dict:
        """Serialize to the remote document shape."""
        return {"day": self.day, "text": self.text, "updatedAt": self.updated_at}

    @classmethod
    def create(cls, day: int, text: str, now: datetime | None = None) -> "JournalEntry":
        return cls(day=day, text=text, updated_at=now or datetime.now(timezone.utc))


def is_valid_day(day: int) -> bool:
    return 1 <= day <= DAYS_IN_YEAR


def document_id(day: int) -> str:
    """Remote document key for a day."""
    return f"day_{day}"


def entries_from_snapshot(documents: Iterable[Mapping]) -> dict[int, str]:
    """
    Extract day -> text from snapshot documents.

    Documents without a truthy day and text are skipped, as are days that
    are not numbers in range.
    """
    loaded = {}
    for data in documents:
        day = data.get("day")
        text = data.get("text")
        if not (day and text):
            continue
        try:
            day = int(day)
        except (TypeError, ValueError):
            logger.warning(f"Skipping remote entry with bad day: {day!r}")
            continue
        if not is_valid_day(day) or not isinstance(text, str):
            logger.warning(f"Skipping remote entry for day {day}")
            continue
        loaded[day] = text
    return loaded


def merge_snapshot(
    previous: Mapping[int, str],
    loaded: Mapping[int, str],
    local_cache: Mapping[int, str] | None,
) -> dict[int, str]:
    """
    Combine a delivered snapshot with the in-memory mapping.

    An empty snapshot with a local cache present means the remote side has
    never been written, so the local cache becomes the mapping. Otherwise the
    snapshot is layered over the previous mapping.
    """
    if local_cache is not None and not loaded:
        return dict(local_cache)
    return {**previous, **loaded}


def decode_local_entries(raw: str | None) -> dict[int, str] | None:
    """
    Parse the local cache value into day -> text.

    Returns None when nothing is stored or the value cannot be decoded.
    Keys that are not days in range are dropped.
    """
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Ignoring unreadable local entries: {e}")
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring local entries that are not a JSON object")
        return None

    entries = {}
    for key, text in data.items():
        try:
            day = int(key)
        except (TypeError, ValueError):
            logger.warning(f"Skipping local entry with bad day key: {key!r}")
            continue
        if not is_valid_day(day) or not isinstance(text, str):
            logger.warning(f"Skipping local entry for day {key!r}")
            continue
        entries[day] = text
    return entries


def encode_local_entries(entries: Mapping[int, str]) -> str:
    """Serialize day -> text the way the local cache stores it."""
    return json.dumps({str(day): text for day, text in sorted(entries.items())})


def parse_last_day(raw: str | None) -> int | None:
    """Parse the remembered day, ignoring garbage and out-of-range values."""
    if raw is None:
        return None
    try:
        day = int(raw)
    except ValueError:
        return None
    return day if is_valid_day(day) else None


def progress_percent(entries: Mapping[int, str]) -> float:
    """Share of the year with an entry, 0-100."""
    return len(entries) / DAYS_IN_YEAR * 100


def export_journal(prompts: Iterable[PromptRecord], entries: Mapping[int, str]) -> str:
    """
    Render the whole journal as plain text.

    Pure function - one section per prompt in the order given.
    """
    parts = [f"{EXPORT_TITLE}\n\n"]
    for p in prompts:
        parts.append(f"--- DAY {p.day}: {p.theme.upper()} ---\n")
        parts.append(f"Prompt: {p.text}\n\n")
        parts.append(f"My Entry:\n{entries.get(p.day) or NO_ENTRY}\n\n")
        parts.append(f"{EXPORT_SEPARATOR}\n\n")
    return "".join(parts)
