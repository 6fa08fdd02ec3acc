"""Functional core - pure journal logic with no I/O."""

from .prompts import (
    DAYS_IN_YEAR,
    MONTHLY_THEMES,
    PromptRecord,
    Theme,
    all_prompts,
    generate_prompts,
    month_start_day,
    prompt_for_day,
)
from .entries import (
    JournalEntry,
    document_id,
    entries_from_snapshot,
    export_journal,
    merge_snapshot,
    progress_percent,
)
from .status import SaveStatus, SaveStatusTracker

__all__ = [
    # Prompts
    "DAYS_IN_YEAR",
    "MONTHLY_THEMES",
    "PromptRecord",
    "Theme",
    "all_prompts",
    "generate_prompts",
    "month_start_day",
    "prompt_for_day",
    # Entries
    "JournalEntry",
    "document_id",
    "entries_from_snapshot",
    "export_journal",
    "merge_snapshot",
    "progress_percent",
    # Status
    "SaveStatus",
    "SaveStatusTracker",
]
