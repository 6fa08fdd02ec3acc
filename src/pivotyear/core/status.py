"""Save status state machine."""

import logging
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class SaveStatus(Enum):
    """Sync indicator shown next to the editor."""

    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"

    @property
    def label(self) -> str:
        labels = {
            SaveStatus.IDLE: "Cloud Ready",
            SaveStatus.SAVING: "Saving...",
            SaveStatus.SAVED: "Saved to Cloud",
            SaveStatus.ERROR: "Sync Error",
        }
        return labels[self]


class SaveStatusTracker:
    """Holds the current status and notifies listeners on change."""

    def __init__(self, initial: SaveStatus = SaveStatus.IDLE):
        self._state = initial
        self._listeners: list[Callable[[SaveStatus], None]] = []

    @property
    def state(self) -> SaveStatus:
        return self._state

    def subscribe(self, listener: Callable[[SaveStatus], None]) -> Callable[[], None]:
        """Register a listener. Returns a function that removes it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def set(self, state: SaveStatus) -> None:
        if state is self._state:
            return
        logger.debug(f"Save status {self._state.value} -> {state.value}")
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def reset(self) -> None:
        self.set(SaveStatus.IDLE)
