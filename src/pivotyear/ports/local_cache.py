"""Device-local key/value storage interface."""

from typing import Protocol


class LocalCache(Protocol):
    """String key/value storage that survives restarts on this device."""

    def get_item(self, key: str) -> str | None:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...
