"""In-process storage.

Used as ephemeral (per-process) storage and as durable storage in tests.
An optional quota makes writes fail the way a full browser store does.
"""

from __future__ import annotations

from vitrine.errors import StorageError
from vitrine.storage.base import KeyValueStorage


class MemoryStorage(KeyValueStorage):
    """Dict-backed storage with an optional character quota."""

    def __init__(self, quota: int | None = None) -> None:
        self._data: dict[str, str] = {}
        self.quota = quota
        self.available = True

    def _check_available(self, key: str) -> None:
        if not self.available:
            raise StorageError("Storage is unavailable", key=key)

    def _used(self) -> int:
        return sum(len(k) + len(v) for k, v in self._data.items())

    def get_item(self, key: str) -> str | None:
        self._check_available(key)
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._check_available(key)
        if self.quota is not None:
            previous = self._data.get(key)
            used = self._used() - (len(key) + len(previous) if previous is not None else 0)
            if used + len(key) + len(value) > self.quota:
                raise StorageError(f"Quota exceeded writing {key}", key=key)
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._check_available(key)
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        self._check_available("*")
        return list(self._data)
