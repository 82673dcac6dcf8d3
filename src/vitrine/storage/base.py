"""Key-value storage interface.

Durable storage survives restarts; ephemeral storage lives for one
process. Both expose the same synchronous string-to-string interface, so
the cache and session layers can treat them uniformly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator


class KeyValueStorage(ABC):
    """Abstract base class for key-value storage backends.

    Implementations raise ``StorageError`` when the underlying medium is
    unavailable or full. Callers in this package catch it and degrade.
    """

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove a key. Removing a missing key is not an error."""
        ...

    @abstractmethod
    def keys(self) -> list[str]:
        """Snapshot of all stored keys."""
        ...

    def clear(self) -> None:
        for key in self.keys():
            self.remove_item(key)

    def remove_prefixed(self, prefix: str) -> int:
        """Remove every key starting with prefix. Returns the number removed."""
        removed = 0
        for key in self.keys():
            if key.startswith(prefix):
                self.remove_item(key)
                removed += 1
        return removed

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self.keys())
