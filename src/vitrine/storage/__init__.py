"""Key-value storage tiers for Vitrine.

Provides the durable and ephemeral stores the cache and session layers
write to:
- FileStorage: durable JSON-file store
- MemoryStorage: per-process store (also used in tests)
"""

from vitrine.storage.base import KeyValueStorage
from vitrine.storage.file import FileStorage
from vitrine.storage.memory import MemoryStorage

__all__ = [
    "KeyValueStorage",
    "FileStorage",
    "MemoryStorage",
]
