"""File-backed durable storage.

Stores all keys in a single JSON document:
    {storage_path}  ->  {"key": "value", ...}

This provides:
- Persistence across process restarts
- Atomic replacement on every write (write to temp file, then rename)
- Easy inspection with any JSON tool
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import orjson

from vitrine.errors import StorageError
from vitrine.storage.base import KeyValueStorage

logger = logging.getLogger(__name__)


class FileStorage(KeyValueStorage):
    """Durable storage persisted to a JSON file.

    The file is re-read on every access so that several processes (or a CLI
    next to a running host) observe each other's writes.
    """

    def __init__(self, path: str | Path):
        """Initialize file storage.

        Args:
            path: Location of the JSON document; parent directories are created
        """
        self.path = Path(path).expanduser()

    def _load(self) -> dict[str, str]:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e

        if not raw.strip():
            return {}

        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise StorageError(f"Corrupt storage file {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise StorageError(f"Corrupt storage file {self.path}: expected an object")
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, data: dict[str, str]) -> None:
        tmp_path = self.path.with_name(f"{self.path.name}.{os.getpid()}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(orjson.dumps(data, option=orjson.OPT_SORT_KEYS))
            os.replace(tmp_path, self.path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Cannot write {self.path}: {e}") from e

    def get_item(self, key: str) -> str | None:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove_item(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)

    def keys(self) -> list[str]:
        return list(self._load())

    def remove_prefixed(self, prefix: str) -> int:
        data = self._load()
        doomed = [key for key in data if key.startswith(prefix)]
        for key in doomed:
            del data[key]
        if doomed:
            self._save(data)
            logger.debug(f"Removed {len(doomed)} keys with prefix {prefix!r} from {self.path}")
        return len(doomed)
