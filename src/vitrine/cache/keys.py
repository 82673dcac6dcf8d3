"""Cache key schema for Vitrine.

In-memory key format: {version}:{logical_key}
Storage key format:   {prefix}{separator}{...}

Where:
- version: the global cache version; bumping it orphans every older key
- logical_key: page path, data key, asset URL or app id
- prefix: "vitrine" (namespace shared by all keys this layer writes to
  durable and ephemeral storage)
"""

from __future__ import annotations


class CacheKeys:
    """Cache key generator following a consistent naming convention.

    One instance carries the current version so that a version bump is a
    single attribute change; entries keyed under an older version stay in
    their stores until evicted or expired but can no longer be looked up.
    """

    def __init__(self, prefix: str = "vitrine", version: str = "1.0.1"):
        self.prefix = prefix
        self.version = version

    def namespaced(self, logical_key: str) -> str:
        """Key for an in-memory cache entry under the current version."""
        return f"{self.version}:{logical_key}"

    @property
    def storage_prefix(self) -> str:
        """Prefix of every cache entry in durable or ephemeral storage.

        Session and fault keys use a different separator and never match.
        """
        return f"{self.prefix}:"

    def storage_key(self, logical_key: str) -> str:
        """Key for a cache entry mirrored into durable or ephemeral storage."""
        return f"{self.storage_prefix}{self.namespaced(logical_key)}"

    def is_cache_key(self, storage_key: str) -> bool:
        """Whether a storage key is a cache entry of this layer."""
        return storage_key.startswith(self.storage_prefix)

    @property
    def fault_flag(self) -> str:
        """Durable key holding the faulted-state flag."""
        return f"{self.prefix}_faulted"

    @property
    def session_blob(self) -> str:
        """Durable key holding the encoded session."""
        return f"{self.prefix}-session"

    @property
    def session_expiry(self) -> str:
        """Durable key holding the session's absolute expiry (epoch ms)."""
        return f"{self.prefix}-session-expiry"

    def bump(self, new_version: str) -> str:
        """Switch to a new version. Returns the previous one."""
        previous = self.version
        self.version = new_version
        return previous

    @staticmethod
    def parse(key: str) -> tuple[str, str] | None:
        """Split a namespaced key into (version, logical_key).

        Returns None if the key carries no version.
        """
        version, sep, logical_key = key.partition(":")
        if not sep or not version:
            return None
        return version, logical_key
