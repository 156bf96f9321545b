# schoolscope/storage/ttl_cache.py

"""Expiring key/value cache layered on a durable local store."""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Protocol

from schoolscope.config.settings import Settings
from schoolscope.errors import StorageError

logger = logging.getLogger("schoolscope.cache")


class KeyValueStore(Protocol):
    """Minimal text store interface shared by SQLiteStore and MemoryStore."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


@dataclass
class CacheEntry:
    """A cached payload with its creation and expiry instants."""

    key: str
    value: Any
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        """True once *now* is past the expiry instant."""
        return now > self.expires_at

    def to_json(self) -> str:
        return json.dumps(
            {
                "value": self.value,
                "timestamp": self.created_at,
                "expires": self.expires_at,
            },
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, key: str, raw: str) -> "CacheEntry":
        """Decode a stored entry; raises ``ValueError`` on malformed text."""
        data = json.loads(raw)
        if not isinstance(data, dict) or "expires" not in data:
            raise ValueError(f"Malformed cache entry for {key}")
        return cls(
            key=key,
            value=data.get("value"),
            created_at=float(data.get("timestamp", 0.0)),
            expires_at=float(data["expires"]),
        )


class TTLCache:
    """Advisory cache: a failed write is dropped, never raised.

    Keys are namespaced with ``cache_`` so :meth:`clear` never touches
    rate-limit timestamps or session state living in the same store.
    """

    def __init__(
        self,
        store: KeyValueStore,
        prefix: str = Settings.CACHE_PREFIX,
    ) -> None:
        self._store = store
        self._prefix = prefix

    def _storage_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _owned_keys(self) -> list[str]:
        try:
            return [
                k for k in self._store.keys()
                if k.startswith(self._prefix)
            ]
        except StorageError as exc:
            logger.warning("Cache key scan failed: %s", exc)
            return []

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store *value* for *ttl* seconds, overwriting any prior entry."""
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        now = time.time()
        entry = CacheEntry(
            key=key, value=value, created_at=now, expires_at=now + ttl,
        )
        payload = entry.to_json()
        storage_key = self._storage_key(key)
        try:
            self._store.set(storage_key, payload)
        except StorageError as exc:
            logger.info(
                "Cache write for '%s' failed (%s), sweeping expired entries",
                key,
                exc,
            )
            self.clear_expired()
            try:
                self._store.set(storage_key, payload)
            except StorageError:
                logger.warning("Failed to cache item: %s", key)
                return
        logger.debug("Cached '%s' for %.0fs", key, ttl)

    def get(self, key: str) -> Any | None:
        """Return the live value for *key*, or ``None``.

        An expired entry is deleted as a side effect.
        """
        storage_key = self._storage_key(key)
        try:
            raw = self._store.get(storage_key)
        except StorageError as exc:
            logger.warning("Cache read for '%s' failed: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            entry = CacheEntry.from_json(key, raw)
        except (ValueError, TypeError):
            logger.debug("Ignoring unreadable cache entry '%s'", key)
            return None

        if entry.is_expired(time.time()):
            logger.debug("Cache entry '%s' expired", key)
            self.remove(key)
            return None
        return entry.value

    def remove(self, key: str) -> None:
        """Delete *key* unconditionally."""
        try:
            self._store.remove(self._storage_key(key))
        except StorageError as exc:
            logger.warning("Cache delete for '%s' failed: %s", key, exc)

    def clear(self) -> int:
        """Purge every entry this cache owns.

        Returns the number of entries that were removed.
        """
        removed = 0
        for storage_key in self._owned_keys():
            try:
                self._store.remove(storage_key)
                removed += 1
            except StorageError as exc:
                logger.warning(
                    "Cache delete for '%s' failed: %s", storage_key, exc,
                )
        logger.info("Cache manually purged (%d entries removed)", removed)
        return removed

    def clear_expired(self) -> int:
        """Best-effort sweep of expired and unreadable entries."""
        now = time.time()
        removed = 0
        for storage_key in self._owned_keys():
            try:
                raw = self._store.get(storage_key)
                if raw is None:
                    continue
                entry = CacheEntry.from_json(storage_key, raw)
                if not entry.is_expired(now):
                    continue
                self._store.remove(storage_key)
                removed += 1
            except (ValueError, TypeError):
                # Unreadable entries are dead weight
                try:
                    self._store.remove(storage_key)
                    removed += 1
                except StorageError:
                    continue
            except StorageError as exc:
                logger.debug(
                    "Sweep skipped '%s': %s", storage_key, exc,
                )
        if removed:
            logger.debug("Evicted %d expired cache entries", removed)
        return removed
