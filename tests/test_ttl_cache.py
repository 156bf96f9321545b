# tests/test_ttl_cache.py

"""Tests for the expiring cache."""

import json
import unittest
from unittest.mock import patch

from schoolscope.errors import StorageError
from schoolscope.storage.local_store import MemoryStore
from schoolscope.storage.ttl_cache import CacheEntry, TTLCache

_CLOCK = "schoolscope.storage.ttl_cache.time.time"


class _FailingStore(MemoryStore):
    """Store whose writes always fail."""

    def set(self, key: str, value: str) -> None:
        raise StorageError("disk full")


class TestTTLCache(unittest.TestCase):
    """TTLCache unit tests."""

    def setUp(self) -> None:
        self.store = MemoryStore()
        self.cache = TTLCache(self.store)

    # ── Expiry ───────────────────────────────────────────

    def test_fresh_entry_hit(self) -> None:
        with patch(_CLOCK, return_value=1000.0):
            self.cache.set("schools", [1, 2], ttl=3600)
        with patch(_CLOCK, return_value=1000.0 + 3599):
            self.assertEqual(self.cache.get("schools"), [1, 2])

    def test_expired_entry_miss_and_deleted(self) -> None:
        """Past expiry the entry is absent and removed from the store."""
        with patch(_CLOCK, return_value=1000.0):
            self.cache.set("schools", [1, 2], ttl=3600)
        with patch(_CLOCK, return_value=1000.0 + 3601):
            self.assertIsNone(self.cache.get("schools"))
        self.assertIsNone(self.store.get("cache_schools"))

    def test_boundary_is_still_fresh(self) -> None:
        """Exactly at the expiry instant the entry is still valid."""
        with patch(_CLOCK, return_value=0.0):
            self.cache.set("k", "v", ttl=10)
        with patch(_CLOCK, return_value=10.0):
            self.assertEqual(self.cache.get("k"), "v")

    def test_set_overwrites(self) -> None:
        self.cache.set("k", "old", ttl=60)
        self.cache.set("k", "new", ttl=60)
        self.assertEqual(self.cache.get("k"), "new")

    def test_non_positive_ttl_rejected(self) -> None:
        with self.assertRaises(ValueError):
            self.cache.set("k", "v", ttl=0)

    def test_stored_format(self) -> None:
        """Entries are JSON with value, timestamp and expires."""
        with patch(_CLOCK, return_value=50.0):
            self.cache.set("k", {"a": 1}, ttl=5)
        raw = json.loads(self.store.get("cache_k") or "")
        self.assertEqual(
            raw, {"value": {"a": 1}, "timestamp": 50.0, "expires": 55.0},
        )

    def test_unreadable_entry_is_miss(self) -> None:
        self.store.set("cache_k", "not json")
        self.assertIsNone(self.cache.get("k"))

    # ── Failure tolerance ────────────────────────────────

    def test_write_failure_is_silent(self) -> None:
        cache = TTLCache(_FailingStore())
        cache.set("k", "v", ttl=60)  # Must not raise
        self.assertIsNone(cache.get("k"))

    def test_quota_write_succeeds_after_sweep(self) -> None:
        """A full store is swept of expired entries before retrying."""
        store = MemoryStore(quota=150)
        cache = TTLCache(store)
        with patch(_CLOCK, return_value=0.0):
            cache.set("old", "x" * 40, ttl=1)
        with patch(_CLOCK, return_value=100.0):
            cache.set("new", "y" * 40, ttl=60)
            self.assertEqual(cache.get("new"), "y" * 40)
        self.assertIsNone(store.get("cache_old"))

    # ── Bulk operations ──────────────────────────────────

    def test_clear_only_touches_cache_keys(self) -> None:
        self.store.set("last_compare", "123.0")
        self.cache.set("a", 1, ttl=60)
        self.cache.set("b", 2, ttl=60)
        self.assertEqual(self.cache.clear(), 2)
        self.assertEqual(self.store.keys(), ["last_compare"])

    def test_clear_expired_counts(self) -> None:
        with patch(_CLOCK, return_value=0.0):
            self.cache.set("short", 1, ttl=1)
            self.cache.set("long", 2, ttl=1000)
        self.store.set("cache_broken", "{")
        with patch(_CLOCK, return_value=10.0):
            self.assertEqual(self.cache.clear_expired(), 2)
            self.assertEqual(self.cache.get("long"), 2)


class TestCacheEntry(unittest.TestCase):
    """CacheEntry decoding."""

    def test_from_json_requires_expires(self) -> None:
        with self.assertRaises(ValueError):
            CacheEntry.from_json("k", '{"value": 1}')

    def test_is_expired(self) -> None:
        entry = CacheEntry("k", 1, created_at=0.0, expires_at=5.0)
        self.assertFalse(entry.is_expired(5.0))
        self.assertTrue(entry.is_expired(5.1))


if __name__ == "__main__":
    unittest.main()
