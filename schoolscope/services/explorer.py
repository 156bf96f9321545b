# schoolscope/services/explorer.py

"""Wires the durable store, cache, limiter and dataset for one session."""

import logging
from dataclasses import dataclass
from pathlib import Path

from schoolscope.config.settings import Settings
from schoolscope.errors import StorageError
from schoolscope.services.dataset_store import DatasetStore, build_loader
from schoolscope.storage.local_store import MemoryStore, SQLiteStore
from schoolscope.storage.rate_limiter import RateLimiter
from schoolscope.storage.ttl_cache import KeyValueStore, TTLCache

logger = logging.getLogger("schoolscope.explorer")


def _open_store(store_path: Path | None) -> KeyValueStore:
    """Open the SQLite store, falling back to a session-only memory store."""
    try:
        return SQLiteStore(store_path)
    except StorageError as exc:
        logger.warning("Local store unavailable, using memory only: %s", exc)
        return MemoryStore()


@dataclass
class Explorer:
    """Explicitly constructed component set shared by the CLI and TUI."""

    store: KeyValueStore
    cache: TTLCache
    limiter: RateLimiter
    dataset: DatasetStore

    @classmethod
    def create(
        cls,
        source: str | None = None,
        store: KeyValueStore | None = None,
        store_path: Path | None = None,
    ) -> "Explorer":
        """Build the default wiring from :class:`Settings`."""
        kv = store if store is not None else _open_store(store_path)
        cache = TTLCache(kv)
        dataset_source = source or Settings.DATASET_SOURCE
        logger.debug("Explorer using dataset source %s", dataset_source)
        return cls(
            store=kv,
            cache=cache,
            limiter=RateLimiter(kv),
            dataset=DatasetStore(build_loader(dataset_source), cache=cache),
        )

    def close(self) -> None:
        """Release the durable store's connection, if it holds one."""
        close = getattr(self.store, "close", None)
        if callable(close):
            close()
            logger.debug("Explorer store closed")
