# tests/test_dataset_store.py

"""Tests for DatasetStore loading, caching and de-duplication."""

import asyncio
import json
import tempfile
import threading
import unittest
from pathlib import Path
from unittest.mock import MagicMock

from schoolscope.errors import LoadError
from schoolscope.services.dataset_store import (
    DatasetStore,
    FileDatasetLoader,
    HttpDatasetLoader,
    build_loader,
    decode_rows,
)
from schoolscope.storage.local_store import MemoryStore
from schoolscope.storage.ttl_cache import TTLCache


def _rows() -> list[dict[str, object]]:
    return [
        {"School_ID": "1", "School_Name": "Alpha", "Is_Active": "TRUE"},
        {"School_ID": "2", "School_Name": "Beta", "Is_Active": "FALSE"},
        {"School_ID": "3", "School_Name": "Gamma", "Is_Active": "TRUE"},
        {"School_ID": "1", "School_Name": "Alpha Dup", "Is_Active": "TRUE"},
        {"School_Name": "No Id", "Is_Active": "TRUE"},
    ]


class _FakeLoader:
    """Counts fetches and returns canned JSON text."""

    def __init__(self, payload: str, delay: float = 0.0) -> None:
        self.payload = payload
        self.delay = delay
        self.calls = 0
        self._lock = threading.Lock()

    def fetch(self) -> str:
        with self._lock:
            self.calls += 1
        if self.delay:
            threading.Event().wait(self.delay)
        return self.payload


class _FailingLoader:
    def __init__(self) -> None:
        self.calls = 0

    def fetch(self) -> str:
        self.calls += 1
        raise LoadError("HTTP 503 fetching dataset")


class TestDatasetStore(unittest.IsolatedAsyncioTestCase):
    """DatasetStore.load behaviour."""

    async def test_filters_inactive_and_duplicates(self) -> None:
        store = DatasetStore(_FakeLoader(json.dumps(_rows())))
        schools = await store.load()
        self.assertEqual([s.school_id for s in schools], ["1", "3"])
        self.assertEqual(schools[0].name, "Alpha")

    async def test_load_is_idempotent(self) -> None:
        loader = _FakeLoader(json.dumps(_rows()))
        store = DatasetStore(loader)
        first = await store.load()
        second = await store.load()
        self.assertIs(first, second)
        self.assertEqual(loader.calls, 1)

    async def test_concurrent_loads_share_fetch(self) -> None:
        """Concurrent first callers observe one fetch."""
        loader = _FakeLoader(json.dumps(_rows()), delay=0.05)
        store = DatasetStore(loader)
        results = await asyncio.gather(*(store.load() for _ in range(5)))
        self.assertEqual(loader.calls, 1)
        for r in results:
            self.assertEqual(r, results[0])

    async def test_failure_raises_and_leaves_empty(self) -> None:
        loader = _FailingLoader()
        store = DatasetStore(loader)
        with self.assertRaises(LoadError):
            await store.load()
        self.assertEqual(store.schools, ())
        self.assertFalse(store.loaded)
        self.assertIsNotNone(store.last_error)

    async def test_failure_is_retried_on_next_call(self) -> None:
        """No automatic retry, but a later load tries again."""
        loader = _FailingLoader()
        store = DatasetStore(loader)
        for _ in range(2):
            with self.assertRaises(LoadError):
                await store.load()
        self.assertEqual(loader.calls, 2)

    async def test_malformed_json_is_load_error(self) -> None:
        store = DatasetStore(_FakeLoader("{not json"))
        with self.assertRaises(LoadError):
            await store.load()

    async def test_undecodable_file_sets_last_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "schools.json"
            path.write_bytes(b'[{"School_ID": "\xff\xfe"}]')
            store = DatasetStore(FileDatasetLoader(path))
            with self.assertRaises(LoadError):
                await store.load()
        self.assertIsInstance(store.last_error, LoadError)
        self.assertEqual(store.schools, ())

    async def test_cache_hit_skips_loader(self) -> None:
        """A fresh cache entry serves the next store without a fetch."""
        cache = TTLCache(MemoryStore())
        first_loader = _FakeLoader(json.dumps(_rows()))
        await DatasetStore(first_loader, cache=cache).load()

        second_loader = _FakeLoader("[]")
        schools = await DatasetStore(second_loader, cache=cache).load()
        self.assertEqual(second_loader.calls, 0)
        self.assertEqual([s.school_id for s in schools], ["1", "3"])

    async def test_get_and_invalidate(self) -> None:
        cache = TTLCache(MemoryStore())
        loader = _FakeLoader(json.dumps(_rows()))
        store = DatasetStore(loader, cache=cache)
        await store.load()
        found = store.get("3")
        self.assertIsNotNone(found)
        assert found is not None
        self.assertEqual(found.name, "Gamma")
        self.assertIsNone(store.get("2"))

        store.invalidate()
        self.assertEqual(store.schools, ())
        await store.load()
        self.assertEqual(loader.calls, 2)


class TestLoaders(unittest.TestCase):
    """Loader selection and decoding."""

    def test_build_loader_by_scheme(self) -> None:
        self.assertIsInstance(
            build_loader("https://example.com/schools.json"), HttpDatasetLoader
        )
        self.assertIsInstance(build_loader("data/schools.json"), FileDatasetLoader)

    def test_file_loader_reads_text(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "s.json"
            path.write_text("[]", encoding="utf-8")
            self.assertEqual(FileDatasetLoader(path).fetch(), "[]")

    def test_file_loader_missing_file(self) -> None:
        with self.assertRaises(LoadError):
            FileDatasetLoader(Path("/nonexistent/schools.json")).fetch()

    def test_file_loader_invalid_utf8(self) -> None:
        """Undecodable bytes surface as LoadError, not UnicodeDecodeError."""
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "s.json"
            path.write_bytes(b'[{"School_ID": "\xff\xfe", "Is_Active": "TRUE"}]')
            with self.assertRaises(LoadError):
                FileDatasetLoader(path).fetch()

    def test_http_loader_non_200(self) -> None:
        session = MagicMock()
        session.get.return_value = MagicMock(status_code=503, text="")
        loader = HttpDatasetLoader("https://example.com/s.json", session=session)
        with self.assertRaises(LoadError):
            loader.fetch()

    def test_http_loader_ok(self) -> None:
        session = MagicMock()
        session.get.return_value = MagicMock(status_code=200, text="[]")
        loader = HttpDatasetLoader("https://example.com/s.json", session=session)
        self.assertEqual(loader.fetch(), "[]")
        session.get.assert_called_once()

    def test_decode_rows_rejects_object(self) -> None:
        with self.assertRaises(LoadError):
            decode_rows('{"School_ID": "1"}')

    def test_decode_rows_skips_non_objects(self) -> None:
        self.assertEqual(decode_rows('[{"a": 1}, 3, "x"]'), [{"a": 1}])


if __name__ == "__main__":
    unittest.main()
