# tests/test_browse_session.py

"""Tests for the filter → sort → paginate browse workflow."""

import json
import unittest

from schoolscope.errors import StorageError
from schoolscope.models.school import School
from schoolscope.services.browse_session import BrowseSession
from schoolscope.storage.local_store import MemoryStore


class _ReadOnlyStore(MemoryStore):
    def set(self, key: str, value: str) -> None:
        raise StorageError("quota exceeded")


def _schools(n: int) -> list[School]:
    return [
        School(
            str(i),
            f"School {i:02d}",
            state_code="CA" if i % 2 else "TX",
            rating=float(i % 5),
        )
        for i in range(1, n + 1)
    ]


class TestBrowseSession(unittest.TestCase):
    """BrowseSession state transitions."""

    def setUp(self) -> None:
        self.store = MemoryStore()
        self.session = BrowseSession(self.store)
        self.session.set_results(_schools(25))

    def test_pages_and_labels(self) -> None:
        self.assertEqual(self.session.total_pages, 3)
        self.assertEqual(self.session.result_count_label, "25 results found")
        self.assertEqual(len(self.session.page().items), 12)

    def test_singular_label(self) -> None:
        self.session.set_filters({"search": "School 07"})
        self.assertEqual(self.session.result_count_label, "1 result found")

    def test_go_to_valid_page(self) -> None:
        self.assertTrue(self.session.go_to_page(3))
        self.assertEqual(self.session.current_page, 3)
        self.assertEqual(len(self.session.page().items), 1)

    def test_invalid_page_keeps_current(self) -> None:
        """Page 4 of 3 is rejected and page 2 stays."""
        self.session.go_to_page(2)
        self.assertFalse(self.session.go_to_page(4))
        self.assertFalse(self.session.go_to_page(0))
        self.assertEqual(self.session.current_page, 2)

    def test_same_page_is_noop(self) -> None:
        self.assertFalse(self.session.go_to_page(1))

    def test_set_filters_resets_page_and_persists(self) -> None:
        self.session.go_to_page(2)
        self.session.set_filters({"state": "CA"})
        self.assertEqual(self.session.current_page, 1)
        self.assertEqual(self.session.result_count, 13)
        saved = json.loads(self.store.get("active_filters") or "{}")
        self.assertEqual(saved, {"state": "CA"})

    def test_restore_filters_in_new_session(self) -> None:
        """A fresh session picks up the persisted filter set."""
        self.session.set_filters({"state": "TX"})
        fresh = BrowseSession(self.store)
        fresh.set_results(_schools(25))
        self.assertEqual(fresh.restore_filters(), {"state": "TX"})
        self.assertEqual(fresh.result_count, 12)

    def test_reset_filters(self) -> None:
        self.session.set_filters({"state": "TX"})
        self.session.reset_filters()
        self.assertEqual(self.session.result_count, 25)
        self.assertIsNone(self.store.get("active_filters"))

    def test_unreadable_saved_filters_ignored(self) -> None:
        self.store.set("active_filters", "{broken")
        self.assertEqual(self.session.restore_filters(), {})

    def test_persist_failure_still_filters(self) -> None:
        session = BrowseSession(_ReadOnlyStore())
        session.set_results(_schools(25))
        session.set_filters({"state": "CA"})
        self.assertEqual(session.result_count, 13)

    def test_sort_by_returns_to_first_page(self) -> None:
        self.session.go_to_page(2)
        self.session.sort_by("rating", "desc")
        self.assertEqual(self.session.current_page, 1)
        ratings = [s.rating for s in self.session.page().items]
        self.assertEqual(ratings, sorted(ratings, reverse=True))

    def test_shrinking_results_clamps_page(self) -> None:
        self.session.go_to_page(3)
        self.session.set_results(_schools(5))
        self.assertEqual(self.session.current_page, 1)

    def test_page_window(self) -> None:
        self.assertEqual(self.session.page_window(), [1, 2, 3])

    def test_bad_page_size(self) -> None:
        with self.assertRaises(ValueError):
            BrowseSession(self.store, page_size=0)


if __name__ == "__main__":
    unittest.main()
