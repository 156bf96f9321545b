# tests/test_search_engine.py

"""Tests for the suggestion engine and its debounced dispatcher."""

import asyncio
import unittest

from schoolscope.models.school import School
from schoolscope.services.search_engine import (
    PICKER_FIELDS,
    SearchEngine,
    SuggestionDispatcher,
    SuggestionStatus,
    find_highlight,
    highlight_segments,
)


def _schools() -> list[School]:
    return [
        School("1", "Spring Valley Elementary", city="San Diego", zip_code="92101"),
        School("2", "Lincoln High", city="Springfield", zip_code="62701"),
        School("3", "Oak Ridge Academy", city="Austin", zip_code="78701",
               address="900 Spring St"),
        School("4", "Springfield Preparatory", city="Houston", zip_code="77002"),
    ]


class TestHighlight(unittest.TestCase):
    """Highlight span helpers."""

    def test_case_insensitive_span(self) -> None:
        self.assertEqual(find_highlight("Spring Valley Elementary", "spr"), (0, 3))

    def test_regex_metacharacters_literal(self) -> None:
        self.assertEqual(find_highlight("St. Mary (K-8)", "(k-8)"), (9, 14))

    def test_no_match(self) -> None:
        self.assertIsNone(find_highlight("Lincoln High", "oak"))

    def test_segments(self) -> None:
        self.assertEqual(
            highlight_segments("Spring Valley", (0, 3)),
            ("", "Spr", "ing Valley"),
        )
        self.assertEqual(
            highlight_segments("Spring Valley", None), ("Spring Valley", "", "")
        )


class TestSearchEngine(unittest.TestCase):
    """SearchEngine.suggest."""

    def setUp(self) -> None:
        self.engine = SearchEngine(_schools())

    def test_prefix_match_with_highlight(self) -> None:
        result = self.engine.suggest("spr")
        self.assertEqual(result.status, SuggestionStatus.MATCHES)
        first = result.suggestions[0]
        self.assertEqual(first.school.name, "Spring Valley Elementary")
        self.assertEqual(first.highlight, (0, 3))

    def test_dataset_order_across_fields(self) -> None:
        """City and address matches count, in dataset order."""
        result = self.engine.suggest("spring")
        self.assertEqual(
            [s.school.school_id for s in result.suggestions],
            ["1", "2", "3", "4"],
        )
        self.assertIsNone(result.suggestions[1].highlight)

    def test_zip_match(self) -> None:
        result = self.engine.suggest("787")
        self.assertEqual([s.school.school_id for s in result.suggestions], ["3"])

    def test_short_query_does_not_scan(self) -> None:
        result = self.engine.suggest(" s ")
        self.assertEqual(result.status, SuggestionStatus.IDLE)
        self.assertEqual(result.suggestions, ())
        self.assertFalse(result.is_empty)
        self.assertEqual(self.engine.scan_count, 0)

    def test_no_matches_is_explicit(self) -> None:
        result = self.engine.suggest("zzz")
        self.assertEqual(result.status, SuggestionStatus.NO_MATCHES)
        self.assertTrue(result.is_empty)

    def test_limit_bound(self) -> None:
        engine = SearchEngine(_schools(), max_suggestions=2)
        self.assertEqual(len(engine.suggest("spring").suggestions), 2)
        self.assertEqual(len(engine.suggest("spring", limit=3).suggestions), 3)

    def test_picker_excludes_selected(self) -> None:
        """Comparison picker: name and city only, minus selected ids."""
        result = self.engine.suggest(
            "spring", limit=5, exclude_ids={"1"}, fields=PICKER_FIELDS,
        )
        self.assertEqual(
            [s.school.school_id for s in result.suggestions], ["2", "4"]
        )


class TestSuggestionDispatcher(unittest.IsolatedAsyncioTestCase):
    """Debounce and stale-result suppression."""

    def setUp(self) -> None:
        self.engine = SearchEngine(_schools())
        self.dispatcher = SuggestionDispatcher(self.engine, delay=0.01)

    async def test_single_request_returns_result(self) -> None:
        result = await self.dispatcher.request("oak")
        assert result is not None
        self.assertEqual(result.suggestions[0].school.school_id, "3")

    async def test_superseded_request_discarded(self) -> None:
        """Only the newest of rapid keystrokes is rendered."""
        results = await asyncio.gather(
            self.dispatcher.request("sp"),
            self.dispatcher.request("spr"),
            self.dispatcher.request("spri"),
        )
        self.assertIsNone(results[0])
        self.assertIsNone(results[1])
        assert results[2] is not None
        self.assertEqual(results[2].query, "spri")
        self.assertEqual(self.engine.scan_count, 1)

    async def test_short_query_idle_immediately(self) -> None:
        result = await self.dispatcher.request("s")
        assert result is not None
        self.assertEqual(result.status, SuggestionStatus.IDLE)
        self.assertEqual(self.engine.scan_count, 0)

    async def test_short_query_supersedes_pending(self) -> None:
        """Clearing the box drops an in-flight suggestion."""
        pending = asyncio.ensure_future(self.dispatcher.request("oak"))
        await asyncio.sleep(0)
        await self.dispatcher.request("")
        self.assertIsNone(await pending)

    async def test_cancel(self) -> None:
        pending = asyncio.ensure_future(self.dispatcher.request("oak"))
        await asyncio.sleep(0)
        self.dispatcher.cancel()
        self.assertIsNone(await pending)


if __name__ == "__main__":
    unittest.main()
