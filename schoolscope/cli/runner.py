# schoolscope/cli/runner.py

"""Headless CLI commands built on the explorer components."""

import json
import logging
import sys
from collections.abc import Sequence
from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

from schoolscope.config.settings import Settings
from schoolscope.errors import LoadError
from schoolscope.filters.school_filter import FilterSet
from schoolscope.models.school import School
from schoolscope.services.browse_session import BrowseSession
from schoolscope.services.comparison_engine import (
    SUMMARY_LABEL,
    ComparisonEngine,
    ComparisonTable,
)
from schoolscope.services.comparison_selection import (
    AddOutcome,
    ComparisonSelection,
)
from schoolscope.services.explorer import Explorer
from schoolscope.services.search_engine import (
    SearchEngine,
    SuggestionResult,
    SuggestionStatus,
)
from schoolscope.services.url_params import (
    build_compare_query,
    build_search_query,
    parse_search_params,
)

logger = logging.getLogger("schoolscope.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def parse_filter_args(pairs: Sequence[str]) -> FilterSet:
    """Turn ``key=value`` arguments into a FilterSet.

    A comma-separated value becomes a multi-select list. Raises
    ``SystemExit`` on an argument without ``=``.
    """
    filters: FilterSet = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            _err.print(f"[red]Bad filter '{pair}', expected key=value[/red]")
            raise SystemExit(1)
        value = value.strip()
        if "," in value:
            filters[key.strip()] = [
                v.strip() for v in value.split(",") if v.strip()
            ]
        else:
            filters[key.strip()] = value
    return filters


def _school_to_dict(s: School) -> dict[str, object]:
    return {
        "id": s.school_id,
        "name": s.name,
        "city": s.city,
        "state": s.state_code,
        "type": s.school_type,
        "grades": s.grade_level,
        "rating": s.rating,
    }


def _rating(s: School) -> str:
    return f"⭐ {s.rating:g}" if s.rating is not None else "—"


async def _load(explorer: Explorer) -> tuple[School, ...] | None:
    """Load the dataset, reporting failure instead of raising."""
    try:
        return await explorer.dataset.load()
    except LoadError as exc:
        _err.print(f"[red]Could not load schools: {exc}[/red]")
        _err.print("[yellow]No schools found.[/yellow]")
        return None


# ── suggest ──────────────────────────────────────────────


def _print_suggestions(result: SuggestionResult) -> None:
    table = Table(
        title=f"Suggestions for '{result.query}'",
        show_lines=False,
        title_style="bold cyan",
    )
    table.add_column("ID", style="dim")
    table.add_column("School")
    table.add_column("Location", style="magenta")
    table.add_column("Rating", justify="center")
    table.add_column("Type", style="dim")

    for suggestion in result.suggestions:
        s = suggestion.school
        name = Text(s.name)
        if suggestion.highlight is not None:
            start, end = suggestion.highlight
            name.stylize("bold yellow", start, end)
        table.add_row(
            s.school_id, name, f"{s.city}, {s.state_code}", _rating(s), s.school_type,
        )

    Console().print(table)


async def cli_suggest(
    query: str,
    source: str | None = None,
    output_format: str = "table",
) -> int:
    """Print search-as-you-type suggestions for *query*."""
    explorer = Explorer.create(source)
    try:
        return await _suggest(explorer, query, output_format)
    finally:
        explorer.close()


async def _suggest(
    explorer: Explorer, query: str, output_format: str,
) -> int:
    schools = await _load(explorer)
    if schools is None:
        return 1

    engine = SearchEngine(schools)
    result = engine.suggest(query)

    if result.status is SuggestionStatus.IDLE:
        _err.print(
            f"[yellow]Type at least {engine.min_chars} characters.[/yellow]"
        )
        return 1
    if result.is_empty:
        _err.print("[yellow]No schools found. Try different keywords.[/yellow]")
        return 1

    if output_format == "table":
        _print_suggestions(result)
        _err.print(
            "[dim]View all results: schoolscope browse --link "
            f"'{build_search_query(result.query)}'[/dim]"
        )
    else:
        payload = [
            {
                **_school_to_dict(s.school),
                "highlight": list(s.highlight) if s.highlight else None,
            }
            for s in result.suggestions
        ]
        json.dump(payload, sys.stdout, ensure_ascii=False, indent=2)
        sys.stdout.write("\n")
    return 0


# ── browse ───────────────────────────────────────────────


def _print_page(session: BrowseSession) -> None:
    page = session.page()
    table = Table(
        title=f"Schools (page {page.page} of {page.total_pages})",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("School", max_width=48)
    table.add_column("Location", style="magenta")
    table.add_column("Type")
    table.add_column("Grades", justify="center")
    table.add_column("Rating", justify="center")

    offset = (page.page - 1) * session.page_size
    for idx, s in enumerate(page.items, start=offset + 1):
        table.add_row(
            str(idx),
            s.name,
            f"{s.city}, {s.state_code}",
            s.school_type,
            s.grade_level,
            _rating(s),
        )
    Console().print(table)

    strip = " ".join(
        "…" if n is None else (f"[{n}]" if n == page.page else str(n))
        for n in session.page_window()
    )
    if strip:
        _err.print(f"[dim]Pages: {strip}[/dim]")


async def cli_browse(
    filter_args: Sequence[str] = (),
    page: int = 1,
    sort_field: str | None = None,
    sort_order: str = "desc",
    reset: bool = False,
    source: str | None = None,
    output_format: str = "table",
    link: str | None = None,
) -> int:
    """Filter, sort and page through the school list.

    *link* is a search query string (``q=...&state=...``) as printed by
    ``suggest``; ``-f`` filters override its entries.
    """
    filters = parse_filter_args(filter_args)
    if link:
        filters = {**parse_search_params(link).as_filter_set(), **filters}
    explorer = Explorer.create(source)
    try:
        return await _browse(
            explorer, filters, page, sort_field, sort_order, reset, output_format,
        )
    finally:
        explorer.close()


async def _browse(
    explorer: Explorer,
    filters: FilterSet,
    page: int,
    sort_field: str | None,
    sort_order: str,
    reset: bool,
    output_format: str,
) -> int:
    schools = await _load(explorer)
    if schools is None:
        return 1

    session = BrowseSession(explorer.store)
    session.set_results(schools)
    if reset:
        session.reset_filters()
    elif filters:
        session.set_filters(filters)
    else:
        restored = session.restore_filters()
        if restored:
            _err.print(f"[dim]Using saved filters: {restored}[/dim]")

    if sort_field:
        try:
            session.sort_by(sort_field, sort_order)
        except ValueError as exc:
            _err.print(f"[red]{exc}[/red]")
            return 1

    if page != 1 and not session.go_to_page(page):
        _err.print(
            f"[yellow]Page {page} is out of range; "
            f"showing page {session.current_page}.[/yellow]"
        )

    if session.result_count == 0:
        _err.print("[yellow]No results found. Try adjusting your filters.[/yellow]")
        return 1

    _err.print(f"[green]✓ {session.result_count_label}[/green]")
    if output_format == "table":
        _print_page(session)
    else:
        current = session.page()
        payload: dict[str, Any] = {
            "page": current.page,
            "total_pages": current.total_pages,
            "total_items": current.total_items,
            "schools": [_school_to_dict(s) for s in current.items],
        }
        json.dump(payload, sys.stdout, ensure_ascii=False, indent=2)
        sys.stdout.write("\n")
    return 0


# ── compare ──────────────────────────────────────────────


def _print_comparison(table: ComparisonTable) -> None:
    grid = Table(
        title="School Comparison",
        show_lines=True,
        title_style="bold cyan",
    )
    grid.add_column("Metrics", style="bold")
    for s in table.schools:
        grid.add_column(f"{s.name}\n{_rating(s)}", justify="center")

    for row in table.rows:
        cells: list[str | Text] = []
        for idx, value in enumerate(row.cells):
            style = "bold green" if idx == row.winner else ""
            if row.label == SUMMARY_LABEL:
                style = "italic"
            cells.append(Text(value, style=style))
        grid.add_row(row.label, *cells)

    Console().print(grid)


def _comparison_to_dict(table: ComparisonTable) -> dict[str, object]:
    return {
        "schools": [_school_to_dict(s) for s in table.schools],
        "rows": [
            {"label": r.label, "cells": r.cells, "winner": r.winner}
            for r in table.rows
        ],
    }


_SKIP_REASONS: dict[AddOutcome, str] = {
    AddOutcome.DUPLICATE: "already selected",
    AddOutcome.UNKNOWN: "unknown school",
    AddOutcome.UPGRADE_REQUIRED: "over the free-tier limit",
    AddOutcome.LIMIT_REACHED: "over the comparison limit",
}


async def cli_compare(
    school_ids: Sequence[str],
    premium: bool = False,
    source: str | None = None,
    output_format: str = "table",
) -> int:
    """Compare the given schools side by side."""
    explorer = Explorer.create(source)
    try:
        return await _compare(explorer, school_ids, premium, output_format)
    finally:
        explorer.close()


async def _compare(
    explorer: Explorer,
    school_ids: Sequence[str],
    premium: bool,
    output_format: str,
) -> int:
    if not explorer.limiter.check("compare"):
        wait = explorer.limiter.remaining("compare")
        _err.print(
            f"[yellow]Please wait {wait:.1f}s before comparing again.[/yellow]"
        )
        return 1

    schools = await _load(explorer)
    if schools is None:
        return 1

    selection = ComparisonSelection(
        explorer.store,
        known_ids=[s.school_id for s in schools],
        premium=premium,
    )
    selection.clear()
    upgrade_hint = False
    for sid in school_ids:
        outcome = selection.add(sid)
        if outcome is AddOutcome.ADDED:
            continue
        _err.print(f"[yellow]Skipped {sid}: {_SKIP_REASONS[outcome]}[/yellow]")
        upgrade_hint = upgrade_hint or outcome is AddOutcome.UPGRADE_REQUIRED
    if upgrade_hint:
        _err.print(
            f"[dim]Premium compares up to "
            f"{Settings.MAX_COMPARISON_PREMIUM} schools.[/dim]"
        )

    if not selection.can_compare:
        _err.print("[yellow]Select at least two schools to compare.[/yellow]")
        return 1

    engine = ComparisonEngine()
    picked = [
        s for s in (explorer.dataset.get(i) for i in selection.ids)
        if s is not None
    ]
    table = engine.compare(picked)
    if table is None:
        _err.print("[yellow]Select at least two schools to compare.[/yellow]")
        return 1

    explorer.limiter.commit("compare")
    _err.print(f"[dim]Share: compare?{build_compare_query(selection.ids)}[/dim]")
    if output_format == "table":
        _print_comparison(table)
    else:
        json.dump(
            _comparison_to_dict(table), sys.stdout, ensure_ascii=False, indent=2,
        )
        sys.stdout.write("\n")
    return 0


# ── maintenance ──────────────────────────────────────────


def run_clear_cache() -> int:
    """Purge every cached dataset entry from the local store."""
    explorer = Explorer.create()
    try:
        removed = explorer.cache.clear()
    finally:
        explorer.close()
    _err.print(f"[green]✓ Removed {removed} cached entries[/green]")
    return 0
