# schoolscope/ui/app.py

"""Terminal UI for the schoolscope explorer."""

import logging
from typing import cast

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.widgets import (
    Button,
    DataTable,
    Footer,
    Header,
    Input,
    Static,
)

from schoolscope.config.settings import Settings
from schoolscope.errors import LoadError
from schoolscope.models.school import School
from schoolscope.services.browse_session import BrowseSession
from schoolscope.services.comparison_engine import SUMMARY_LABEL, ComparisonEngine
from schoolscope.services.comparison_selection import (
    AddOutcome,
    ComparisonSelection,
)
from schoolscope.services.explorer import Explorer
from schoolscope.services.search_engine import (
    PICKER_FIELDS,
    SearchEngine,
    SuggestionDispatcher,
    SuggestionResult,
    SuggestionStatus,
)

logger = logging.getLogger("schoolscope.ui")

_ADD_MESSAGES: dict[AddOutcome, tuple[str, str]] = {
    AddOutcome.DUPLICATE: ("School already in comparison", "warning"),
    AddOutcome.UNKNOWN: ("School not found", "error"),
    AddOutcome.UPGRADE_REQUIRED: (
        "Free plan compares up to {cap} schools. Upgrade to compare more.",
        "warning",
    ),
    AddOutcome.LIMIT_REACHED: ("Comparison limit of {cap} schools reached", "warning"),
}


class SchoolScopeApp(App[object]):
    """Search-as-you-type, browse and compare schools."""

    CSS = """
    #search_bar { height: 3; }
    #search_input { width: 1fr; }
    #status { height: 1; padding: 0 1; }
    #compare_bar { height: 1; padding: 0 1; color: $accent; }
    #results_table { height: 1fr; }
    #compare_table { height: 1fr; }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("a", "add_compare", "Add to Compare"),
        Binding("c", "compare", "Compare"),
        Binding("x", "clear_compare", "Clear Compare"),
        Binding("n", "next_page", "Next Page"),
        Binding("b", "prev_page", "Prev Page"),
    ]

    def __init__(
        self,
        source: str | None = None,
        explorer: Explorer | None = None,
    ) -> None:
        super().__init__()
        self.explorer = explorer or Explorer.create(source)
        self.schools: tuple[School, ...] = ()
        self.rows: list[School] = []
        self.session = BrowseSession(self.explorer.store)
        self.selection = ComparisonSelection(self.explorer.store)
        self.comparer = ComparisonEngine()
        self.dispatcher: SuggestionDispatcher | None = None
        self.status_text = "Loading schools..."

    def compose(self) -> ComposeResult:
        """Build the widget tree for the TUI."""
        yield Header()
        yield Container(
            Static("🏫 School Explorer", id="title"),
            Horizontal(
                Input(
                    placeholder="Search by school name, city, or zip...",
                    id="search_input",
                ),
                Button("Search", variant="primary", id="search_btn"),
                id="search_bar",
            ),
            Static("Loading schools...", id="status", markup=False),
            cast(
                DataTable[str | Text],
                DataTable(
                    id="results_table",
                    zebra_stripes=True,
                    cursor_type="row",
                ),
            ),
            Static("", id="compare_bar", markup=False),
            Input(
                placeholder="Add a school to compare (name or city)...",
                id="compare_input",
            ),
            cast(
                DataTable[str | Text],
                DataTable(id="compare_table", zebra_stripes=True),
            ),
            id="main_container",
        )
        yield Footer()

    async def on_mount(self) -> None:
        """Configure tables and load the dataset."""
        self._results_table().add_columns(
            "School", "Location", "Type", "Grades", "Rating",
        )
        await self.load_dataset()

    async def load_dataset(self) -> None:
        """Load schools; a failure leaves an empty, usable UI."""
        try:
            self.schools = await self.explorer.dataset.load()
        except LoadError as exc:
            logger.error("TUI dataset load failed: %s", exc)
            self.schools = ()
            self.set_status("❌ No schools found")
            self.notify(f"Could not load schools: {exc}", severity="error")
            return

        self.dispatcher = SuggestionDispatcher(SearchEngine(self.schools))
        self.selection = ComparisonSelection(
            self.explorer.store,
            known_ids=[s.school_id for s in self.schools],
        )
        self.selection.restore()
        self.session.set_results(self.schools)
        self.session.restore_filters()
        self.show_page()
        self._update_compare_bar()

    def on_unmount(self) -> None:
        self.explorer.close()

    # ── Search ───────────────────────────────────────────

    async def on_input_changed(self, event: Input.Changed) -> None:
        """Debounced suggestions while typing."""
        if self.dispatcher is None:
            return
        if event.input.id not in ("search_input", "compare_input"):
            return
        self.run_worker(
            self.suggest(event.value, picker=event.input.id == "compare_input"),
            exclusive=True,
            group="suggest",
        )

    async def suggest(self, query: str, picker: bool = False) -> None:
        """Render suggestions; the picker skips already-selected schools."""
        if self.dispatcher is None:
            return
        if picker:
            result = await self.dispatcher.request(
                query,
                limit=Settings.COMPARE_PICKER_LIMIT,
                exclude_ids=set(self.selection.ids),
                fields=PICKER_FIELDS,
            )
        else:
            result = await self.dispatcher.request(query)
        if result is None:
            return
        if result.status is SuggestionStatus.IDLE:
            self.show_page()
            return
        self.show_suggestions(result)

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "search_btn":
            self.perform_search()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "search_input":
            self.perform_search()

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        """Enter on a result row adds it to the comparison."""
        if event.data_table.id == "results_table":
            self.action_add_compare()

    def perform_search(self) -> None:
        """Apply the typed query as a browse filter."""
        if self.dispatcher is not None:
            self.dispatcher.cancel()
        query = self.query_one("#search_input", Input).value.strip()
        filters = dict(self.session.filters)
        if query:
            filters["search"] = query
        else:
            filters.pop("search", None)
        self.session.set_filters(filters)
        self.show_page()

    # ── Rendering ────────────────────────────────────────

    def set_status(self, text: str) -> None:
        self.status_text = text
        self.query_one("#status", Static).update(text)

    def _results_table(self) -> DataTable[str | Text]:
        return cast(
            DataTable[str | Text],
            self.query_one("#results_table", DataTable),
        )

    def _fill_rows(self, rows: list[tuple[School, Text]]) -> None:
        table = self._results_table()
        table.clear()
        self.rows = [school for school, _ in rows]
        for s, name in rows:
            table.add_row(
                name,
                f"{s.city}, {s.state_code}",
                s.school_type,
                s.grade_level,
                f"⭐ {s.rating:g}" if s.rating is not None else "",
            )

    def show_suggestions(self, result: SuggestionResult) -> None:
        rows: list[tuple[School, Text]] = []
        for suggestion in result.suggestions:
            name = Text(suggestion.school.name)
            if suggestion.highlight is not None:
                name.stylize("bold yellow", *suggestion.highlight)
            rows.append((suggestion.school, name))
        self._fill_rows(rows)
        if result.is_empty:
            self.set_status("No schools found. Try different keywords.")
        else:
            self.set_status(
                f"💡 {len(rows)} suggestions for '{result.query}' "
                "(Enter to view all results)"
            )

    def show_page(self) -> None:
        page = self.session.page()
        self._fill_rows([(s, Text(s.name)) for s in page.items])
        if self.session.result_count == 0:
            self.set_status("No results found. Try adjusting your filters.")
            return
        strip = " ".join(
            "…" if n is None else (f"[{n}]" if n == page.page else str(n))
            for n in self.session.page_window()
        )
        self.set_status(f"✅ {self.session.result_count_label}  Pages: {strip}")

    def _update_compare_bar(self) -> None:
        bar = self.query_one("#compare_bar", Static)
        names = [
            s.name for s in (self.explorer.dataset.get(i) for i in self.selection.ids)
            if s is not None
        ]
        label = ", ".join(names) if names else "none"
        bar.update(f"Compare ({self.selection.count_label}): {label}")

    # ── Actions ──────────────────────────────────────────

    def action_next_page(self) -> None:
        if self.session.go_to_page(self.session.current_page + 1):
            self.show_page()

    def action_prev_page(self) -> None:
        if self.session.go_to_page(self.session.current_page - 1):
            self.show_page()

    def action_add_compare(self) -> None:
        """Add the highlighted row's school to the comparison."""
        row = self._results_table().cursor_row
        if not 0 <= row < len(self.rows):
            self.notify("Select a school first", severity="warning")
            return
        school = self.rows[row]
        outcome = self.selection.add(school.school_id)
        if outcome is AddOutcome.ADDED:
            self.notify(f"Added {school.name} to comparison")
        else:
            message, severity = _ADD_MESSAGES[outcome]
            self.notify(
                message.format(cap=self.selection.cap),
                severity=severity,  # type: ignore[arg-type]
            )
        self._update_compare_bar()

    def action_clear_compare(self) -> None:
        self.selection.clear()
        table = cast(
            DataTable[str | Text],
            self.query_one("#compare_table", DataTable),
        )
        table.clear(columns=True)
        self._update_compare_bar()

    def action_compare(self) -> None:
        """Render the comparison table for the current selection."""
        if not self.selection.can_compare:
            self.notify("Select at least two schools to compare", severity="warning")
            return
        limiter = self.explorer.limiter
        if not limiter.check("compare"):
            self.notify(
                f"Please wait {limiter.remaining('compare'):.0f}s "
                "before comparing again",
                severity="warning",
            )
            return

        picked = [
            s for s in (self.explorer.dataset.get(i) for i in self.selection.ids)
            if s is not None
        ]
        result = self.comparer.compare(picked)
        if result is None:
            return
        limiter.commit("compare")

        table = cast(
            DataTable[str | Text],
            self.query_one("#compare_table", DataTable),
        )
        table.clear(columns=True)
        table.add_columns("Metrics", *(s.name for s in result.schools))
        for row in result.rows:
            cells: list[str | Text] = []
            for idx, value in enumerate(row.cells):
                style = "bold green" if idx == row.winner else ""
                if row.label == SUMMARY_LABEL:
                    style = "italic"
                cells.append(Text(value, style=style))
            table.add_row(row.label, *cells)
