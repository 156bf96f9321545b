# main.py

"""Entry point for the schoolscope explorer (TUI or headless CLI)."""

import argparse
import asyncio
import logging
import sys

from schoolscope.config.logging_config import setup_logging
from schoolscope.config.settings import Settings

logger = logging.getLogger("schoolscope.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="schoolscope",
        description="Search, filter and compare schools from a directory dataset.",
        epilog="Run without a command to launch the interactive TUI.",
    )
    parser.add_argument(
        "--source",
        default=None,
        help=f"Dataset URL or JSON path (default: {Settings.DATASET_SOURCE}).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Show INFO messages on the console (default: SCHOOLSCOPE_LOG_LEVEL).",
    )
    parser.add_argument(
        "-F",
        "--format",
        choices=["json", "table"],
        default="table",
        dest="output_format",
        help="Output format (default: table).",
    )
    commands = parser.add_subparsers(dest="command")

    suggest = commands.add_parser(
        "suggest", help="Show search suggestions for a partial query.",
    )
    suggest.add_argument("query", help="Partial school name, city, zip or address.")

    browse = commands.add_parser(
        "browse", help="Filter, sort and page through schools.",
    )
    browse.add_argument(
        "-f",
        "--filter",
        action="append",
        default=[],
        dest="filters",
        metavar="KEY=VALUE",
        help=(
            "Filter such as state=CA, type=Public,Charter, grade=K, "
            "rating=4, math_score=80-100 (repeatable)."
        ),
    )
    browse.add_argument("-p", "--page", type=int, default=1, help="Page number.")
    browse.add_argument("--sort", default=None, dest="sort_field", help="Field to sort by.")
    browse.add_argument(
        "--order", choices=["asc", "desc"], default="desc", help="Sort order.",
    )
    browse.add_argument(
        "--reset", action="store_true", default=False, help="Clear saved filters.",
    )
    browse.add_argument(
        "--link",
        default=None,
        metavar="QUERY",
        help="Search link query string, e.g. 'q=spring&state=CA'.",
    )

    compare = commands.add_parser("compare", help="Compare schools side by side.")
    compare.add_argument("school_ids", nargs="+", metavar="SCHOOL_ID")
    compare.add_argument(
        "--premium",
        action="store_true",
        default=False,
        help=f"Allow up to {Settings.MAX_COMPARISON_PREMIUM} schools.",
    )

    commands.add_parser("clear-cache", help="Purge cached datasets.")
    return parser


def _run_tui(source: str | None) -> None:
    """Launch the interactive Textual TUI."""
    from schoolscope.ui.app import SchoolScopeApp

    try:
        app = SchoolScopeApp(source=source)
        app.run()
    except Exception:
        logger.critical("Fatal error during TUI run", exc_info=True)
        raise
    finally:
        logger.info("schoolscope TUI shutting down")


def _run_cli(args: argparse.Namespace) -> None:
    """Dispatch a headless command and exit with its status."""
    from schoolscope.cli import runner

    if args.command == "suggest":
        exit_code = asyncio.run(
            runner.cli_suggest(args.query, args.source, args.output_format)
        )
    elif args.command == "browse":
        exit_code = asyncio.run(
            runner.cli_browse(
                filter_args=args.filters,
                page=args.page,
                sort_field=args.sort_field,
                sort_order=args.order,
                reset=args.reset,
                link=args.link,
                source=args.source,
                output_format=args.output_format,
            )
        )
    elif args.command == "compare":
        exit_code = asyncio.run(
            runner.cli_compare(
                args.school_ids, args.premium, args.source, args.output_format,
            )
        )
    else:
        exit_code = runner.run_clear_cache()
    sys.exit(exit_code)


def main() -> None:
    """Route to TUI (no command) or a headless CLI command."""
    parser = _build_parser()
    args = parser.parse_args()

    log_file = setup_logging("INFO" if args.verbose else None)
    logger.info("schoolscope starting, log file: %s", log_file)

    if args.command is None:
        _run_tui(args.source)
    else:
        _run_cli(args)


if __name__ == "__main__":
    main()
