# schoolscope/config/logging_config.py

"""Per-run timestamped logging configuration for schoolscope.

Each application launch creates a dedicated log file inside ``logs/``,
named with the launch timestamp (e.g. ``logs/run_20260214_153045.log``).
All ``schoolscope.*`` loggers route through this file handler so that
cache, rate-limit, dataset and engine messages land in the same per-run
log.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from schoolscope.config.settings import Settings

# Reusable format strings --------------------------------------------------

_DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | %(module)s:%(funcName)s:%(lineno)d | "
    "%(message)s"
)

_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.WARNING


def setup_logging(console_level: str | None = None) -> Path:
    """Initialise the root ``schoolscope`` logger for the current run.

    Args:
        console_level: Level name for the stderr handler. Defaults to
            ``Settings.LOG_LEVEL`` (``SCHOOLSCOPE_LOG_LEVEL``); unknown
            names fall back to WARNING. The file always gets DEBUG.

    Returns:
        The :class:`~pathlib.Path` to the log file created for this run.
    """
    logs_dir: Path = Settings.LOGS_DIR
    logs_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = logs_dir / f"run_{timestamp}.log"

    root_logger = logging.getLogger("schoolscope")
    root_logger.setLevel(logging.DEBUG)

    # Repeated calls (e.g. tests) keep the current run's file
    for handler in root_logger.handlers:
        if isinstance(handler, logging.FileHandler):
            return Path(handler.baseFilename)
    if root_logger.handlers:
        return log_file

    # --- File handler (DEBUG+) ---------------------------------------------
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(_DETAILED_FORMAT, datefmt=_DATE_FORMAT)
    )

    # --- Console handler (configurable, WARNING+ by default) ---------------
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(_resolve_level(console_level or Settings.LOG_LEVEL))
    console_handler.setFormatter(
        logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT)
    )

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    root_logger.info("Logging initialised, log file: %s", log_file)

    return log_file
