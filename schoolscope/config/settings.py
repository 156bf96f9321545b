# schoolscope/config/settings.py

"""Central configuration for the schoolscope explorer."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the schoolscope explorer."""

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    STORE_PATH: Path = DATA_DIR / "local_store.db"
    LOGS_DIR: Path = BASE_DIR / "logs"
    LOG_LEVEL: str = os.getenv("SCHOOLSCOPE_LOG_LEVEL", "WARNING")  # Console only

    # --- Dataset ---
    DATASET_SOURCE: str = os.getenv(
        "SCHOOLSCOPE_DATASET", str(DATA_DIR / "schools.json")
    )
    ACTIVE_FLAG: str = "TRUE"           # Literal marker for visible rows
    REQUEST_TIMEOUT: int = 10           # Seconds before a fetch times out

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": "application/json,text/plain;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }

    # --- Caching (seconds) ---
    CACHE_TTL: dict[str, float] = {
        "schools": 3600.0,
        "states": 86400.0,
        "districts": 86400.0,
        "blog": 3600.0,
    }
    SCHOOLS_CACHE_KEY: str = "schools_search"

    # --- Rate limiting (cooldown seconds per action) ---
    RATE_LIMITS: dict[str, float] = {
        "leads": 3600.0,
        "search": 1.0,
        "compare": 5.0,
        "review": 86400.0,
        "contact": 3600.0,
    }

    # --- Comparison ---
    MAX_COMPARISON_FREE: int = 3
    MAX_COMPARISON_PREMIUM: int = 10

    # --- Browsing ---
    SCHOOLS_PER_PAGE: int = 12

    # --- Suggestions ---
    SUGGEST_MIN_CHARS: int = 2
    MAX_SUGGESTIONS: int = 8
    COMPARE_PICKER_LIMIT: int = 5
    SUGGEST_DEBOUNCE: float = 0.3       # Seconds of typing quiet time

    # --- Durable store keys ---
    CACHE_PREFIX: str = "cache_"
    RATE_LIMIT_PREFIX: str = "last_"
    ACTIVE_FILTERS_KEY: str = "active_filters"
    COMPARE_KEY: str = "compare_schools"
