# schoolscope/services/dataset_store.py

"""Loads the school dataset once and shares it with every engine."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Protocol, cast

from curl_cffi import requests as curl_requests

from schoolscope.config.settings import Settings
from schoolscope.errors import LoadError
from schoolscope.models.school import School
from schoolscope.storage.ttl_cache import TTLCache

logger = logging.getLogger("schoolscope.dataset")


class DatasetLoader(Protocol):
    """Blocking source of the raw dataset JSON text."""

    def fetch(self) -> str: ...


class HttpDatasetLoader:
    """Fetch the dataset over HTTP with a browser-impersonating session."""

    def __init__(
        self,
        url: str,
        session: curl_requests.Session | None = None,
    ) -> None:
        self.url = url
        self.session = session or curl_requests.Session(
            impersonate=Settings.IMPERSONATE_BROWSER
        )

    def fetch(self) -> str:
        """GET the dataset once. Retrying is the caller's decision."""
        try:
            resp = self.session.get(
                self.url,
                headers=Settings.DEFAULT_HEADERS,
                timeout=Settings.REQUEST_TIMEOUT,
            )
        except Exception as exc:
            raise LoadError(f"Request to {self.url} failed: {exc}") from exc
        if resp.status_code != 200:
            raise LoadError(
                f"HTTP {resp.status_code} fetching {self.url}"
            )
        return resp.text


class FileDatasetLoader:
    """Read the dataset from a local JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def fetch(self) -> str:
        try:
            return self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise LoadError(f"Cannot read {self.path}: {exc}") from exc


def build_loader(source: str) -> DatasetLoader:
    """Pick a loader for *source*: URLs go over HTTP, anything else is a path."""
    if source.startswith(("http://", "https://")):
        return HttpDatasetLoader(source)
    return FileDatasetLoader(Path(source))


def decode_rows(text: str) -> list[dict[str, Any]]:
    """Parse the dataset text into a list of row dicts.

    Raises :class:`LoadError` when the payload is not a JSON array.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise LoadError(f"Dataset is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise LoadError("Dataset must be a JSON array of school rows")
    items = cast(list[object], data)
    return [row for row in items if isinstance(row, dict)]


class DatasetStore:
    """Read-only holder of the active school collection.

    ``load()`` is idempotent: once loaded, the same tuple is returned to
    every caller, and concurrent first calls share a single fetch.
    """

    def __init__(
        self,
        loader: DatasetLoader,
        cache: TTLCache | None = None,
        cache_key: str = Settings.SCHOOLS_CACHE_KEY,
        cache_ttl: float = Settings.CACHE_TTL["schools"],
    ) -> None:
        self._loader = loader
        self._cache = cache
        self._cache_key = cache_key
        self._cache_ttl = cache_ttl
        self._schools: tuple[School, ...] | None = None
        self._index: dict[str, School] = {}
        self._inflight: asyncio.Task[tuple[School, ...]] | None = None
        self.last_error: LoadError | None = None

    @property
    def loaded(self) -> bool:
        return self._schools is not None

    @property
    def schools(self) -> tuple[School, ...]:
        """The loaded schools, or an empty tuple before a successful load."""
        return self._schools or ()

    def get(self, school_id: str) -> School | None:
        """Look up a loaded school by id."""
        return self._index.get(school_id)

    async def load(self) -> tuple[School, ...]:
        """Return the active schools, fetching them on first use.

        Raises :class:`LoadError` on fetch or parse failure; the exposed
        collection is then empty and a later call tries again.
        """
        if self._schools is not None:
            return self._schools
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._load_once())
        task = self._inflight
        try:
            return await asyncio.shield(task)
        finally:
            if task.done() and self._inflight is task:
                self._inflight = None

    def invalidate(self) -> None:
        """Forget the loaded collection and its cache entry."""
        self._schools = None
        self._index = {}
        if self._cache is not None:
            self._cache.remove(self._cache_key)
        logger.info("Dataset invalidated")

    # ── Private helpers ──────────────────────────────────

    def _cached_rows(self) -> list[dict[str, Any]] | None:
        if self._cache is None:
            return None
        cached = self._cache.get(self._cache_key)
        if not isinstance(cached, list):
            return None
        items = cast(list[object], cached)
        return [row for row in items if isinstance(row, dict)]

    async def _load_once(self) -> tuple[School, ...]:
        rows = self._cached_rows()
        from_cache = rows is not None
        if rows is None:
            try:
                text = await asyncio.to_thread(self._loader.fetch)
                rows = decode_rows(text)
            except LoadError as exc:
                self._schools = None
                self._index = {}
                self.last_error = exc
                logger.error("Dataset load failed: %s", exc, exc_info=True)
                raise
        else:
            logger.info("Dataset served from cache (%d rows)", len(rows))

        schools = self._build(rows)
        if not from_cache and self._cache is not None:
            self._cache.set(
                self._cache_key,
                [s.to_record() for s in schools],
                self._cache_ttl,
            )

        self._schools = schools
        self._index = {s.school_id: s for s in schools}
        self.last_error = None
        logger.info("Dataset ready: %d active schools", len(schools))
        return schools

    @staticmethod
    def _build(rows: list[dict[str, Any]]) -> tuple[School, ...]:
        """Keep active rows with a unique id, preserving source order."""
        kept: list[School] = []
        seen: set[str] = set()
        inactive = 0
        dropped = 0

        for row in rows:
            school = School.from_record(row)
            if not school.is_active:
                inactive += 1
                continue
            if not school.school_id or school.school_id in seen:
                dropped += 1
                continue
            seen.add(school.school_id)
            kept.append(school)

        if inactive:
            logger.debug("Skipped %d inactive schools", inactive)
        if dropped:
            logger.warning(
                "Dropped %d rows with a missing or duplicate School_ID",
                dropped,
            )
        return tuple(kept)
