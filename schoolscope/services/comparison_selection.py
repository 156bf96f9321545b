# schoolscope/services/comparison_selection.py

"""The user's persisted pick-list of schools to compare."""

import json
import logging
from collections.abc import Collection, Iterable, Mapping
from enum import Enum, auto
from typing import Any, cast

from schoolscope.config.settings import Settings
from schoolscope.errors import StorageError
from schoolscope.services.url_params import compare_ids_from_params
from schoolscope.storage.ttl_cache import KeyValueStore

logger = logging.getLogger("schoolscope.compare")


class SelectionState(Enum):
    """Lifecycle of the comparison pick-list."""

    EMPTY = auto()
    PARTIAL = auto()  # One school: not enough to compare
    READY = auto()    # Two or more, within the tier cap


class AddOutcome(Enum):
    """Result of :meth:`ComparisonSelection.add`."""

    ADDED = auto()
    DUPLICATE = auto()
    UNKNOWN = auto()
    UPGRADE_REQUIRED = auto()  # Free tier at cap: show the upgrade prompt
    LIMIT_REACHED = auto()     # Premium tier at cap: generic limit message


class ComparisonSelection:
    """Ordered, de-duplicated school ids with a tier-dependent cap."""

    def __init__(
        self,
        store: KeyValueStore,
        known_ids: Collection[str] | None = None,
        premium: bool = False,
        storage_key: str = Settings.COMPARE_KEY,
    ) -> None:
        self._store = store
        self._known = set(known_ids) if known_ids is not None else None
        self.premium = premium
        self._storage_key = storage_key
        self._ids: list[str] = []

    @property
    def cap(self) -> int:
        return (
            Settings.MAX_COMPARISON_PREMIUM if self.premium
            else Settings.MAX_COMPARISON_FREE
        )

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(self._ids)

    @property
    def state(self) -> SelectionState:
        if not self._ids:
            return SelectionState.EMPTY
        if len(self._ids) == 1:
            return SelectionState.PARTIAL
        return SelectionState.READY

    @property
    def can_compare(self) -> bool:
        return self.state is SelectionState.READY

    @property
    def count_label(self) -> str:
        return f"{len(self._ids)}/{self.cap}"

    def _is_known(self, school_id: str) -> bool:
        return self._known is None or school_id in self._known

    # ── Transitions ──────────────────────────────────────

    def add(self, school_id: str) -> AddOutcome:
        """Append *school_id* unless it is unknown, already picked, or over cap."""
        if not self._is_known(school_id):
            logger.debug("Ignoring unknown school id '%s'", school_id)
            return AddOutcome.UNKNOWN
        if school_id in self._ids:
            return AddOutcome.DUPLICATE
        if len(self._ids) >= self.cap:
            outcome = (
                AddOutcome.LIMIT_REACHED if self.premium
                else AddOutcome.UPGRADE_REQUIRED
            )
            logger.info(
                "Comparison cap %d reached (%s)", self.cap, outcome.name,
            )
            return outcome
        self._ids.append(school_id)
        self._save()
        logger.info(
            "Added '%s' to comparison (%s)", school_id, self.count_label,
        )
        return AddOutcome.ADDED

    def remove(self, school_id: str) -> bool:
        """Drop *school_id*; returns False if it was not selected."""
        if school_id not in self._ids:
            return False
        self._ids.remove(school_id)
        self._save()
        logger.info(
            "Removed '%s' from comparison (%s)", school_id, self.count_label,
        )
        return True

    def clear(self) -> None:
        self._ids = []
        self._save()
        logger.info("Comparison cleared")

    # ── Persistence & URLs ───────────────────────────────

    def _save(self) -> None:
        try:
            self._store.set(self._storage_key, json.dumps(self._ids))
        except StorageError as exc:
            logger.warning("Failed to save comparison selection: %s", exc)

    def restore(self) -> tuple[str, ...]:
        """Load the persisted selection, keeping only schools that still exist."""
        try:
            saved = self._store.get(self._storage_key)
        except StorageError as exc:
            logger.warning("Failed to load comparison selection: %s", exc)
            return self.ids
        if not saved:
            return self.ids
        try:
            decoded: Any = json.loads(saved)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable comparison selection")
            return self.ids
        if isinstance(decoded, list):
            self._replace(str(i) for i in cast(list[object], decoded))
        return self.ids

    def apply_url_params(self, params: Mapping[str, str]) -> bool:
        """Replace the selection with ``school1..schoolN`` parameters.

        Returns True if the parameters named at least one school.
        """
        # Unknown ids must not take a slot, so _replace applies the cap
        requested = compare_ids_from_params(params, len(params))
        if not requested:
            return False
        self._replace(requested)
        self._save()
        return True

    def to_url_params(self) -> dict[str, str]:
        return {
            f"school{i}": school_id
            for i, school_id in enumerate(self._ids, start=1)
        }

    def _replace(self, school_ids: Iterable[str]) -> None:
        kept: list[str] = []
        for school_id in school_ids:
            if len(kept) >= self.cap:
                break
            if school_id in kept or not self._is_known(school_id):
                continue
            kept.append(school_id)
        self._ids = kept
