# schoolscope/storage/rate_limiter.py

"""Per-action cooldown gate backed by durable last-invocation timestamps."""

import json
import logging
import time

from schoolscope.config.settings import Settings
from schoolscope.errors import StorageError
from schoolscope.storage.ttl_cache import KeyValueStore

logger = logging.getLogger("schoolscope.rate_limit")


class RateLimiter:
    """Cooldown gate for user actions (lead submission, search, compare...).

    Callers ``check()`` before the gated operation and ``commit()`` only
    after it succeeds, so a failed attempt never restarts the window.
    """

    def __init__(
        self,
        store: KeyValueStore,
        cooldowns: dict[str, float] | None = None,
        prefix: str = Settings.RATE_LIMIT_PREFIX,
    ) -> None:
        self._store = store
        configured = (
            cooldowns if cooldowns is not None else Settings.RATE_LIMITS
        )
        self._cooldowns = {
            name.lower(): window for name, window in configured.items()
        }
        self._prefix = prefix

    def cooldown(self, action: str) -> float:
        """Return the configured window for *action* in seconds.

        Raises ``KeyError`` for actions with no configured window.
        """
        try:
            return self._cooldowns[action.lower()]
        except KeyError:
            raise KeyError(f"No rate limit configured for '{action}'") from None

    def _last_invoked(self, action: str) -> float | None:
        try:
            raw = self._store.get(f"{self._prefix}{action.lower()}")
        except StorageError as exc:
            logger.warning(
                "Rate-limit read for '%s' failed, allowing: %s", action, exc,
            )
            return None
        if raw is None:
            return None
        try:
            return float(json.loads(raw))
        except (ValueError, TypeError):
            logger.debug("Ignoring unreadable timestamp for '%s'", action)
            return None

    def check(self, action: str) -> bool:
        """True when *action* may run now. Never mutates state."""
        window = self.cooldown(action)
        last = self._last_invoked(action)
        if last is None:
            return True
        return time.time() - last > window

    def remaining(self, action: str) -> float:
        """Seconds left before *action* is allowed again (0 if allowed)."""
        window = self.cooldown(action)
        last = self._last_invoked(action)
        if last is None:
            return 0.0
        elapsed = time.time() - last
        return 0.0 if elapsed > window else window - elapsed

    def commit(self, action: str) -> None:
        """Record now as the last successful invocation of *action*."""
        self.cooldown(action)
        now = time.time()
        previous = self._last_invoked(action)
        stamp = max(now, previous) if previous is not None else now
        try:
            self._store.set(
                f"{self._prefix}{action.lower()}", json.dumps(stamp),
            )
        except StorageError as exc:
            logger.warning(
                "Rate-limit write for '%s' dropped: %s", action, exc,
            )
            return
        logger.debug("Rate limit committed for '%s' at %.3f", action, stamp)
