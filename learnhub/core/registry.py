"""In-process keyed store with per-entry expiry.

Used for the token revocation registry and for the fallback auth rate-limit
counters. Expired entries are invisible to lookups immediately and are
physically removed by ``sweep()``, which ``PeriodicSweeper`` runs in the
background.
"""

import asyncio
import threading
from collections.abc import Callable, Hashable
from datetime import datetime, timedelta
from typing import Any

from learnhub.core.database import utc_now
from learnhub.core.logging import get_logger


logger = get_logger(__name__)


class TTLRegistry:
    """Concurrency-safe mapping of key -> (value, expires_at).

    All operations take a single lock, so the registry can be shared by
    request handlers and the background sweeper.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._clock = clock
        self._entries: dict[Hashable, tuple[Any, datetime]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def add(self, key: Hashable, expires_at: datetime, value: Any = True) -> None:
        """Store ``value`` under ``key`` until ``expires_at``."""
        with self._lock:
            self._entries[key] = (value, expires_at)

    def lookup(self, key: Hashable) -> Any | None:
        """Return the value stored under ``key``, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= self._clock():
                return None
            return value

    def contains(self, key: Hashable) -> bool:
        return self.lookup(key) is not None

    def increment(self, key: Hashable, window_seconds: float) -> int:
        """Increment a fixed-window counter and return the new count.

        The window starts at the first increment; once it has elapsed the
        counter restarts at 1.
        """
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is None or entry[1] <= now:
                self._entries[key] = (1, now + timedelta(seconds=window_seconds))
                return 1
            count, expires_at = entry
            self._entries[key] = (count + 1, expires_at)
            return count + 1

    def sweep(self) -> int:
        """Remove expired entries. Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, (_, exp) in self._entries.items() if exp <= now]
            for key in expired:
                del self._entries[key]
            return len(expired)


class PeriodicSweeper:
    """Background task that sweeps a registry on a fixed interval."""

    def __init__(
        self,
        registry: TTLRegistry,
        interval_seconds: float,
        name: str = "registry",
    ) -> None:
        self.registry = registry
        self.interval_seconds = interval_seconds
        self.name = name
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=f"{self.name}_sweeper")
        logger.info(
            "sweeper_started", registry=self.name, interval=self.interval_seconds
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("sweeper_stopped", registry=self.name)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                removed = self.registry.sweep()
            except Exception:
                logger.exception("registry_sweep_failed", registry=self.name)
                continue
            if removed:
                logger.debug("registry_swept", registry=self.name, removed=removed)
