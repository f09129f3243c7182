"""Periodic flush of cache hit/miss counters to the preference store.

Counters change on every lookup, so they are written on a timer instead of
per mutation; at most one interval of counts is lost on a crash.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from qrpay.services.cache import PayloadCache
from qrpay.services.preferences import PreferencesStore

logger = logging.getLogger("qrpay.stats_flusher")


class StatsFlusher:
    def __init__(
        self,
        cache: PayloadCache,
        store: PreferencesStore,
        interval_seconds: float = 30.0,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._cache = cache
        self._store = store
        self._interval_seconds = interval_seconds
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._last_flushed: Optional[tuple] = None

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    @property
    def is_running(self) -> bool:
        return self._running

    def flush(self) -> bool:
        """Write counters if they changed since the last successful flush."""
        stats = self._cache.statistics()
        current = (stats.hits, stats.misses)
        if current == self._last_flushed:
            return False
        if self._store.save_counters(*current):
            self._last_flushed = current
            logger.debug(
                "cache counters flushed",
                extra={"fields": {"hits": stats.hits, "misses": stats.misses}},
            )
            return True
        return False

    async def start(self) -> None:
        if self._running:
            logger.warning("stats flusher already running, ignoring start request")
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            "stats flusher started",
            extra={"fields": {"interval_seconds": self._interval_seconds}},
        )

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self.flush()
        logger.info("stats flusher stopped")

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self._interval_seconds)
            except asyncio.CancelledError:
                break
            self.flush()
