"""Read-through cache for the default enriched server collection."""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional

from proxy_api.domain.enrichment import EnrichedServer

LOGGER = logging.getLogger(__name__)


class ReadWriteLock:
    """Many concurrent readers or one writer; waiting writers block new readers."""

    def __init__(self) -> None:
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._condition:
            while self._writer or self._waiting_writers:
                self._condition.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._condition:
                self._readers -= 1
                if self._readers == 0:
                    self._condition.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._condition:
            self._waiting_writers += 1
            while self._writer or self._readers:
                self._condition.wait()
            self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._condition:
                self._writer = False
                self._condition.notify_all()


@dataclass(frozen=True)
class CachedCollection:
    records: tuple[EnrichedServer, ...]
    total_count: int


@dataclass(frozen=True)
class _Entry:
    collection: CachedCollection
    expires_at: float


class EnrichedServerCache:
    """Single-entry cache holding the whole default-sorted collection.

    Entries are replaced wholesale by :meth:`set` and dropped by
    :meth:`clear`. Expired entries are evicted lazily on access and, when
    :meth:`start` has been called, by a background sweep.
    """

    def __init__(
        self,
        ttl_seconds: float,
        cleanup_interval_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if cleanup_interval_seconds <= 0:
            raise ValueError("cleanup_interval_seconds must be positive")
        self._ttl = float(ttl_seconds)
        self._cleanup_interval = float(cleanup_interval_seconds)
        self._clock = clock
        self._wall_clock = wall_clock
        self._lock = ReadWriteLock()
        self._entry: Optional[_Entry] = None
        self._last_update: Optional[datetime] = None
        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self) -> tuple[Optional[CachedCollection], bool]:
        with self._lock.read():
            entry = self._entry
            if entry is not None and self._clock() < entry.expires_at:
                return entry.collection, True
        if entry is not None:
            self._evict_expired()
        return None, False

    def set(self, collection: CachedCollection) -> None:
        with self._lock.write():
            self._entry = _Entry(collection=collection, expires_at=self._clock() + self._ttl)
            self._last_update = self._wall_clock()
        LOGGER.debug("Cached %d enriched servers", len(collection.records))

    def clear(self) -> None:
        with self._lock.write():
            self._entry = None
        LOGGER.debug("Enriched server cache cleared")

    def last_update(self) -> Optional[datetime]:
        with self._lock.read():
            return self._last_update

    def _evict_expired(self) -> bool:
        with self._lock.write():
            entry = self._entry
            if entry is None or self._clock() < entry.expires_at:
                return False
            self._entry = None
        LOGGER.debug("Evicted expired enriched server collection")
        return True

    def sweep(self) -> bool:
        """Evict the entry if it has expired; returns whether one was evicted."""

        return self._evict_expired()

    def start(self) -> None:
        """Start the background sweep thread (idempotent)."""

        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = threading.Thread(
            target=self._run_sweeper,
            name="enriched-cache-sweeper",
            daemon=True,
        )
        self._sweeper.start()

    def stop(self) -> None:
        self._stop.set()
        sweeper = self._sweeper
        if sweeper is not None:
            sweeper.join(timeout=self._cleanup_interval)
        self._sweeper = None

    def _run_sweeper(self) -> None:
        while not self._stop.wait(self._cleanup_interval):
            self.sweep()


__all__ = ["CachedCollection", "EnrichedServerCache", "ReadWriteLock"]
