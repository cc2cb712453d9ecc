"""In-process cache of computed status reports.

Entries are keyed by (source id, content fingerprint), so any change to a
source's content produces a different key. Computation is single-flight per
key: concurrent requests for the same key share one computation, while
distinct keys compute in parallel.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from toolsync.artifacts.models import StatusReport
from toolsync.core.errors import CacheCorruption
from toolsync.gateway.time.abc import Time

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60.0


@dataclass(frozen=True)
class CacheKey:
    source_id: str
    fingerprint: str


@dataclass(frozen=True)
class CacheEntry:
    value: StatusReport
    expires_at: datetime


@dataclass
class _Flight:
    """A computation in progress for one key."""

    generation: int
    done: threading.Event = field(default_factory=threading.Event)
    value: StatusReport | None = None
    error: BaseException | None = None


def _check_entry(key: CacheKey, entry: object) -> CacheEntry:
    """Validate a stored entry.

    Raises:
        CacheCorruption: If the entry is not a report for the key's source
    """
    if not isinstance(entry, CacheEntry):
        raise CacheCorruption(key, f"unexpected entry type {type(entry).__name__}")
    if not isinstance(entry.value, StatusReport):
        raise CacheCorruption(key, f"unexpected value type {type(entry.value).__name__}")
    if entry.value.source.id != key.source_id:
        raise CacheCorruption(key, f"entry belongs to source '{entry.value.source.id}'")
    return entry


class ResultCache:
    """Thread-safe TTL cache with single-flight computation.

    One lock guards the entry, in-flight and generation maps and is never
    held while computing. Entries are fully built before they are published.
    """

    def __init__(self, time: Time, default_ttl_seconds: float = DEFAULT_TTL_SECONDS) -> None:
        if default_ttl_seconds <= 0:
            raise ValueError(f"default_ttl_seconds must be positive, got {default_ttl_seconds}")
        self._time = time
        self._default_ttl_seconds = default_ttl_seconds
        self._lock = threading.Lock()
        self._entries: dict[CacheKey, object] = {}
        self._in_flight: dict[CacheKey, _Flight] = {}
        # Bumped on invalidation so in-flight results from before it are discarded
        self._generations: dict[str, int] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: CacheKey) -> StatusReport | None:
        """Return the cached report, or None if absent, expired or corrupt."""
        with self._lock:
            return self._lookup_locked(key)

    def put(self, key: CacheKey, value: StatusReport, ttl_seconds: float | None = None) -> None:
        entry = self._build_entry(value, ttl_seconds)
        with self._lock:
            self._store_locked(key, entry)

    def invalidate(self, source_id: str) -> None:
        """Drop every entry and in-flight registration for a source."""
        with self._lock:
            self._generations[source_id] = self._generations.get(source_id, 0) + 1
            stale_keys = [k for k in self._entries if k.source_id == source_id]
            for stale_key in stale_keys:
                del self._entries[stale_key]
            for flight_key in [k for k in self._in_flight if k.source_id == source_id]:
                del self._in_flight[flight_key]
        logger.debug("Invalidated %d cache entries for %s", len(stale_keys), source_id)

    def get_or_compute(
        self,
        key: CacheKey,
        compute: Callable[[], StatusReport],
        ttl_seconds: float | None = None,
    ) -> StatusReport:
        """Return the cached report for key, computing it at most once at a time.

        The first caller for a key runs compute; concurrent callers for the
        same key wait and receive the same report, or the same exception.
        A computation that raises publishes nothing.
        """
        with self._lock:
            cached = self._lookup_locked(key)
            if cached is not None:
                logger.debug("Cache hit for %s", key.source_id)
                return cached
            flight = self._in_flight.get(key)
            leader = flight is None
            if flight is None:
                flight = _Flight(generation=self._generations.get(key.source_id, 0))
                self._in_flight[key] = flight

        if not leader:
            logger.debug("Waiting for in-flight computation of %s", key.source_id)
            flight.done.wait()
            if flight.error is not None:
                raise flight.error
            assert flight.value is not None
            return flight.value

        logger.debug("Cache miss for %s", key.source_id)
        try:
            value = compute()
            entry = self._build_entry(value, ttl_seconds)
        except BaseException as e:
            flight.error = e
            self._finish_flight(key, flight, entry=None)
            raise

        flight.value = value
        self._finish_flight(key, flight, entry=entry)
        return value

    def _finish_flight(self, key: CacheKey, flight: _Flight, *, entry: CacheEntry | None) -> None:
        with self._lock:
            current_generation = self._generations.get(key.source_id, 0)
            if entry is not None and current_generation == flight.generation:
                self._store_locked(key, entry)
            if self._in_flight.get(key) is flight:
                del self._in_flight[key]
        flight.done.set()

    def _build_entry(self, value: StatusReport, ttl_seconds: float | None) -> CacheEntry:
        ttl = self._default_ttl_seconds if ttl_seconds is None else ttl_seconds
        return CacheEntry(value=value, expires_at=self._time.now() + timedelta(seconds=ttl))

    def _store_locked(self, key: CacheKey, entry: CacheEntry) -> None:
        # A source has at most one live fingerprint; older ones can never hit again
        for stale_key in [
            k for k in self._entries if k.source_id == key.source_id and k != key
        ]:
            del self._entries[stale_key]
        self._entries[key] = entry

    def _lookup_locked(self, key: CacheKey) -> StatusReport | None:
        stored = self._entries.get(key)
        if stored is None:
            return None
        try:
            entry = _check_entry(key, stored)
        except CacheCorruption as e:
            logger.debug("Dropping corrupt cache entry: %s", e)
            del self._entries[key]
            return None
        if self._time.now() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry.value
