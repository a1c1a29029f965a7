from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

""" Answer cache keyed by (domain, qtype).

Brief:
  Thread-safe in-memory cache of upstream answers. Each entry carries its own
  absolute expiry derived from the answer's TTL.

Notes:
  - Expired entries are dropped on get() and in bulk by sweep().
  - sweep() is driven by CacheSweeper on a fixed interval and is never run
    on the request path.
"""

logger = logging.getLogger("nukedns.cache")

CacheKey = Tuple[str, int]

DEFAULT_EMPTY_TTL = 60
DEFAULT_SWEEP_INTERVAL = 60


class CachedAnswer(NamedTuple):
    records: List[Any]
    expires_at: float


def ttl_for(records: Sequence[Any]) -> int:
    """Brief: TTL to cache an answer for.

    Inputs:
      - records: Resource records from the upstream answer section.

    Outputs:
      - int: The first record's TTL, or DEFAULT_EMPTY_TTL for an empty answer.

    Example:
      >>> ttl_for([])
      60
    """
    if not records:
        return DEFAULT_EMPTY_TTL
    try:
        return int(records[0].ttl)
    except (AttributeError, TypeError, ValueError):
        return DEFAULT_EMPTY_TTL


class AnswerCache:
    """Thread-safe mapping from CacheKey to cached answer records.

    Brief:
        All dictionary operations are synchronized with a single RLock. The
        lock covers only the dictionary access itself; callers never hold it
        while waiting on the network.

    Inputs:
        - clock: Optional callable returning epoch seconds (time.time by
          default). Tests pass a simulated clock.

    Outputs:
        AnswerCache instance

    Example use:
        >>> cache = AnswerCache()
        >>> cache.put(("example.com", 1), ["rr"], 300)
        >>> cache.get(("example.com", 1))
        ['rr']
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None) -> None:
        self._clock: Callable[[], float] = clock or time.time
        self._store: Dict[CacheKey, CachedAnswer] = {}
        self._lock = threading.RLock()

        # Best-effort counters for log lines; they do not affect cache semantics.
        self.hits: int = 0
        self.misses: int = 0
        self.evictions: int = 0

    def get(self, key: CacheKey) -> Optional[List[Any]]:
        """
        Return cached records for key, or None when absent or expired.

        Inputs:
            key: (domain, qtype) tuple.
        Outputs:
            A copy of the cached record list, or None.
        """
        now = self._clock()
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self.misses += 1
                return None
            if entry.expires_at <= now:
                del self._store[key]
                self.misses += 1
                self.evictions += 1
                logger.debug("TTL eviction (get): key=%r", key)
                return None
            self.hits += 1
            return list(entry.records)

    def put(self, key: CacheKey, records: Sequence[Any], ttl: int) -> None:
        """
        Insert or overwrite the answer for key.

        Inputs:
            key: (domain, qtype) tuple.
            records: Answer records to store.
            ttl: Lifetime in seconds; values below 1 are raised to 1.
        Outputs:
            None
        """
        ttl_int = max(1, int(ttl))
        expires_at = self._clock() + ttl_int
        with self._lock:
            self._store[key] = CachedAnswer(list(records), expires_at)

    def sweep(self, now: Optional[float] = None) -> int:
        """Remove every entry whose expiry is at or before now.

        Inputs:
            now: Epoch seconds; defaults to the cache clock.
        Outputs:
            Number of entries removed.
        """
        if now is None:
            now = self._clock()
        with self._lock:
            expired = [k for k, entry in self._store.items() if entry.expires_at <= now]
            for k in expired:
                del self._store[k]
            self.evictions += len(expired)
        if expired:
            logger.debug("TTL eviction (sweep): removed %d entries", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


class CacheSweeper(threading.Thread):
    """
    Background daemon thread that periodically sweeps an AnswerCache.

    Inputs (constructor):
        cache: AnswerCache to sweep
        interval_seconds: Seconds between sweeps (default 60)

    Outputs:
        CacheSweeper thread instance (call start() to begin)

    Example:
        >>> sweeper = CacheSweeper(AnswerCache(), interval_seconds=60)
        >>> sweeper.start()
        >>> sweeper.stop()
    """

    def __init__(
        self, cache: AnswerCache, interval_seconds: float = DEFAULT_SWEEP_INTERVAL
    ) -> None:
        super().__init__(daemon=True, name="nukedns-sweeper")
        self.cache = cache
        self.interval_seconds = max(0.01, float(interval_seconds))
        self._stop_event = threading.Event()

    def run(self) -> None:
        """
        Sweeper main loop (called by start()).

        Sweeps once per interval until stop() is called. The wait is on an
        Event so stop() takes effect immediately.
        """
        while not self._stop_event.wait(self.interval_seconds):
            try:
                removed = self.cache.sweep()
                if removed:
                    logger.info(
                        "Cache sweep removed %d expired entries (%d remain)",
                        removed,
                        len(self.cache),
                    )
            except Exception as e:  # pragma: no cover
                logger.error("CacheSweeper error: %s", e, exc_info=True)

    def stop(self, timeout: float = 5.0) -> None:
        """
        Signal the sweeper to stop and wait for the thread to exit.

        Inputs:
            timeout: Maximum seconds to wait for thread join (default 5.0)
        """
        self._stop_event.set()
        if self.is_alive():
            self.join(timeout=timeout)
