"""Memoization of encoded texts with least-frequently-used eviction."""

import logging
import threading
from typing import Sequence

from .errors import InvalidArgumentError
from .metrics import MetricsSink, NullMetrics
from .types import Token

log = logging.getLogger(__name__)


class CachedEntry:
    """A cached token sequence and the number of times it was used."""

    __slots__ = ("tokens", "_hits", "_lock")

    def __init__(self, tokens: Sequence[Token]) -> None:
        self.tokens: tuple[Token, ...] = tuple(tokens)
        # the insert counts as the first use
        self._hits = 1
        self._lock = threading.Lock()

    @property
    def hits(self) -> int:
        return self._hits

    def record_hit(self) -> None:
        with self._lock:
            self._hits += 1


class TokenCache:
    """
    Bounded text -> tokens cache.

    Lookups and inserts do not block each other. Eviction runs under its own
    lock, drops the least-hit entries from a snapshot, and rechecks the size
    after acquiring the lock so racing inserters do not over-evict.
    """

    def __init__(self, metrics: MetricsSink | None = None, capacity: int = 10_000) -> None:
        if capacity <= 0:
            raise InvalidArgumentError(f"cache capacity must be positive (got {capacity})")
        self.capacity = capacity
        self._metrics = metrics or NullMetrics()
        self._entries: dict[str, CachedEntry] = {}
        self._eviction_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, text: object) -> bool:
        return text in self._entries

    def try_get(self, text: str | None) -> list[Token] | None:
        """
        Return the cached tokens for ``text`` and count a hit, or None on a miss.

        Empty text is always a miss.
        """
        if not text:
            self._metrics.record_cache_miss()
            return None

        entry = self._entries.get(text)
        if entry is None:
            self._metrics.record_cache_miss()
            return None

        entry.record_hit()
        self._metrics.record_cache_hit()
        return list(entry.tokens)

    def hit_count(self, text: str) -> int:
        """Return the hit counter for ``text``, 0 when not cached."""
        entry = self._entries.get(text)
        return entry.hits if entry is not None else 0

    def put(self, text: str | None, tokens: Sequence[Token] | None) -> None:
        """
        Cache ``tokens`` under ``text``; the first writer for a key wins.

        Evicts the least-hit entries first when the cache is full.
        """
        if not text or tokens is None:
            return
        if text in self._entries:
            return

        if len(self._entries) >= self.capacity:
            self._evict()

        self._entries.setdefault(text, CachedEntry(tokens))

    def _evict(self) -> None:
        with self._eviction_lock:
            # another thread may have already made room
            if len(self._entries) < self.capacity:
                return

            snapshot = list(self._entries.items())
            # stable sort keeps snapshot order among equal hit counts
            snapshot.sort(key=lambda item: item[1].hits)
            n_evict = len(snapshot) - self.capacity + 1
            for text, _ in snapshot[:n_evict]:
                self._entries.pop(text, None)

            log.info(f"cache cleanup: removed {n_evict} entries")

    def clear(self) -> None:
        self._entries.clear()
        log.info("token cache cleared")


__all__ = ["CachedEntry", "TokenCache"]
