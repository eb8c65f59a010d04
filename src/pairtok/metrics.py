"""Token counters, cache statistics and operation timings."""

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, override

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperationStats:
    """Accumulated timing for one named operation."""

    calls: int
    total_seconds: float


@dataclass(frozen=True)
class MetricsSummary:
    """Point-in-time copy of the collected metrics."""

    total_tokens: int
    unique_tokens: int
    cache_hits: int
    cache_misses: int
    operations: dict[str, OperationStats] = field(default_factory=dict)

    @property
    def cache_hit_rate(self) -> float:
        lookups = self.cache_hits + self.cache_misses
        return self.cache_hits / lookups if lookups else 0.0


class MetricsSink(ABC):
    """
    Write-only reporting interface used by the tokenizer.

    No tokenizer decision depends on the state of a sink.
    """

    @abstractmethod
    def increment_token_count(self, value: str) -> None:
        """Record one occurrence of a token value."""

    @abstractmethod
    def record_cache_hit(self) -> None: ...

    @abstractmethod
    def record_cache_miss(self) -> None: ...

    @abstractmethod
    @contextmanager
    def measure(self, operation: str) -> Iterator[None]:
        """Time the enclosed block; the measurement is closed on every exit path."""

    @abstractmethod
    def log_metrics(self) -> None:
        """Dump a summary of everything recorded so far."""


class NullMetrics(MetricsSink):
    """Sink that discards everything."""

    @override
    def increment_token_count(self, value: str) -> None:
        pass

    @override
    def record_cache_hit(self) -> None:
        pass

    @override
    def record_cache_miss(self) -> None:
        pass

    @override
    @contextmanager
    def measure(self, operation: str) -> Iterator[None]:
        yield

    @override
    def log_metrics(self) -> None:
        pass


class TokenizerMetrics(MetricsSink):
    """Thread-safe in-memory metrics reported through ``logging``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._token_counts: Counter[str] = Counter()
        self._total_tokens = 0
        self._cache_hits = 0
        self._cache_misses = 0
        # operation -> [calls, total seconds]
        self._operations: dict[str, list[float]] = {}

    @override
    def increment_token_count(self, value: str) -> None:
        with self._lock:
            self._token_counts[value] += 1
            self._total_tokens += 1

    @override
    def record_cache_hit(self) -> None:
        with self._lock:
            self._cache_hits += 1

    @override
    def record_cache_miss(self) -> None:
        with self._lock:
            self._cache_misses += 1

    @override
    @contextmanager
    def measure(self, operation: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            with self._lock:
                stats = self._operations.setdefault(operation, [0, 0.0])
                stats[0] += 1
                stats[1] += elapsed
            log.debug(f"{operation} took {elapsed * 1000:.2f} ms")

    def token_count(self, value: str) -> int:
        """Return how many times ``value`` has been produced."""
        with self._lock:
            return self._token_counts[value]

    def summary(self) -> MetricsSummary:
        with self._lock:
            return MetricsSummary(
                total_tokens=self._total_tokens,
                unique_tokens=len(self._token_counts),
                cache_hits=self._cache_hits,
                cache_misses=self._cache_misses,
                operations={
                    name: OperationStats(calls=int(calls), total_seconds=secs)
                    for name, (calls, secs) in self._operations.items()
                },
            )

    def reset(self) -> None:
        with self._lock:
            self._token_counts.clear()
            self._total_tokens = 0
            self._cache_hits = 0
            self._cache_misses = 0
            self._operations.clear()

    @override
    def log_metrics(self) -> None:
        summary = self.summary()
        log.info(
            f"tokenizer metrics: total tokens processed: {summary.total_tokens}, "
            f"cache hit rate: {summary.cache_hit_rate:.2%}, "
            f"unique tokens: {summary.unique_tokens}"
        )
        for name, stats in summary.operations.items():
            log.info(
                f"{name} - calls: {stats.calls}, total time: {stats.total_seconds * 1000:.2f} ms"
            )


__all__ = [
    "MetricsSink",
    "MetricsSummary",
    "NullMetrics",
    "OperationStats",
    "TokenizerMetrics",
]
