"""In-memory waveform cache with in-flight request sharing."""

from __future__ import annotations

import threading
from collections import OrderedDict
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, Optional

from ..domain.source import WaveformKey, WaveformSamples


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    computations: int = 0
    evictions: int = 0


class WaveformCache:
    """Memoizes reducer output keyed by (source identity, bar count).

    Concurrent callers for the same key share one computation: the first
    caller computes while later callers wait on its future. Failures are
    handed to every waiting caller and are not stored, so the next request
    recomputes. ``max_entries=None`` keeps every entry for the process
    lifetime; a positive bound evicts the least recently used entry.
    """

    def __init__(self, max_entries: Optional[int] = None, logger=None) -> None:
        if max_entries is not None and int(max_entries) < 1:
            raise ValueError("max_entries must be positive or None")
        self.max_entries = int(max_entries) if max_entries is not None else None
        self.logger = logger
        self._values: OrderedDict[WaveformKey, WaveformSamples] = OrderedDict()
        self._in_flight: dict[WaveformKey, Future[WaveformSamples]] = {}
        self._lock = threading.Lock()
        self.stats = CacheStats()

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._values

    def peek(self, key: WaveformKey) -> WaveformSamples | None:
        with self._lock:
            return self._values.get(key)

    def get_or_compute(
        self,
        key: WaveformKey,
        compute: Callable[[], WaveformSamples],
    ) -> WaveformSamples:
        with self._lock:
            cached = self._values.get(key)
            if cached is not None:
                self._values.move_to_end(key)
                self.stats.hits += 1
                return cached
            self.stats.misses += 1
            pending = self._in_flight.get(key)
            owner = pending is None
            if owner:
                pending = Future()
                pending.set_running_or_notify_cancel()
                self._in_flight[key] = pending
                self.stats.computations += 1

        assert pending is not None
        if not owner:
            if self.logger is not None:
                self.logger.debug("Waveform cache: joining in-flight compute for %s", key)
            return pending.result()

        try:
            value = compute()
        except BaseException as exc:
            with self._lock:
                self._in_flight.pop(key, None)
            pending.set_exception(exc)
            raise
        with self._lock:
            self._in_flight.pop(key, None)
            self._values[key] = value
            self._values.move_to_end(key)
            self._evict_locked()
        pending.set_result(value)
        return value

    def _evict_locked(self) -> None:
        if self.max_entries is None:
            return
        while len(self._values) > self.max_entries:
            oldest_key, _ = self._values.popitem(last=False)
            self.stats.evictions += 1
            if self.logger is not None:
                self.logger.debug("Waveform cache: evicted %s", oldest_key)

    def invalidate(self, source_identity: str) -> int:
        with self._lock:
            stale = [key for key in self._values if key.source_identity == source_identity]
            for key in stale:
                del self._values[key]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._values.clear()
