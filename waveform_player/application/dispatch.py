"""Ordered delivery of callbacks outside the caller's locks."""

from __future__ import annotations

import threading
from collections import deque
from typing import Any, Callable


class EventQueue:
    """FIFO of pending callbacks with at most one draining thread.

    Producers ``post`` while holding their own locks and call ``drain`` once
    those locks are released. A thread that finds another thread already
    draining returns at once; the active drainer delivers its events in post
    order. Callbacks posted from inside a callback are delivered after it
    returns.
    """

    def __init__(self, logger, *, failure_message: str = "Event callback failed") -> None:
        self.logger = logger
        self.failure_message = failure_message
        self._lock = threading.Lock()
        self._pending: deque[tuple[Callable[..., Any], tuple]] = deque()
        self._draining = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def post(self, callback: Callable[..., Any], *args) -> None:
        with self._lock:
            self._pending.append((callback, args))

    def clear(self) -> None:
        with self._lock:
            self._pending.clear()

    def drain(self) -> None:
        with self._lock:
            if self._draining:
                return
            self._draining = True
        finished = False
        try:
            while True:
                with self._lock:
                    if not self._pending:
                        self._draining = False
                        finished = True
                        return
                    callback, args = self._pending.popleft()
                try:
                    callback(*args)
                except Exception:
                    self.logger.exception(self.failure_message)
        finally:
            if not finished:
                with self._lock:
                    self._draining = False
