"""Coalescing of bursty requests behind a quiescence interval."""

from __future__ import annotations

import threading
from typing import Any, Callable


class Debouncer:
    """Runs ``callback`` with the latest submitted value once submissions settle."""

    def __init__(
        self,
        delay_seconds: float,
        callback: Callable[[Any], None],
        *,
        logger=None,
        timer_factory: Callable[..., Any] | None = None,
        name: str = "debounce",
    ) -> None:
        self.delay_seconds = max(0.0, float(delay_seconds))
        self.callback = callback
        self.logger = logger
        self.name = name
        self._timer_factory = timer_factory or threading.Timer
        self._lock = threading.Lock()
        self._timer = None
        self._pending: Any = None
        self._has_pending = False
        self._generation = 0
        self._closed = False

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return self._has_pending

    def submit(self, value: Any) -> None:
        with self._lock:
            if self._closed:
                return
            self._cancel_timer_locked()
            self._generation += 1
            generation = self._generation
            self._pending = value
            self._has_pending = True
            if self.delay_seconds <= 0:
                timer = None
            else:
                timer = self._timer_factory(self.delay_seconds, self._fire, args=(generation,))
                timer.daemon = True
                try:
                    timer.name = f"{self.name}-timer"
                except AttributeError:
                    pass
                self._timer = timer
        if timer is None:
            self._fire(generation)
        else:
            timer.start()

    def _cancel_timer_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, generation: int) -> None:
        with self._lock:
            if self._closed or generation != self._generation or not self._has_pending:
                return
            value = self._pending
            self._pending = None
            self._has_pending = False
            self._timer = None
        self._run(value)

    def _run(self, value: Any) -> None:
        try:
            self.callback(value)
        except Exception:
            if self.logger is None:
                raise
            self.logger.exception("Debounced %s callback failed", self.name)

    def flush(self) -> bool:
        """Run the pending request now instead of waiting for the timer."""
        with self._lock:
            if self._closed or not self._has_pending:
                return False
            self._cancel_timer_locked()
            self._generation += 1
            value = self._pending
            self._pending = None
            self._has_pending = False
        self._run(value)
        return True

    def cancel(self) -> None:
        with self._lock:
            self._cancel_timer_locked()
            self._generation += 1
            self._pending = None
            self._has_pending = False

    def close(self) -> None:
        with self._lock:
            self._closed = True
        self.cancel()
