"""Process-wide single-active-player arbitration."""

from __future__ import annotations

import threading

from .ports import PreemptibleSession


class PlaybackArbiter:
    """Hands the playback token to one session at a time.

    Acquiring never blocks on the current holder: the holder is replaced and
    then told to stop through ``preempt()``, outside of the arbiter lock.
    """

    def __init__(self, logger=None) -> None:
        self.logger = logger
        self._lock = threading.Lock()
        self._holder: PreemptibleSession | None = None

    @property
    def holder(self) -> PreemptibleSession | None:
        with self._lock:
            return self._holder

    def is_holder(self, session: PreemptibleSession) -> bool:
        with self._lock:
            return self._holder is session

    def acquire(self, session: PreemptibleSession) -> PreemptibleSession | None:
        with self._lock:
            previous = self._holder
            self._holder = session
        if previous is None or previous is session:
            return None
        if self.logger is not None:
            self.logger.debug("Playback token moved from %r to %r", previous, session)
        self._stop(previous)
        return previous

    def release(self, session: PreemptibleSession) -> bool:
        with self._lock:
            if self._holder is not session:
                return False
            self._holder = None
            return True

    def preempt(self) -> PreemptibleSession | None:
        """Stop and clear the current holder, if any."""
        with self._lock:
            previous = self._holder
            self._holder = None
        if previous is not None:
            self._stop(previous)
        return previous

    def _stop(self, session: PreemptibleSession) -> None:
        try:
            session.preempt()
        except Exception:
            if self.logger is not None:
                self.logger.exception("Failed to preempt playback session %r", session)
            else:
                raise


_default_arbiter = PlaybackArbiter()


def get_default_arbiter() -> PlaybackArbiter:
    return _default_arbiter
