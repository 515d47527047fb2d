"""Playback state machine for one player session."""

from __future__ import annotations

import functools
import threading
from typing import Callable

from ..constants import AUTO_STOP_TOLERANCE_MS
from ..domain.playback import PlaybackState, PlaybackStatus, reached_end
from ..errors import TransportError
from .arbitration import PlaybackArbiter
from .dispatch import EventQueue
from .ports import PlaybackTransport

StateListener = Callable[[PlaybackState, PlaybackState], None]

_PLAYABLE = (PlaybackStatus.PAUSED, PlaybackStatus.COMPLETED)
_SEEKABLE = (PlaybackStatus.PLAYING, PlaybackStatus.PAUSED, PlaybackStatus.COMPLETED)
_LOADABLE = (PlaybackStatus.IDLE, PlaybackStatus.COMPLETED, PlaybackStatus.ERRORED)


def _delivers_events(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        finally:
            self._events.drain()

    return wrapper


class PlaybackStateMachine:
    """Serialises decoder callbacks and user intents against one PlaybackState.

    Every event takes the session lock. Listeners are queued under that lock
    in the order changes happen and called once it is released, so a listener
    may issue intents on any session. Arbitration is requested with the lock
    released so that two sessions starting at once never wait on each other.
    """

    def __init__(
        self,
        transport: PlaybackTransport,
        arbiter: PlaybackArbiter,
        logger,
        *,
        auto_stop_tolerance_ms: int = AUTO_STOP_TOLERANCE_MS,
        name: str = "session",
    ) -> None:
        self.transport = transport
        self.arbiter = arbiter
        self.logger = logger
        self.auto_stop_tolerance_ms = max(0, int(auto_stop_tolerance_ms))
        self.name = name
        self._lock = threading.RLock()
        self._state = PlaybackState()
        self._listeners: list[StateListener] = []
        self._closed = False
        self._events = EventQueue(logger, failure_message="Playback listener failed")

    def __repr__(self) -> str:
        return f"<PlaybackStateMachine {self.name} {self._state.status.value}>"

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def add_listener(self, listener: StateListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def _commit(self, new_state: PlaybackState, reason: str) -> None:
        previous = self._state
        if new_state == previous:
            return
        self._state = new_state
        if previous.status is not new_state.status:
            self.logger.debug(
                "Playback %s: %s -> %s (%s) position_ms=%s duration_ms=%s",
                self.name,
                previous.status.value,
                new_state.status.value,
                reason,
                new_state.position_ms,
                new_state.duration_ms,
            )
        for listener in self._listeners:
            self._events.post(listener, previous, new_state)

    def _fail(self, error: Exception, reason: str) -> None:
        self.arbiter.release(self)
        message = str(error) or error.__class__.__name__
        self._commit(
            self._state.evolve(
                status=PlaybackStatus.ERRORED,
                error=message,
                resume_after_seek=False,
            ),
            reason,
        )

    def _transport_call(self, action: str, *args) -> bool:
        try:
            getattr(self.transport, action)(*args)
        except Exception as exc:
            self.logger.exception("Transport %s failed for %s", action, self.name)
            error = exc if isinstance(exc, TransportError) else TransportError(
                f"Playback {action} failed: {exc}"
            )
            self._fail(error, f"transport {action}")
            return False
        return True

    @_delivers_events
    def begin_loading(self) -> bool:
        with self._lock:
            if self._closed or self._state.status not in _LOADABLE:
                return False
            self.arbiter.release(self)
            self._commit(PlaybackState(status=PlaybackStatus.LOADING), "load")
            return True

    @_delivers_events
    def on_loaded(self, duration_ms: int | None) -> None:
        with self._lock:
            if self._closed or self._state.status is not PlaybackStatus.LOADING:
                return
            duration = int(duration_ms) if duration_ms and int(duration_ms) > 0 else None
            self._commit(
                self._state.evolve(
                    status=PlaybackStatus.PAUSED,
                    position_ms=0,
                    duration_ms=duration,
                    error=None,
                ),
                "ready",
            )

    def _can_play_locked(self) -> bool:
        return not self._closed and self._state.status in _PLAYABLE

    @_delivers_events
    def play(self) -> bool:
        with self._lock:
            if not self._can_play_locked():
                return False
        self.arbiter.acquire(self)
        with self._lock:
            if not self._can_play_locked():
                if self._state.status is not PlaybackStatus.PLAYING:
                    self.arbiter.release(self)
                return False
            if not self.arbiter.is_holder(self):
                return False
            state = self._state
            position = state.position_ms
            at_end = state.status is PlaybackStatus.COMPLETED or (
                state.duration_ms is not None and position >= state.duration_ms
            )
            if at_end:
                position = 0
                if not self._transport_call("seek", 0):
                    return False
            if not self._transport_call("play"):
                return False
            self._commit(
                self._state.evolve(status=PlaybackStatus.PLAYING, position_ms=position),
                "play",
            )
            return True

    @_delivers_events
    def pause(self) -> bool:
        with self._lock:
            if self._closed:
                return False
            state = self._state
            if state.status is PlaybackStatus.SEEKING and state.resume_after_seek:
                self.arbiter.release(self)
                self._commit(state.evolve(resume_after_seek=False), "pause during seek")
                return True
            if state.status is not PlaybackStatus.PLAYING:
                return False
            if not self._transport_call("pause"):
                return False
            self.arbiter.release(self)
            self._commit(self._state.evolve(status=PlaybackStatus.PAUSED), "pause")
            return True

    def toggle(self) -> bool:
        with self._lock:
            if self._closed or self._state.status is PlaybackStatus.LOADING:
                return False
            playing = self._state.status is PlaybackStatus.PLAYING
        if playing:
            return self.pause()
        return self.play()

    @_delivers_events
    def seek_start(self, position_ms: int | None = None) -> bool:
        with self._lock:
            if self._closed or self._state.status not in _SEEKABLE:
                return False
            was_playing = self._state.status is PlaybackStatus.PLAYING
            if was_playing and not self._transport_call("pause"):
                return False
            seeking = self._state.evolve(
                status=PlaybackStatus.SEEKING, resume_after_seek=was_playing
            )
            if position_ms is not None:
                seeking = seeking.evolve(position_ms=seeking.clamp_position(position_ms))
            self._commit(seeking, "seek start")
            return True

    @_delivers_events
    def seek_update(self, position_ms: int) -> bool:
        with self._lock:
            if self._closed or self._state.status is not PlaybackStatus.SEEKING:
                return False
            position = self._state.clamp_position(position_ms)
            self._commit(self._state.evolve(position_ms=position), "seek drag")
            return True

    @_delivers_events
    def seek_end(self, target_ms: int | None = None) -> bool:
        with self._lock:
            state = self._state
            if self._closed or state.status is not PlaybackStatus.SEEKING:
                return False
            position = state.clamp_position(state.position_ms if target_ms is None else target_ms)
            resume = state.resume_after_seek and self.arbiter.is_holder(self)
            if not self._transport_call("seek", position):
                return False
            if resume:
                if not self._transport_call("play"):
                    return False
                new_status = PlaybackStatus.PLAYING
            else:
                self.arbiter.release(self)
                new_status = PlaybackStatus.PAUSED
            self._commit(
                self._state.evolve(
                    status=new_status,
                    position_ms=position,
                    resume_after_seek=False,
                ),
                "seek end",
            )
            return True

    @_delivers_events
    def seek_to(self, position_ms: int) -> bool:
        with self._lock:
            state = self._state
            if self._closed or state.status not in _SEEKABLE:
                return False
            position = state.clamp_position(position_ms)
            if not self._transport_call("seek", position):
                return False
            status = state.status
            if status is PlaybackStatus.COMPLETED:
                status = PlaybackStatus.PAUSED
            self._commit(self._state.evolve(status=status, position_ms=position), "seek")
            return True

    @_delivers_events
    def on_position(self, position_ms: int) -> bool:
        with self._lock:
            state = self._state
            if self._closed or state.status is not PlaybackStatus.PLAYING:
                return False
            if reached_end(position_ms, state.duration_ms, self.auto_stop_tolerance_ms):
                self._complete_locked("auto-stop")
                return True
            position = state.clamp_position(position_ms)
            if position == state.position_ms:
                return False
            self._commit(state.evolve(position_ms=position), "position")
            return True

    @_delivers_events
    def on_duration(self, duration_ms: int | None) -> bool:
        with self._lock:
            state = self._state
            if self._closed or state.status is PlaybackStatus.ERRORED:
                return False
            if duration_ms is None or int(duration_ms) <= 0:
                return False
            duration = int(duration_ms)
            if duration == state.duration_ms:
                return False
            self._commit(
                state.evolve(duration_ms=duration, position_ms=min(state.position_ms, duration)),
                "duration",
            )
            return True

    @_delivers_events
    def on_completed(self) -> None:
        with self._lock:
            if self._closed:
                return
            if self._state.status in (PlaybackStatus.PLAYING, PlaybackStatus.PAUSED):
                self._complete_locked("end of stream")

    def _complete_locked(self, reason: str) -> None:
        self.arbiter.release(self)
        if not self._transport_call("seek", 0):
            return
        if not self._transport_call("pause"):
            return
        self._commit(
            self._state.evolve(
                status=PlaybackStatus.COMPLETED,
                position_ms=0,
                resume_after_seek=False,
            ),
            reason,
        )

    @_delivers_events
    def on_error(self, error: Exception) -> None:
        with self._lock:
            if self._closed:
                return
            self._fail(error, "error")

    @_delivers_events
    def preempt(self) -> None:
        with self._lock:
            if self._closed:
                return
            state = self._state
            if state.status is PlaybackStatus.PLAYING:
                if self._transport_call("pause"):
                    self._commit(self._state.evolve(status=PlaybackStatus.PAUSED), "preempted")
            elif state.status is PlaybackStatus.SEEKING and state.resume_after_seek:
                self._commit(state.evolve(resume_after_seek=False), "preempted")

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._listeners.clear()
            self._events.clear()
            self.arbiter.release(self)
        # Decoder threads may be waiting on the session lock; release joins them.
        try:
            self.transport.release()
        except Exception:
            self.logger.exception("Failed to release transport for %s", self.name)
