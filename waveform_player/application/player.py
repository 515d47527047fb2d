"""Player facade combining playback state, waveform cache and reducer."""

from __future__ import annotations

import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, fields
from typing import Callable

from ..constants import (
    AUTO_STOP_TOLERANCE_MS,
    DEFAULT_BAR_SPACING,
    DEFAULT_BAR_WIDTH,
    DEFAULT_MAX_AMPLITUDE,
    DEFAULT_MIN_AMPLITUDE,
    RESIZE_DEBOUNCE_MS,
)
from ..domain.layout import bar_count_for_width
from ..domain.playback import PlaybackState, PlaybackStatus, format_timestamp
from ..domain.source import AudioSource, WaveformKey, WaveformSamples, validate_bar_count
from ..domain.waveform import WaveformReducer
from ..errors import DecodeError, SourceOpenError, WaveformPlayerError
from ..storage.waveform_cache import WaveformCache
from .arbitration import PlaybackArbiter
from .debounce import Debouncer
from .dispatch import EventQueue
from .playback import PlaybackStateMachine
from .ports import PlaybackTransport

Observer = Callable[["PlayerSnapshot"], None]


@dataclass(frozen=True)
class PlayerSnapshot:
    """Everything a renderer needs for one frame of the player."""

    status: PlaybackStatus
    position_ms: int
    duration_ms: int | None
    samples: WaveformSamples | None
    error: str | None
    waveform_error: str | None
    bar_count: int

    @property
    def is_playing(self) -> bool:
        return self.status is PlaybackStatus.PLAYING

    @property
    def is_loading(self) -> bool:
        return self.status is PlaybackStatus.LOADING

    @property
    def has_error(self) -> bool:
        return self.status is PlaybackStatus.ERRORED

    @property
    def progress(self) -> float:
        """Played fraction in [0, 1]."""
        if not self.duration_ms or self.duration_ms <= 0:
            return 0.0
        return max(0.0, min(1.0, float(self.position_ms) / float(self.duration_ms)))

    @property
    def display_time(self) -> str:
        # Total length while loading or parked at the start, elapsed time otherwise.
        show_total = self.is_loading or (
            self.position_ms == 0 and bool(self.duration_ms and self.duration_ms > 0)
        )
        return format_timestamp(self.duration_ms if show_total else self.position_ms)

    def changed_fields(self, previous: "PlayerSnapshot | None") -> frozenset[str]:
        if previous is None:
            return frozenset(item.name for item in fields(self))
        return frozenset(
            item.name
            for item in fields(self)
            if getattr(self, item.name) != getattr(previous, item.name)
        )


class WaveformPlayer:
    """One player session: playback intents, layout requests and observers."""

    def __init__(
        self,
        source: AudioSource,
        *,
        transport: PlaybackTransport,
        reducer: WaveformReducer,
        cache: WaveformCache,
        arbiter: PlaybackArbiter,
        logger,
        executor: Executor | None = None,
        bar_width: float = DEFAULT_BAR_WIDTH,
        bar_spacing: float = DEFAULT_BAR_SPACING,
        min_amplitude: float = DEFAULT_MIN_AMPLITUDE,
        max_amplitude: float = DEFAULT_MAX_AMPLITUDE,
        debounce_seconds: float = RESIZE_DEBOUNCE_MS / 1000.0,
        auto_stop_tolerance_ms: int = AUTO_STOP_TOLERANCE_MS,
        autoplay: bool = False,
        timer_factory: Callable[..., object] | None = None,
        on_play_pause: Callable[[bool], None] | None = None,
        on_position_changed: Callable[[int], None] | None = None,
        on_completed: Callable[[], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ) -> None:
        if not float(min_amplitude) < float(max_amplitude):
            raise ValueError("min_amplitude must be below max_amplitude")
        self.source = source
        self.transport = transport
        self.reducer = reducer
        self.cache = cache
        self.arbiter = arbiter
        self.logger = logger
        self.bar_width = float(bar_width)
        self.bar_spacing = float(bar_spacing)
        self.min_amplitude = float(min_amplitude)
        self.max_amplitude = float(max_amplitude)
        self.autoplay = bool(autoplay)
        self.on_play_pause = on_play_pause
        self.on_position_changed = on_position_changed
        self.on_completed = on_completed
        self.on_error = on_error
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=2,
            thread_name_prefix="waveform-player",
        )
        self._lock = threading.RLock()
        self._subscribers: list[Observer] = []
        self._events = EventQueue(logger, failure_message="Player observer failed")
        self._samples: WaveformSamples | None = None
        self._waveform_error: str | None = None
        self._bar_count = 0
        self._requested_bar_count: int | None = None
        self._last_snapshot: PlayerSnapshot | None = None
        self._opened = False
        self._closed = False
        self._machine = PlaybackStateMachine(
            transport,
            arbiter,
            logger,
            auto_stop_tolerance_ms=auto_stop_tolerance_ms,
            name=source.display_name,
        )
        self._machine.add_listener(self._on_playback_change)
        self._debouncer = Debouncer(
            debounce_seconds,
            self._load_waveform,
            logger=logger,
            timer_factory=timer_factory,
            name="waveform-resize",
        )
        transport.set_listeners(
            on_position=self._machine.on_position,
            on_duration=self._machine.on_duration,
            on_completed=self._machine.on_completed,
            on_error=self._machine.on_error,
        )

    # Lifecycle

    def open(self) -> "WaveformPlayer":
        with self._lock:
            if self._closed:
                raise RuntimeError("Player session is closed.")
            if self._opened:
                return self
            self._opened = True
        self.logger.info("Opening audio source: %s", self.source.identity)
        if self._machine.begin_loading():
            self._submit(self._open_transport)
        return self

    def retry(self) -> bool:
        """Reopen the source after an error or completion, and refetch a
        waveform that failed to decode."""
        with self._lock:
            if self._closed or not self._opened:
                return False
            waveform_failed = self._waveform_error is not None
            if waveform_failed:
                self._waveform_error = None
                self._emit_locked()
            requested = self._requested_bar_count
            refetch = requested is not None and self._samples is None
        self._events.drain()
        reopened = self._machine.begin_loading()
        if reopened:
            self._submit(self._open_transport)
        if refetch and (reopened or waveform_failed):
            self._debouncer.submit(requested)
        return reopened or (waveform_failed and refetch)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._subscribers.clear()
            self._events.clear()
        self._debouncer.close()
        self._machine.close()
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
        self.logger.debug("Player closed: %s", self.source.identity)

    def __enter__(self) -> "WaveformPlayer":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def _submit(self, fn, *args) -> bool:
        try:
            self._executor.submit(fn, *args)
        except RuntimeError:
            self.logger.warning("Player executor is shut down; dropping %s", fn)
            return False
        return True

    def _open_transport(self) -> None:
        try:
            duration_ms = self.transport.open(self.source)
        except Exception as exc:
            self.logger.exception("Failed to open audio source: %s", self.source.identity)
            error = exc if isinstance(exc, WaveformPlayerError) else SourceOpenError(str(exc))
            self._machine.on_error(error)
            return
        self._machine.on_loaded(duration_ms)
        self.logger.info(
            "Audio source ready: %s (%s)",
            self.source.identity,
            format_timestamp(duration_ms),
        )
        if self.autoplay:
            self.play()

    # Playback intents

    def play(self) -> bool:
        return self._machine.play()

    def pause(self) -> bool:
        return self._machine.pause()

    def toggle_play_pause(self) -> bool:
        return self._machine.toggle()

    def seek(self, position_ms: int) -> bool:
        return self._machine.seek_to(position_ms)

    def seek_start(self, position_ms: int | None = None) -> bool:
        return self._machine.seek_start(position_ms)

    def seek_update(self, position_ms: int) -> bool:
        return self._machine.seek_update(position_ms)

    def seek_end(self, position_ms: int | None = None) -> bool:
        return self._machine.seek_end(position_ms)

    # Layout and waveform

    def bar_count_for_width(self, available_width: float) -> int:
        return bar_count_for_width(
            available_width,
            bar_width=self.bar_width,
            bar_spacing=self.bar_spacing,
        )

    def on_width_changed(self, available_width: float) -> int:
        bar_count = self.bar_count_for_width(available_width)
        if bar_count < 1:
            self.logger.debug("Ignoring width %s: no bars fit", available_width)
            return 0
        self.on_layout_width_changed(bar_count)
        return bar_count

    def on_layout_width_changed(self, bar_count: int) -> None:
        bar_count = validate_bar_count(bar_count)
        with self._lock:
            if self._closed:
                return
            self._requested_bar_count = bar_count
        self._debouncer.submit(bar_count)

    def visible_bars(self, available_width: float) -> list[float]:
        samples = self._samples
        if samples is None:
            return []
        return samples.visible(self.bar_count_for_width(available_width))

    def _load_waveform(self, bar_count: int) -> None:
        with self._lock:
            if self._closed:
                return
            if self._machine.state.has_error:
                self.logger.debug("Skipping waveform while playback is errored")
                return
            if bar_count == self._bar_count and self._samples is not None:
                return
            key = WaveformKey.for_source(self.source, bar_count)
            cached = self.cache.peek(key)
            if cached is not None:
                self._apply_samples_locked(bar_count, cached)
        if cached is not None:
            self._events.drain()
            return
        self._submit(self._compute_waveform, key)

    def _compute_waveform(self, key: WaveformKey) -> None:
        if self._closed:
            return
        try:
            samples = self.cache.get_or_compute(
                key,
                lambda: self.reducer.reduce(
                    self.source,
                    key.bar_count,
                    self.min_amplitude,
                    self.max_amplitude,
                ),
            )
        except DecodeError as exc:
            self.logger.warning("Waveform unavailable for %s: %s", self.source.identity, exc)
            self._set_waveform_error(key.bar_count, str(exc) or "Waveform unavailable")
            return
        except Exception as exc:
            self.logger.exception("Waveform computation failed: %s", self.source.identity)
            self._set_waveform_error(key.bar_count, str(exc) or exc.__class__.__name__)
            return
        with self._lock:
            self._apply_samples_locked(key.bar_count, samples)
        self._events.drain()

    def _apply_samples_locked(self, bar_count: int, samples: WaveformSamples) -> None:
        if self._closed or bar_count != self._requested_bar_count:
            return
        self._samples = samples
        self._bar_count = bar_count
        self._waveform_error = None
        self._emit_locked()

    def _set_waveform_error(self, bar_count: int, message: str) -> None:
        with self._lock:
            if self._closed or bar_count != self._requested_bar_count:
                return
            self._waveform_error = message
            self._emit_locked()
        self._events.drain()

    # Observation

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(observer)

        def unsubscribe() -> None:
            with self._lock:
                if observer in self._subscribers:
                    self._subscribers.remove(observer)

        return unsubscribe

    def snapshot(self) -> PlayerSnapshot:
        with self._lock:
            return self._build_snapshot(self._machine.state)

    def _build_snapshot(self, state: PlaybackState) -> PlayerSnapshot:
        return PlayerSnapshot(
            status=state.status,
            position_ms=state.position_ms,
            duration_ms=state.duration_ms,
            samples=self._samples,
            error=state.error,
            waveform_error=self._waveform_error,
            bar_count=self._bar_count,
        )

    def _emit_locked(self, state: PlaybackState | None = None) -> None:
        snapshot = self._build_snapshot(state or self._machine.state)
        if snapshot == self._last_snapshot:
            return
        self._last_snapshot = snapshot
        for observer in self._subscribers:
            self._events.post(observer, snapshot)

    def _call_hook(self, hook, *args) -> None:
        if hook is None:
            return
        try:
            hook(*args)
        except Exception:
            self.logger.exception("Player callback failed")

    def _on_playback_change(self, previous: PlaybackState, current: PlaybackState) -> None:
        if previous.is_playing != current.is_playing:
            self._call_hook(self.on_play_pause, current.is_playing)
        if current.is_playing and current.position_ms != previous.position_ms:
            self._call_hook(self.on_position_changed, current.position_ms)
        if (
            current.status is PlaybackStatus.COMPLETED
            and previous.status is not PlaybackStatus.COMPLETED
        ):
            self._call_hook(self.on_completed)
        if current.status is PlaybackStatus.ERRORED and (
            previous.status is not PlaybackStatus.ERRORED or previous.error != current.error
        ):
            self.logger.warning("Playback error for %s: %s", self.source.identity, current.error)
            self._call_hook(self.on_error, current.error or "")
        with self._lock:
            if self._closed:
                return
            self._emit_locked(current)
        self._events.drain()

    # Read-only surface

    @property
    def state(self) -> PlaybackState:
        return self._machine.state

    @property
    def status(self) -> PlaybackStatus:
        return self._machine.state.status

    @property
    def is_playing(self) -> bool:
        return self._machine.state.is_playing

    @property
    def is_loading(self) -> bool:
        return self._machine.state.is_loading

    @property
    def has_error(self) -> bool:
        return self._machine.state.has_error

    @property
    def error_message(self) -> str | None:
        return self._machine.state.error

    @property
    def position(self) -> int:
        return self._machine.state.position_ms

    @property
    def duration(self) -> int | None:
        return self._machine.state.duration_ms

    @property
    def samples(self) -> WaveformSamples | None:
        return self._samples

    @property
    def waveform_error(self) -> str | None:
        return self._waveform_error

    @property
    def bar_count(self) -> int:
        return self._bar_count
