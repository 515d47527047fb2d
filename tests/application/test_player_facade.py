import threading
from concurrent.futures import Future

import pytest

from waveform_player.application.arbitration import PlaybackArbiter
from waveform_player.application.player import PlayerSnapshot, WaveformPlayer
from waveform_player.domain.playback import PlaybackStatus
from waveform_player.domain.source import AudioSource, WaveformSamples
from waveform_player.errors import DecodeError, InvalidBarCount, SourceOpenError
from waveform_player.storage.waveform_cache import WaveformCache


class _Logger:
    def __init__(self):
        self.messages = []

    def _log(self, level, message, *args):
        self.messages.append((level, message % args if args else message))

    def debug(self, message, *args):
        self._log("debug", message, *args)

    def info(self, message, *args):
        self._log("info", message, *args)

    def warning(self, message, *args):
        self._log("warning", message, *args)

    def exception(self, message, *args):
        self._log("exception", message, *args)


class _InlineExecutor:
    def submit(self, fn, *args):
        future = Future()
        future.set_result(fn(*args))
        return future


class _QueuedExecutor:
    def __init__(self):
        self.jobs = []

    def submit(self, fn, *args):
        self.jobs.append((fn, args))
        return Future()

    def run_all(self):
        while self.jobs:
            fn, args = self.jobs.pop(0)
            fn(*args)


class _Timer:
    def __init__(self, delay, function, args=()):
        self.function = function
        self.args = args
        self.daemon = False
        self.name = ""
        self.cancelled = False

    def start(self):
        pass

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function(*self.args)


class _Timers:
    def __init__(self):
        self.created = []

    def __call__(self, delay, function, args=()):
        timer = _Timer(delay, function, args=args)
        self.created.append(timer)
        return timer

    def fire_latest(self):
        self.created[-1].fire()


class _Transport:
    def __init__(self, duration_ms=200_000, open_error=None):
        self.duration_ms = duration_ms
        self.open_error = open_error
        self.calls = []
        self.listeners = {}
        self.released = 0

    def set_listeners(self, **listeners):
        self.listeners = listeners

    def open(self, source):
        self.calls.append(("open", source.identity))
        if self.open_error is not None:
            raise self.open_error
        return self.duration_ms

    def play(self):
        self.calls.append(("play",))

    def pause(self):
        self.calls.append(("pause",))

    def seek(self, position_ms):
        self.calls.append(("seek", position_ms))

    def release(self):
        self.released += 1


class _Reducer:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def reduce(self, source, target_bars, min_amplitude, max_amplitude):
        self.calls.append((source.identity, target_bars))
        if self.error is not None:
            raise self.error
        values = [min_amplitude + (index % 5) for index in range(target_bars)]
        return WaveformSamples(values, min_amplitude, max_amplitude, source.identity)


def _player(
    transport=None,
    reducer=None,
    cache=None,
    arbiter=None,
    executor=None,
    timers=None,
    source=None,
    **kwargs,
):
    return WaveformPlayer(
        source or AudioSource("https://example.com/clip.mp3"),
        transport=transport or _Transport(),
        reducer=reducer or _Reducer(),
        cache=cache if cache is not None else WaveformCache(),
        arbiter=arbiter or PlaybackArbiter(),
        logger=_Logger(),
        executor=executor or _InlineExecutor(),
        timer_factory=timers or _Timers(),
        **kwargs,
    )


def test_open_loads_source_and_reports_duration():
    transport = _Transport(duration_ms=200_000)
    player = _player(transport=transport)
    assert player.status is PlaybackStatus.IDLE

    player.open()

    assert player.status is PlaybackStatus.PAUSED
    assert player.duration == 200_000
    assert player.position == 0
    assert transport.calls == [("open", "url:https://example.com/clip.mp3")]
    assert player.open() is player
    assert len(transport.calls) == 1


def test_burst_of_widths_reduces_once_with_final_bar_count():
    reducer = _Reducer()
    timers = _Timers()
    player = _player(reducer=reducer, timers=timers)
    player.open()
    assert player.play()

    for width in (300, 301, 300, 301, 300, 301):
        assert player.on_width_changed(width) == 60
    timers.fire_latest()

    assert reducer.calls == [("url:https://example.com/clip.mp3", 60)]
    assert player.bar_count == 60
    assert len(player.samples) == 60
    assert player.status is PlaybackStatus.PLAYING


def test_cached_waveform_is_shared_between_sessions():
    reducer = _Reducer()
    cache = WaveformCache()
    arbiter = PlaybackArbiter()
    first_timers = _Timers()
    second_timers = _Timers()
    first = _player(reducer=reducer, cache=cache, arbiter=arbiter, timers=first_timers)
    second = _player(reducer=reducer, cache=cache, arbiter=arbiter, timers=second_timers)

    first.on_layout_width_changed(40)
    first_timers.fire_latest()
    second.on_layout_width_changed(40)
    second_timers.fire_latest()

    assert len(reducer.calls) == 1
    assert second.samples is first.samples


def test_same_bar_count_does_not_reload():
    reducer = _Reducer()
    timers = _Timers()
    player = _player(reducer=reducer, timers=timers)
    player.on_layout_width_changed(10)
    timers.fire_latest()
    player.on_layout_width_changed(10)
    timers.fire_latest()
    assert len(reducer.calls) == 1


def test_stale_waveform_results_are_dropped():
    executor = _QueuedExecutor()
    timers = _Timers()
    player = _player(executor=executor, timers=timers)
    player.on_layout_width_changed(60)
    timers.fire_latest()
    player.on_layout_width_changed(80)
    timers.fire_latest()

    executor.run_all()

    assert player.bar_count == 80
    assert len(player.samples) == 80


def test_decode_error_sets_waveform_error_without_touching_playback():
    timers = _Timers()
    player = _player(reducer=_Reducer(error=DecodeError("unsupported codec")), timers=timers)
    player.open()
    snapshots = []
    player.subscribe(snapshots.append)

    player.on_layout_width_changed(30)
    timers.fire_latest()

    assert player.status is PlaybackStatus.PAUSED
    assert player.samples is None
    assert player.waveform_error == "unsupported codec"
    assert snapshots[-1].waveform_error == "unsupported codec"
    assert snapshots[-1].status is PlaybackStatus.PAUSED
    assert player.play()


def test_open_failure_errors_session_and_retry_recovers():
    errors = []
    transport = _Transport(open_error=SourceOpenError("404 not found"))
    player = _player(transport=transport, on_error=errors.append)

    player.open()

    assert player.has_error
    assert player.error_message == "404 not found"
    assert errors == ["404 not found"]
    assert player.play() is False

    transport.open_error = None
    assert player.retry()
    assert player.status is PlaybackStatus.PAUSED
    assert player.error_message is None


def test_unexpected_open_failure_is_wrapped():
    player = _player(transport=_Transport(open_error=OSError("disk gone")))
    player.open()
    assert player.has_error
    assert "disk gone" in player.error_message


def test_callbacks_follow_playback():
    toggles = []
    positions = []
    completions = []
    transport = _Transport(duration_ms=10_000)
    player = _player(
        transport=transport,
        on_play_pause=toggles.append,
        on_position_changed=positions.append,
        on_completed=lambda: completions.append(True),
    )
    player.open()

    player.toggle_play_pause()
    transport.listeners["on_position"](4_000)
    transport.listeners["on_position"](9_950)

    assert toggles == [True, False]
    assert positions == [4_000]
    assert completions == [True]
    assert player.status is PlaybackStatus.COMPLETED
    assert player.position == 0


def test_autoplay_starts_playback_once_loaded():
    player = _player(autoplay=True)
    player.open()
    assert player.is_playing


def test_starting_one_player_pauses_the_other():
    arbiter = PlaybackArbiter()
    first = _player(arbiter=arbiter)
    second = _player(arbiter=arbiter, source=AudioSource("https://example.com/other.mp3"))
    first.open()
    second.open()

    first.play()
    second.play()

    assert first.status is PlaybackStatus.PAUSED
    assert second.status is PlaybackStatus.PLAYING


def test_seek_gesture_through_facade():
    transport = _Transport(duration_ms=60_000)
    player = _player(transport=transport)
    player.open()
    player.play()

    assert player.seek_start(1_000)
    assert player.position == 1_000
    assert player.seek_update(2_000)
    assert player.seek_end(5_000)
    assert player.status is PlaybackStatus.PLAYING
    assert player.position == 5_000
    assert player.seek(7_500)
    assert player.position == 7_500


def test_observers_receive_deduplicated_snapshots():
    player = _player()
    snapshots = []
    unsubscribe = player.subscribe(snapshots.append)

    player.open()
    player.play()
    player.play()
    unsubscribe()
    player.pause()

    statuses = [snapshot.status for snapshot in snapshots]
    assert statuses == [PlaybackStatus.LOADING, PlaybackStatus.PAUSED, PlaybackStatus.PLAYING]
    assert snapshots[-1].changed_fields(snapshots[-2]) == frozenset({"status"})
    assert player.snapshot().status is PlaybackStatus.PAUSED


def test_observer_errors_are_logged():
    player = _player()

    def broken(_snapshot):
        raise RuntimeError("renderer crashed")

    player.subscribe(broken)
    player.open()
    assert player.status is PlaybackStatus.PAUSED
    assert ("exception", "Player observer failed") in player.logger.messages


def test_snapshot_display_time_and_progress():
    loading = PlayerSnapshot(PlaybackStatus.LOADING, 0, None, None, None, None, 0)
    parked = PlayerSnapshot(PlaybackStatus.PAUSED, 0, 200_000, None, None, None, 0)
    playing = PlayerSnapshot(PlaybackStatus.PLAYING, 65_000, 200_000, None, None, None, 0)

    assert loading.display_time == "00:00"
    assert parked.display_time == "03:20"
    assert playing.display_time == "01:05"
    assert playing.progress == pytest.approx(0.325)
    assert loading.changed_fields(None) == frozenset(
        {"status", "position_ms", "duration_ms", "samples", "error", "waveform_error", "bar_count"}
    )


def test_width_helpers_and_invalid_bar_count():
    timers = _Timers()
    player = _player(timers=timers)
    assert player.on_width_changed(2) == 0
    assert timers.created == []
    with pytest.raises(InvalidBarCount):
        player.on_layout_width_changed(0)
    assert player.visible_bars(300) == []

    player.on_layout_width_changed(60)
    timers.fire_latest()
    assert len(player.visible_bars(100)) == 20
    assert len(player.visible_bars(1_000)) == 60


def test_close_releases_resources_and_stops_notifications():
    transport = _Transport()
    timers = _Timers()
    player = _player(transport=transport, timers=timers)
    snapshots = []
    player.subscribe(snapshots.append)
    player.open()
    player.play()
    player.on_layout_width_changed(25)
    count = len(snapshots)

    player.close()
    player.close()
    timers.fire_latest()
    transport.listeners["on_position"](1_000)

    assert player.closed
    assert transport.released == 1
    assert len(snapshots) == count
    assert player.samples is None
    with pytest.raises(RuntimeError):
        player.open()


def test_context_manager_opens_and_closes():
    transport = _Transport()
    with _player(transport=transport) as player:
        assert player.status is PlaybackStatus.PAUSED
    assert player.closed
    assert transport.released == 1


def test_amplitude_range_is_validated():
    with pytest.raises(ValueError):
        _player(min_amplitude=5.0, max_amplitude=5.0)


def test_observer_intent_during_decoder_update_does_not_deadlock():
    timers = _Timers()
    transport = _Transport(duration_ms=200_000)
    player = _player(transport=transport, timers=timers)
    player.open()
    player.play()
    in_observer = threading.Event()
    position_delivered = threading.Event()
    pause_results = []

    def pause_on_first_waveform(snapshot):
        if snapshot.samples is None or pause_results:
            return
        in_observer.set()
        # Hold the observer open until the decoder update has gone through.
        position_delivered.wait(timeout=2)
        pause_results.append(player.pause())

    player.subscribe(pause_on_first_waveform)

    def load_waveform():
        player.on_layout_width_changed(10)
        timers.fire_latest()

    def feed_position():
        assert in_observer.wait(timeout=2)
        transport.listeners["on_position"](1_000)
        position_delivered.set()

    layout_thread = threading.Thread(target=load_waveform)
    decoder_thread = threading.Thread(target=feed_position)
    decoder_thread.start()
    layout_thread.start()
    layout_thread.join(timeout=5)
    decoder_thread.join(timeout=5)

    assert not layout_thread.is_alive()
    assert not decoder_thread.is_alive()
    assert position_delivered.is_set()
    assert pause_results == [True]
    assert player.status is PlaybackStatus.PAUSED
    assert player.position == 1_000
    assert player.snapshot().status is PlaybackStatus.PAUSED


def test_observer_can_issue_intents_from_callback():
    player = _player()
    seen = []

    def pause_when_playing(snapshot):
        seen.append(snapshot.status)
        if snapshot.is_playing:
            player.pause()

    player.subscribe(pause_when_playing)
    player.open()
    player.play()

    assert seen == [
        PlaybackStatus.LOADING,
        PlaybackStatus.PAUSED,
        PlaybackStatus.PLAYING,
        PlaybackStatus.PAUSED,
    ]
    assert player.status is PlaybackStatus.PAUSED


def test_retry_clears_waveform_error_for_observers_and_refetches():
    reducer = _Reducer(error=DecodeError("truncated stream"))
    timers = _Timers()
    player = _player(reducer=reducer, timers=timers)
    player.open()
    player.on_layout_width_changed(12)
    timers.fire_latest()
    snapshots = []
    player.subscribe(snapshots.append)
    assert player.waveform_error == "truncated stream"

    reducer.error = None
    assert player.retry()

    assert snapshots[0].waveform_error is None
    assert snapshots[0].status is PlaybackStatus.PAUSED
    timers.fire_latest()
    assert player.waveform_error is None
    assert len(player.samples) == 12
    assert len(reducer.calls) == 2
