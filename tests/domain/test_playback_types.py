import pytest

from waveform_player.domain.layout import bar_count_for_width
from waveform_player.domain.playback import (
    PlaybackState,
    PlaybackStatus,
    format_timestamp,
    reached_end,
)


def test_default_state_is_idle_at_zero():
    state = PlaybackState()
    assert state.status is PlaybackStatus.IDLE
    assert state.position_ms == 0
    assert state.duration_ms is None
    assert state.progress == 0.0
    assert not state.is_playing and not state.is_loading and not state.has_error


def test_clamp_position_respects_known_duration():
    state = PlaybackState(status=PlaybackStatus.PAUSED, duration_ms=10_000)
    assert state.clamp_position(-50) == 0
    assert state.clamp_position(4_000) == 4_000
    assert state.clamp_position(12_000) == 10_000
    assert PlaybackState().clamp_position(12_000) == 12_000


def test_progress_is_fraction_of_duration():
    state = PlaybackState(status=PlaybackStatus.PLAYING, position_ms=2_500, duration_ms=10_000)
    assert state.progress == pytest.approx(0.25)
    assert state.evolve(position_ms=20_000).progress == 1.0


def test_evolve_returns_new_state():
    state = PlaybackState(status=PlaybackStatus.PAUSED)
    moved = state.evolve(position_ms=10)
    assert state.position_ms == 0
    assert moved.position_ms == 10
    assert moved.status is PlaybackStatus.PAUSED


@pytest.mark.parametrize(
    "position, duration, expected",
    [
        (9_920, 10_000, True),
        (9_900, 10_000, True),
        (9_899, 10_000, False),
        (15_000, None, False),
        (0, 0, False),
    ],
)
def test_reached_end_uses_tolerance(position, duration, expected):
    assert reached_end(position, duration, 100) is expected


@pytest.mark.parametrize(
    "milliseconds, expected",
    [
        (0, "00:00"),
        (None, "00:00"),
        (65_400, "01:05"),
        (599_999, "09:59"),
        (3_725_000, "02:05"),
        (-10, "00:00"),
    ],
)
def test_format_timestamp(milliseconds, expected):
    assert format_timestamp(milliseconds) == expected


def test_bar_count_for_width_uses_bar_stride():
    # stride 5px: 300px + 1px trailing spacing fits 60 bars.
    assert bar_count_for_width(300, bar_width=4, bar_spacing=1) == 60
    assert bar_count_for_width(301, bar_width=4, bar_spacing=1) == 60
    assert bar_count_for_width(304, bar_width=4, bar_spacing=1) == 61
    assert bar_count_for_width(3, bar_width=4, bar_spacing=1) == 0
    assert bar_count_for_width(0) == 0
    assert bar_count_for_width(float("nan")) == 0
    with pytest.raises(ValueError):
        bar_count_for_width(100, bar_width=0, bar_spacing=0)
