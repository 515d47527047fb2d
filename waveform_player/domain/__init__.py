"""Pure domain types and algorithms."""

from .layout import bar_count_for_width
from .playback import PlaybackState, PlaybackStatus, format_timestamp, reached_end
from .source import AudioSource, WaveformKey, WaveformSamples, validate_bar_count
from .waveform import WaveformReducer, downsample_peaks

__all__ = [
    "AudioSource",
    "PlaybackState",
    "PlaybackStatus",
    "WaveformKey",
    "WaveformReducer",
    "WaveformSamples",
    "bar_count_for_width",
    "downsample_peaks",
    "format_timestamp",
    "reached_end",
    "validate_bar_count",
]
