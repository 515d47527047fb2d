"""Waveform reduction and playback-state core for audio player widgets."""

from .application import (
    PlaybackArbiter,
    PlayerSnapshot,
    WaveformPlayer,
    WaveformPlayerController,
    create_player,
    initialize_player_services,
)
from .domain import AudioSource, PlaybackState, PlaybackStatus, WaveformKey, WaveformSamples
from .errors import DecodeError, InvalidBarCount, SourceOpenError, TransportError

__version__ = "0.1.0"

__all__ = [
    "AudioSource",
    "DecodeError",
    "InvalidBarCount",
    "PlaybackArbiter",
    "PlaybackState",
    "PlaybackStatus",
    "PlayerSnapshot",
    "SourceOpenError",
    "TransportError",
    "WaveformKey",
    "WaveformPlayer",
    "WaveformPlayerController",
    "WaveformSamples",
    "create_player",
    "initialize_player_services",
]
