"""Error types raised by the waveform player core."""

from __future__ import annotations


class WaveformPlayerError(RuntimeError):
    """Base class for recoverable player failures."""


class SourceOpenError(WaveformPlayerError):
    """Raised when a source cannot be opened (bad URL/path, unsupported format)."""


class DecodeError(WaveformPlayerError):
    """Raised when waveform samples cannot be extracted from a source."""


class TransportError(WaveformPlayerError):
    """Raised when the playback transport fails during I/O."""


class InvalidBarCount(ValueError):
    """Raised for a non-positive or non-integer target bar count."""
