"""Storage layer."""

from .waveform_cache import CacheStats, WaveformCache

__all__ = ["CacheStats", "WaveformCache"]
