"""Waveform reduction: raw audio to a fixed number of amplitude bars."""

from __future__ import annotations

import numpy as np

from ..errors import DecodeError
from .source import AudioSource, WaveformSamples, validate_bar_count


def _validate_range(min_amplitude: float, max_amplitude: float) -> tuple[float, float]:
    low = float(min_amplitude)
    high = float(max_amplitude)
    if not low < high:
        raise ValueError(
            f"min_amplitude must be below max_amplitude, got {low} and {high}"
        )
    return low, high


def to_mono_envelope(audio) -> np.ndarray:
    """Collapse frames to a 1-D absolute amplitude stream."""
    mono = np.asarray(audio, dtype=np.float32)
    if mono.ndim == 2:
        mono = mono.mean(axis=1)
    elif mono.ndim not in (0, 1):
        raise DecodeError(f"Unsupported audio shape: {mono.shape}")
    mono = np.nan_to_num(np.abs(mono).reshape(-1), nan=0.0, posinf=0.0, neginf=0.0)
    return mono.astype(np.float32, copy=False)


def window_peaks(envelope: np.ndarray, target_bars: int) -> np.ndarray:
    """Peak per contiguous window; the final window takes the remainder."""
    size = int(envelope.size)
    if target_bars >= size:
        return envelope.copy()
    window = size // target_bars
    head_bars = target_bars - 1
    head = envelope[: head_bars * window].reshape(head_bars, window).max(axis=1)
    tail = envelope[head_bars * window :].max()
    return np.append(head, tail).astype(np.float32, copy=False)


def downsample_peaks(
    raw,
    target_bars: int,
    min_amplitude: float,
    max_amplitude: float,
) -> np.ndarray:
    """Reduce raw audio frames to exactly target_bars values in [min, max]."""
    target_bars = validate_bar_count(target_bars)
    low, high = _validate_range(min_amplitude, max_amplitude)
    envelope = to_mono_envelope(raw)
    if envelope.size == 0:
        raise DecodeError("Audio stream is empty.")
    peaks = window_peaks(envelope, target_bars)
    peak = float(np.max(peaks)) if peaks.size else 0.0
    if peak > 1e-8:
        normalized = peaks / peak
    else:
        normalized = np.zeros_like(peaks)
    scaled = low + normalized * (high - low)
    if scaled.size < target_bars:
        scaled = np.pad(
            scaled,
            (0, target_bars - scaled.size),
            mode="constant",
            constant_values=low,
        )
    return np.clip(scaled, low, high).astype(np.float32, copy=False)


class WaveformReducer:
    """Decodes a source and reduces it to bar amplitudes. Holds no cache."""

    def __init__(self, sample_reader, logger) -> None:
        self.sample_reader = sample_reader
        self.logger = logger

    def reduce(
        self,
        source: AudioSource,
        target_bars: int,
        min_amplitude: float,
        max_amplitude: float,
    ) -> WaveformSamples:
        target_bars = validate_bar_count(target_bars)
        _validate_range(min_amplitude, max_amplitude)
        frames, sample_rate = self.sample_reader.read(source)
        values = downsample_peaks(frames, target_bars, min_amplitude, max_amplitude)
        self.logger.debug(
            "Waveform reduced: source=%s bars=%s frames=%s sample_rate=%s",
            source.identity,
            target_bars,
            int(np.asarray(frames).shape[0]) if np.asarray(frames).ndim else 0,
            sample_rate,
        )
        return WaveformSamples(
            values,
            min_amplitude=float(min_amplitude),
            max_amplitude=float(max_amplitude),
            source_identity=source.identity,
        )
