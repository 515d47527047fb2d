"""Audio source identity and waveform value types."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

import numpy as np

from ..constants import REMOTE_SCHEMES
from ..errors import InvalidBarCount


@dataclass(frozen=True)
class AudioSource:
    """A remote/local location or a bundled asset path."""

    location: str
    is_asset: bool = False

    def __post_init__(self) -> None:
        if not str(self.location or "").strip():
            raise ValueError("Audio source location is empty.")

    @classmethod
    def from_options(
        cls, *, audio_url: str | None = None, asset_path: str | None = None
    ) -> "AudioSource":
        if (audio_url is None) == (asset_path is None):
            raise ValueError(
                "Provide either audio_url or asset_path, but not both. "
                "Use audio_url for remote URLs or asset_path for bundled assets."
            )
        if asset_path is not None:
            return cls(asset_path, is_asset=True)
        return cls(str(audio_url), is_asset=False)

    @property
    def identity(self) -> str:
        kind = "asset" if self.is_asset else "url"
        return f"{kind}:{self.location}"

    @property
    def is_remote(self) -> bool:
        if self.is_asset:
            return False
        return urlparse(self.location).scheme.lower() in REMOTE_SCHEMES

    @property
    def display_name(self) -> str:
        path = urlparse(self.location).path if self.is_remote else self.location
        return os.path.basename(path.rstrip("/")) or self.location

    def resolve(self, asset_dir: str | None = None) -> str:
        """Return the concrete path or URL to open."""
        if self.is_asset:
            if asset_dir and not os.path.isabs(self.location):
                return os.path.join(asset_dir, self.location)
            return self.location
        parsed = urlparse(self.location)
        if parsed.scheme.lower() == "file":
            return parsed.path
        return self.location


def validate_bar_count(bar_count) -> int:
    if isinstance(bar_count, bool) or not isinstance(bar_count, (int, np.integer)):
        raise InvalidBarCount(f"Bar count must be an integer, got {bar_count!r}")
    if int(bar_count) < 1:
        raise InvalidBarCount(f"Bar count must be >= 1, got {bar_count}")
    return int(bar_count)


@dataclass(frozen=True)
class WaveformKey:
    source_identity: str
    bar_count: int

    @classmethod
    def for_source(cls, source: AudioSource, bar_count: int) -> "WaveformKey":
        return cls(source.identity, validate_bar_count(bar_count))


@dataclass(frozen=True, eq=False)
class WaveformSamples:
    """Bar amplitudes scaled into [min_amplitude, max_amplitude]."""

    values: np.ndarray
    min_amplitude: float
    max_amplitude: float
    source_identity: str = ""
    bars: int = field(init=False)

    def __post_init__(self) -> None:
        values = np.array(self.values, dtype=np.float32, copy=True).reshape(-1)
        values.setflags(write=False)
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "bars", int(values.size))

    def __len__(self) -> int:
        return self.bars

    def __iter__(self):
        return iter(self.to_list())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WaveformSamples):
            return NotImplemented
        return (
            self.source_identity == other.source_identity
            and self.min_amplitude == other.min_amplitude
            and self.max_amplitude == other.max_amplitude
            and np.array_equal(self.values, other.values)
        )

    def __hash__(self) -> int:
        return hash((self.source_identity, self.bars, self.values.tobytes()))

    def to_list(self) -> list[float]:
        return [float(value) for value in self.values]

    def visible(self, max_bars: int) -> list[float]:
        """Return the leading bars that fit into max_bars slots."""
        count = max(0, min(self.bars, int(max_bars)))
        return [float(value) for value in self.values[:count]]
