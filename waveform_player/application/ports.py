"""Application-level ports for decoding and playback collaborators."""

from __future__ import annotations

from typing import Callable, Protocol

import numpy as np

from ..domain.source import AudioSource


class PlaybackTransport(Protocol):
    """Decoder/transport for one source: open, commands, and event listeners."""

    def set_listeners(
        self,
        *,
        on_position: Callable[[int], None] | None = None,
        on_duration: Callable[[int], None] | None = None,
        on_completed: Callable[[], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None: ...

    def open(self, source: AudioSource) -> int | None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def seek(self, position_ms: int) -> None: ...

    def release(self) -> None: ...


class SampleReader(Protocol):
    """Decodes a source into PCM frames and its sample rate."""

    def read(self, source: AudioSource) -> tuple[np.ndarray, int]: ...


class PreemptibleSession(Protocol):
    def preempt(self) -> None: ...
