"""Playback status and immutable playback state snapshots."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from ..constants import AUTO_STOP_TOLERANCE_MS


class PlaybackStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    SEEKING = "seeking"
    COMPLETED = "completed"
    ERRORED = "errored"


@dataclass(frozen=True)
class PlaybackState:
    status: PlaybackStatus = PlaybackStatus.IDLE
    position_ms: int = 0
    duration_ms: int | None = None
    error: str | None = None
    resume_after_seek: bool = False

    def evolve(self, **changes) -> "PlaybackState":
        return replace(self, **changes)

    def clamp_position(self, position_ms: int) -> int:
        position = max(0, int(position_ms))
        if self.duration_ms is not None and self.duration_ms > 0:
            position = min(self.duration_ms, position)
        return position

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
        if not self.duration_ms or self.duration_ms <= 0:
            return 0.0
        return max(0.0, min(1.0, float(self.position_ms) / float(self.duration_ms)))


def reached_end(
    position_ms: int,
    duration_ms: int | None,
    tolerance_ms: int = AUTO_STOP_TOLERANCE_MS,
) -> bool:
    if duration_ms is None or duration_ms <= 0:
        return False
    return int(position_ms) >= int(duration_ms) - int(tolerance_ms)


def format_timestamp(milliseconds: int | None) -> str:
    total = max(0, int(milliseconds or 0)) // 1000
    minutes, secs = divmod(total, 60)
    return f"{minutes % 60:02d}:{secs:02d}"
