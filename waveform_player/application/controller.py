"""Programmatic controller for a player session."""

from __future__ import annotations

import logging

from .player import WaveformPlayer

_logger = logging.getLogger("waveform_player")


class WaveformPlayerController:
    """Drives a player from code; safe to use before attach and after detach."""

    def __init__(self, logger=None) -> None:
        self.logger = logger or _logger
        self._player: WaveformPlayer | None = None

    def attach(self, player: WaveformPlayer) -> None:
        if self._player is not None and self._player is not player:
            self.logger.warning("Controller re-attached to a different player")
        self._player = player

    def detach(self, player: WaveformPlayer | None = None) -> None:
        if player is not None and self._player is not player:
            return
        self._player = None

    @property
    def is_attached(self) -> bool:
        return self._player is not None and not self._player.closed

    def _target(self, action: str) -> WaveformPlayer | None:
        player = self._player
        if player is None or player.closed:
            self.logger.warning("Controller %s ignored: no player attached", action)
            return None
        return player

    def play(self) -> bool:
        player = self._target("play")
        return player.play() if player is not None else False

    def pause(self) -> bool:
        player = self._target("pause")
        return player.pause() if player is not None else False

    def toggle_play_pause(self) -> bool:
        player = self._target("toggle")
        return player.toggle_play_pause() if player is not None else False

    def seek_to(self, position_ms: int) -> bool:
        player = self._target("seek")
        return player.seek(position_ms) if player is not None else False

    @property
    def is_playing(self) -> bool:
        return self._player.is_playing if self._player is not None else False

    @property
    def position(self) -> int:
        return self._player.position if self._player is not None else 0

    @property
    def duration(self) -> int:
        if self._player is None:
            return 0
        return self._player.duration or 0

    @property
    def is_loading(self) -> bool:
        return self._player.is_loading if self._player is not None else False

    @property
    def has_error(self) -> bool:
        return self._player.has_error if self._player is not None else False

    @property
    def error_message(self) -> str | None:
        return self._player.error_message if self._player is not None else None
