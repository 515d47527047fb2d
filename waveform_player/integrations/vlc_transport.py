"""libVLC playback transport with a polling position feed."""

from __future__ import annotations

import os
import sys
import threading
import time
from typing import Callable

from ..constants import POSITION_POLL_MS, SOURCE_OPEN_TIMEOUT_SECONDS
from ..domain.source import AudioSource
from ..errors import SourceOpenError, TransportError

try:
    import vlc as _vlc
except Exception:  # pragma: no cover - dependency optional at import time
    _vlc = None


def _enum_value(value) -> int:
    return int(getattr(value, "value", value) or 0)


class VlcTransport:
    """Thin libVLC wrapper for audio-only playback of one source."""

    def __init__(
        self,
        *,
        logger,
        asset_dir: str | None = None,
        poll_interval_ms: int = POSITION_POLL_MS,
        open_timeout_seconds: float = SOURCE_OPEN_TIMEOUT_SECONDS,
        vlc_module=None,
        platform_name: str | None = None,
    ) -> None:
        self._vlc = vlc_module if vlc_module is not None else _vlc
        if self._vlc is None:
            raise RuntimeError("python-vlc is not available")
        self.logger = logger
        self.asset_dir = asset_dir
        self.poll_interval = max(0.01, float(poll_interval_ms) / 1000.0)
        self.open_timeout_seconds = float(open_timeout_seconds)
        platform_value = platform_name if platform_name is not None else sys.platform
        args = ["--no-xlib", "--no-video"] if str(platform_value).startswith("linux") else ["--no-video"]
        self.instance = self._vlc.Instance(args)
        self.player = self.instance.media_player_new()
        self.media = None
        self._on_position: Callable[[int], None] | None = None
        self._on_duration: Callable[[int], None] | None = None
        self._on_completed: Callable[[], None] | None = None
        self._on_error: Callable[[Exception], None] | None = None
        self._poll_stop = threading.Event()
        self._poll_thread: threading.Thread | None = None
        self._pending_seek_ms: int | None = None
        self._released = False

    def set_listeners(
        self,
        *,
        on_position: Callable[[int], None] | None = None,
        on_duration: Callable[[int], None] | None = None,
        on_completed: Callable[[], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        self._on_position = on_position
        self._on_duration = on_duration
        self._on_completed = on_completed
        self._on_error = on_error

    def _release_media(self) -> None:
        if self.media is None:
            return
        try:
            self.media.release()
        except Exception:
            self.logger.exception("Failed to release VLC media")
        self.media = None

    def open(self, source: AudioSource) -> int | None:
        target = source.resolve(self.asset_dir)
        if not source.is_remote:
            if not os.path.isfile(target):
                raise SourceOpenError(f"Audio file not found: {target}")
            target = os.path.abspath(target)
        self._release_media()
        try:
            media = self.instance.media_new(target)
        except Exception as exc:
            raise SourceOpenError(f"VLC could not create media for {target}: {exc}") from exc
        if media is None:
            raise SourceOpenError(f"VLC could not create media for {target}")
        duration_ms = self._parse_duration(media, remote=source.is_remote)
        self.player.set_media(media)
        self.media = media
        self.logger.debug("VLC media opened: %s duration_ms=%s", target, duration_ms)
        return duration_ms

    def _parse_duration(self, media, *, remote: bool) -> int | None:
        vlc = self._vlc
        flag = vlc.MediaParseFlag.network if remote else vlc.MediaParseFlag.local
        timeout_ms = int(self.open_timeout_seconds * 1000.0)
        if int(media.parse_with_options(flag, timeout_ms)) == -1:
            raise SourceOpenError("VLC refused to parse the media.")
        deadline = time.monotonic() + self.open_timeout_seconds
        status = _enum_value(media.get_parsed_status())
        while not status and time.monotonic() < deadline:
            time.sleep(0.02)
            status = _enum_value(media.get_parsed_status())
        if status == _enum_value(vlc.MediaParsedStatus.failed):
            raise SourceOpenError("Unsupported or unreadable audio source.")
        if status == _enum_value(vlc.MediaParsedStatus.timeout) or not status:
            raise SourceOpenError("Timed out while opening the audio source.")
        duration = int(media.get_duration() or 0)
        return duration if duration > 0 else None

    def play(self) -> None:
        if self.media is None:
            raise TransportError("No media loaded.")
        vlc = self._vlc
        if self.player.get_state() in (vlc.State.Ended, vlc.State.Stopped, vlc.State.Error):
            self.player.stop()
        rc = int(self.player.play())
        if rc == -1:
            raise TransportError("VLC failed to start playback.")
        if self._pending_seek_ms is not None:
            # VLC may ignore a seek issued before playback started.
            self.player.set_time(int(self._pending_seek_ms))
            self._pending_seek_ms = None
        self._start_polling()

    def pause(self) -> None:
        self._stop_polling()
        self.player.set_pause(1)

    def seek(self, position_ms: int) -> None:
        target = max(0, int(position_ms))
        state = self.player.get_state()
        if state in (self._vlc.State.Playing, self._vlc.State.Paused):
            self.player.set_time(target)
            self._pending_seek_ms = None
        else:
            self._pending_seek_ms = target

    def get_time_ms(self) -> int:
        return int(self.player.get_time() or 0)

    def get_length_ms(self) -> int:
        return int(self.player.get_length() or 0)

    def _start_polling(self) -> None:
        self._stop_polling()
        stop_event = threading.Event()
        self._poll_stop = stop_event
        thread = threading.Thread(
            target=self._poll_loop,
            args=(stop_event,),
            name="vlc-position-poll",
            daemon=True,
        )
        self._poll_thread = thread
        thread.start()

    def _stop_polling(self) -> None:
        self._poll_stop.set()

    def _emit(self, callback, *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            self.logger.exception("VLC transport listener failed")

    def _poll_loop(self, stop_event: threading.Event) -> None:
        vlc = self._vlc
        last_length = 0
        while not stop_event.wait(self.poll_interval):
            try:
                state = self.player.get_state()
                length = self.get_length_ms()
                current = self.get_time_ms()
            except Exception as exc:
                self.logger.exception("VLC position poll failed")
                self._emit(self._on_error, TransportError(f"VLC poll failed: {exc}"))
                return
            if stop_event.is_set():
                return
            if state == vlc.State.Ended:
                self._emit(self._on_completed)
                return
            if state == vlc.State.Error:
                self._emit(self._on_error, TransportError("VLC reported a playback error."))
                return
            if length > 0 and length != last_length:
                last_length = length
                self._emit(self._on_duration, length)
            if current >= 0:
                self._emit(self._on_position, current)

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._stop_polling()
        thread = self._poll_thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=max(1.0, self.poll_interval * 4))
        self._poll_thread = None
        try:
            self.player.stop()
        except Exception:
            self.logger.exception("Failed to stop VLC player")
        self._release_media()
        try:
            self.player.release()
        except Exception:
            self.logger.exception("Failed to release VLC player")
        try:
            self.instance.release()
        except Exception:
            self.logger.exception("Failed to release VLC instance")
