"""Raw sample extraction for waveform reduction."""

from __future__ import annotations

import io
import os
import urllib.error
import urllib.request

import numpy as np
import soundfile as sf

from ..constants import SOURCE_OPEN_TIMEOUT_SECONDS
from ..domain.source import AudioSource
from ..errors import DecodeError

_USER_AGENT = "waveform-player/0.1"


class SoundfileSampleReader:
    """Reads PCM frames with soundfile; http(s) sources are fetched into memory."""

    def __init__(
        self,
        *,
        logger,
        asset_dir: str | None = None,
        timeout_seconds: float = SOURCE_OPEN_TIMEOUT_SECONDS,
    ) -> None:
        self.logger = logger
        self.asset_dir = asset_dir
        self.timeout_seconds = float(timeout_seconds)

    def _download(self, url: str) -> bytes:
        request = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
        try:
            with urllib.request.urlopen(request, timeout=self.timeout_seconds) as response:
                return response.read()
        except urllib.error.HTTPError as exc:
            raise DecodeError(f"HTTP {exc.code} while fetching {url}") from exc
        except urllib.error.URLError as exc:
            raise DecodeError(f"Failed to reach {url}: {exc.reason}") from exc
        except TimeoutError as exc:
            raise DecodeError(f"Timed out fetching {url}") from exc
        except OSError as exc:
            raise DecodeError(f"Connection error fetching {url}: {exc}") from exc

    def read(self, source: AudioSource) -> tuple[np.ndarray, int]:
        target = source.resolve(self.asset_dir)
        if source.is_remote:
            payload = self._download(target)
            if not payload:
                raise DecodeError(f"Empty response from {target}")
            handle = io.BytesIO(payload)
        else:
            if not os.path.isfile(target):
                raise DecodeError(f"Audio file not found: {target}")
            handle = target
        try:
            audio, sample_rate = sf.read(handle, dtype="float32", always_2d=False)
        except Exception as exc:
            self.logger.exception("Failed to read waveform data: %s", source.identity)
            raise DecodeError(f"Failed to decode {source.display_name}: {exc}") from exc
        frames = np.asarray(audio, dtype=np.float32)
        if frames.size == 0:
            raise DecodeError(f"Audio stream is empty: {source.display_name}")
        if frames.ndim not in (1, 2):
            raise DecodeError("Unsupported audio shape.")
        return frames, int(sample_rate)
