"""Adapters for audio decoding and playback libraries."""

from .sample_reader import SoundfileSampleReader
from .vlc_transport import VlcTransport

__all__ = ["SoundfileSampleReader", "VlcTransport"]
