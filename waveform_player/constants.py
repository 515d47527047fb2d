"""Shared defaults for waveform reduction and playback."""

DEFAULT_BAR_WIDTH = 4.0
DEFAULT_BAR_SPACING = 1.0
DEFAULT_MIN_AMPLITUDE = 2.0
DEFAULT_MAX_AMPLITUDE = 25.0

# Positions this close to the end count as finished.
AUTO_STOP_TOLERANCE_MS = 100

RESIZE_DEBOUNCE_MS = 150
POSITION_POLL_MS = 120
SOURCE_OPEN_TIMEOUT_SECONDS = 10.0

REMOTE_SCHEMES = ("http", "https")
