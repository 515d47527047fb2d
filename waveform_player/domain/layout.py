"""Width to bar-count translation for waveform layouts."""

from __future__ import annotations

import math

from ..constants import DEFAULT_BAR_SPACING, DEFAULT_BAR_WIDTH


def bar_count_for_width(
    available_width: float,
    *,
    bar_width: float = DEFAULT_BAR_WIDTH,
    bar_spacing: float = DEFAULT_BAR_SPACING,
) -> int:
    """Number of bars of bar_width separated by bar_spacing that fit the width."""
    stride = float(bar_width) + float(bar_spacing)
    if stride <= 0:
        raise ValueError("bar_width + bar_spacing must be positive")
    width = float(available_width)
    if not math.isfinite(width) or width <= 0:
        return 0
    return max(0, int(math.floor((width + float(bar_spacing)) / stride)))
