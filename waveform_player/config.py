"""Configuration loading from environment variables."""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from .constants import (
    AUTO_STOP_TOLERANCE_MS,
    DEFAULT_BAR_SPACING,
    DEFAULT_BAR_WIDTH,
    DEFAULT_MAX_AMPLITUDE,
    DEFAULT_MIN_AMPLITUDE,
    POSITION_POLL_MS,
    RESIZE_DEBOUNCE_MS,
    SOURCE_OPEN_TIMEOUT_SECONDS,
)
from .utils import parse_bool_env, parse_float_env, parse_int_env, resolve_path


@dataclass(frozen=True)
class PlayerConfig:
    log_level: str
    file_log_level: str
    log_dir: str
    log_file: str
    asset_dir: str
    bar_width: float = DEFAULT_BAR_WIDTH
    bar_spacing: float = DEFAULT_BAR_SPACING
    min_amplitude: float = DEFAULT_MIN_AMPLITUDE
    max_amplitude: float = DEFAULT_MAX_AMPLITUDE
    cache_max_entries: Optional[int] = None
    resize_debounce_ms: int = RESIZE_DEBOUNCE_MS
    position_poll_ms: int = POSITION_POLL_MS
    auto_stop_tolerance_ms: int = AUTO_STOP_TOLERANCE_MS
    source_open_timeout_seconds: float = SOURCE_OPEN_TIMEOUT_SECONDS
    autoplay: bool = False


def load_config() -> PlayerConfig:
    base_dir = str(Path(__file__).resolve().parents[1])
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    file_log_level = os.getenv("FILE_LOG_LEVEL", "DEBUG").upper()
    log_dir = resolve_path(os.getenv("LOG_DIR", "logs"), base_dir)
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(
        log_dir, f"player_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}.log"
    )
    asset_dir = resolve_path(os.getenv("ASSET_DIR", "assets").strip() or "assets", base_dir)
    bar_width = parse_float_env(
        "WAVEFORM_BAR_WIDTH", DEFAULT_BAR_WIDTH, min_value=0.5, max_value=64.0
    )
    bar_spacing = parse_float_env(
        "WAVEFORM_BAR_SPACING", DEFAULT_BAR_SPACING, min_value=0.0, max_value=64.0
    )
    min_amplitude = parse_float_env(
        "WAVEFORM_MIN_AMPLITUDE", DEFAULT_MIN_AMPLITUDE, min_value=0.0, max_value=1000.0
    )
    max_amplitude = parse_float_env(
        "WAVEFORM_MAX_AMPLITUDE", DEFAULT_MAX_AMPLITUDE, min_value=0.0, max_value=1000.0
    )
    if max_amplitude <= min_amplitude:
        max_amplitude = min_amplitude + 1.0
    cache_max_entries = parse_int_env(
        "WAVEFORM_CACHE_MAX_ENTRIES", 0, min_value=0, max_value=100000
    )
    resize_debounce_ms = parse_int_env(
        "RESIZE_DEBOUNCE_MS", RESIZE_DEBOUNCE_MS, min_value=0, max_value=5000
    )
    position_poll_ms = parse_int_env(
        "POSITION_POLL_MS", POSITION_POLL_MS, min_value=10, max_value=2000
    )
    auto_stop_tolerance_ms = parse_int_env(
        "AUTO_STOP_TOLERANCE_MS", AUTO_STOP_TOLERANCE_MS, min_value=0, max_value=2000
    )
    source_open_timeout_seconds = parse_float_env(
        "SOURCE_OPEN_TIMEOUT_SECONDS",
        SOURCE_OPEN_TIMEOUT_SECONDS,
        min_value=0.5,
        max_value=300.0,
    )
    return PlayerConfig(
        log_level=log_level,
        file_log_level=file_log_level,
        log_dir=log_dir,
        log_file=log_file,
        asset_dir=asset_dir,
        bar_width=bar_width,
        bar_spacing=bar_spacing,
        min_amplitude=min_amplitude,
        max_amplitude=max_amplitude,
        cache_max_entries=cache_max_entries or None,
        resize_debounce_ms=resize_debounce_ms,
        position_poll_ms=position_poll_ms,
        auto_stop_tolerance_ms=auto_stop_tolerance_ms,
        source_open_timeout_seconds=source_open_timeout_seconds,
        autoplay=parse_bool_env("PLAYER_AUTOPLAY", "0"),
    )
