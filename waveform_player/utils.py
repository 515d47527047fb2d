"""Environment parsing and numeric coercion for player settings."""
from __future__ import annotations

import os
from typing import Any, Callable, Optional, TypeVar

_Number = TypeVar("_Number", int, float)

_TRUE_VALUES = ("1", "true", "yes", "on")


def resolve_path(value: str, base_dir: str) -> str:
    """Anchor a relative log or asset path at base_dir."""
    return value if os.path.isabs(value) else os.path.join(base_dir, value)


def _clamp(value: _Number, min_value: Optional[_Number], max_value: Optional[_Number]) -> _Number:
    if min_value is not None and value < min_value:
        value = min_value
    if max_value is not None and value > max_value:
        value = max_value
    return value


def _parse_number_env(
    name: str,
    default: _Number,
    cast: Callable[[str], _Number],
    min_value: Optional[_Number],
    max_value: Optional[_Number],
) -> _Number:
    raw = os.getenv(name)
    try:
        value = cast(raw) if raw is not None else default
    except ValueError:
        value = default
    if value != value:  # nan
        value = default
    return _clamp(value, min_value, max_value)


def parse_int_env(
    name: str,
    default: int,
    *,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
) -> int:
    """Integer setting from the environment; bad values fall back to default."""
    return _parse_number_env(name, default, int, min_value, max_value)


def parse_float_env(
    name: str,
    default: float,
    *,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
) -> float:
    return _parse_number_env(name, default, float, min_value, max_value)


def parse_bool_env(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUE_VALUES


def coerce_int(
    value: Any,
    *,
    default: int,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    """Round value to an int, falling back to default, then clamp."""
    try:
        parsed = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        parsed = int(default)
    return _clamp(parsed, min_value, max_value)
