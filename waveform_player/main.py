"""Command-line entry point: print a waveform and optionally play the source."""
from __future__ import annotations

import argparse
import sys
import threading
import time

from .application.bootstrap import create_player, initialize_player_services
from .config import load_config
from .domain.layout import bar_count_for_width
from .domain.playback import PlaybackStatus, format_timestamp
from .domain.source import AudioSource, WaveformKey, WaveformSamples
from .errors import DecodeError
from .logging_config import setup_logging
from .utils import coerce_int

_LEVELS = " ▁▂▃▄▅▆▇█"


def render_bars(samples: WaveformSamples, *, rows: int = 4) -> list[str]:
    """Render bar amplitudes as text rows, top row first."""
    rows = coerce_int(rows, default=4, min_value=1, max_value=32)
    span = max(1e-9, samples.max_amplitude - samples.min_amplitude)
    steps = len(_LEVELS) - 1
    heights = [
        int(round((value - samples.min_amplitude) / span * rows * steps))
        for value in samples.to_list()
    ]
    lines = []
    for row in range(rows - 1, -1, -1):
        base = row * steps
        line = "".join(_LEVELS[max(0, min(steps, height - base))] for height in heights)
        lines.append(line.rstrip() if row else line)
    return lines


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="waveform-player",
        description="Reduce an audio source to waveform bars and optionally play it.",
    )
    parser.add_argument("source", help="Audio URL or local path (asset path with --asset).")
    parser.add_argument(
        "--asset",
        action="store_true",
        help="Resolve SOURCE against ASSET_DIR.",
    )
    parser.add_argument(
        "--width",
        type=float,
        default=300.0,
        help="Available width in pixels used to size the waveform (default: 300).",
    )
    parser.add_argument(
        "--rows",
        type=int,
        default=4,
        help="Text rows used to draw the waveform.",
    )
    parser.add_argument("--play", action="store_true", help="Play the source to the end.")
    return parser


def _play(player, *, open_timeout: float) -> int:
    finished = threading.Event()
    player.on_completed = finished.set
    player.on_error = lambda _message: finished.set()
    player.open()
    deadline = time.monotonic() + open_timeout
    while player.is_loading and time.monotonic() < deadline:
        time.sleep(0.05)
    if player.has_error:
        print(f"Playback error: {player.error_message}", file=sys.stderr)
        return 1
    # Autoplay may already have started playback once the source opened.
    if not player.is_playing and (player.status is not PlaybackStatus.PAUSED or not player.play()):
        print("Playback could not start.", file=sys.stderr)
        return 1
    total = format_timestamp(player.duration)
    while not finished.wait(0.5):
        print(f"\r{player.snapshot().display_time} / {total}", end="", flush=True)
    print()
    if player.has_error:
        print(f"Playback error: {player.error_message}", file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    config = load_config()
    logger = setup_logging(config)
    bar_count = bar_count_for_width(
        args.width,
        bar_width=config.bar_width,
        bar_spacing=config.bar_spacing,
    )
    if bar_count < 1:
        parser.error(f"--width {args.width} is too narrow for a single bar")

    source = AudioSource(args.source, is_asset=args.asset)
    services = initialize_player_services(config=config, logger=logger)
    exit_code = 0
    try:
        key = WaveformKey.for_source(source, bar_count)
        try:
            samples = services.cache.get_or_compute(
                key,
                lambda: services.reducer.reduce(
                    source, bar_count, config.min_amplitude, config.max_amplitude
                ),
            )
        except DecodeError as exc:
            logger.warning("Waveform unavailable: %s", exc)
            print(f"Waveform unavailable: {exc}", file=sys.stderr)
            exit_code = 1
        else:
            print(f"{source.display_name}: {bar_count} bars")
            for line in render_bars(samples, rows=args.rows):
                print(line)
        if args.play:
            player = create_player(source, services=services, config=config, logger=logger)
            try:
                exit_code = _play(player, open_timeout=config.source_open_timeout_seconds) or exit_code
            except KeyboardInterrupt:
                print()
            finally:
                player.close()
    finally:
        services.shutdown()
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
