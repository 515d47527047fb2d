"""Logging for the player core: console output plus a per-run debug file.

Warnings and libVLC messages are kept out of the console and go to the file
only, next to the ``waveform_player`` records.
"""

from __future__ import annotations

import logging

from .config import PlayerConfig

_CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
# Thread names matter here: decoder polls, resize timers and reducer workers
# all log into the same file.
_FILE_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | %(module)s:%(lineno)d | "
    "%(threadName)s | %(funcName)s | %(message)s"
)
_FILE_ONLY_LOGGERS = ("py.warnings", "vlc")


def _reset(logger: logging.Logger, level: int) -> logging.Logger:
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    return logger


def setup_logging(config: PlayerConfig) -> logging.Logger:
    logger = _reset(logging.getLogger("waveform_player"), logging.DEBUG)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(config.log_level)
    console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))

    file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
    file_handler.setLevel(config.file_log_level)
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))

    logger.addHandler(console_handler)
    logger.addHandler(file_handler)

    logging.captureWarnings(True)
    for name in _FILE_ONLY_LOGGERS:
        _reset(logging.getLogger(name), logging.DEBUG).addHandler(file_handler)
    return logger
