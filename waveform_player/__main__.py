"""Module entrypoint for ``python -m waveform_player``."""
from __future__ import annotations

from .main import main

if __name__ == "__main__":
    raise SystemExit(main())
