from __future__ import annotations

import logging
import os
from pathlib import Path

LOG_LEVEL_ENV = "OCTWAVE_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def resolve_level(verbose: int = 0) -> int:
    """-v gives INFO, -vv gives DEBUG; OCTWAVE_LOG_LEVEL overrides both."""
    env = os.environ.get(LOG_LEVEL_ENV)
    if env:
        level = logging.getLevelName(env.strip().upper())
        if isinstance(level, int):
            return level
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING


def setup_logging(verbose: int = 0, *, log_file: str | Path | None = None) -> None:
    # Log to stderr only: stdout may carry the WAV stream.
    root = logging.getLogger()
    if root.handlers:
        return

    level = resolve_level(verbose)
    logging.basicConfig(level=level, format=LOG_FORMAT)

    if log_file is not None:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(fh)
