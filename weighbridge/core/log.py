"""Logger factory writing to the weighbridge log directory."""
from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

DEFAULT_LOG_DIR = Path("/var/log/weighbridge")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_configured: set[str] = set()


def _log_dir() -> Path:
    raw = os.getenv("WEIGHBRIDGE_LOG_DIR")
    return Path(raw) if raw else DEFAULT_LOG_DIR


def _build_handler() -> logging.Handler:
    for directory in (_log_dir(), Path.home() / ".weighbridge" / "logs"):
        try:
            directory.mkdir(parents=True, exist_ok=True)
            return logging.FileHandler(directory / "app.log")
        except OSError:
            continue
    return logging.StreamHandler(sys.stderr)


def get_logger(name: str) -> logging.Logger:
    """Return the ``weighbridge.<name>`` logger, attaching a handler once.

    Handlers go on the package root logger so every child logger shares the
    same file. Records still propagate, which keeps them visible to uvicorn
    and to pytest's ``caplog``.
    """

    root = logging.getLogger("weighbridge")
    if "weighbridge" not in _configured:
        _configured.add("weighbridge")
        if not root.handlers:
            handler = _build_handler()
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(handler)
        if root.level == logging.NOTSET:
            root.setLevel(logging.INFO)
    return logging.getLogger(f"weighbridge.{name}")


__all__ = ["get_logger", "LOG_FORMAT"]
