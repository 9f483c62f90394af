"""ASGI application entrypoint for the weighbridge backend."""
from __future__ import annotations

from weighbridge.main import app as _app

# Re-export so uvicorn can locate it via ``weighbridge.asgi:app``.
app = _app

__all__ = ["app"]
