"""Exception hierarchy shared by the feed and printing subsystems."""
from __future__ import annotations


class WeighbridgeError(Exception):
    """Base exception for weighbridge errors."""


class FeedError(WeighbridgeError):
    """Raised by the weight feed; absorbed into connection state changes."""


class TransportOpenFailed(FeedError):
    """The serial transport could not be opened."""


class TransportRuntimeError(FeedError):
    """An open serial transport failed or was closed underneath us."""


class SampleOutOfRange(FeedError, ValueError):
    """A parsed weight lies outside the accepted range."""

    def __init__(self, value: float) -> None:
        super().__init__(f"weight {value} outside accepted range")
        self.value = value


class PrintError(WeighbridgeError):
    """Base class for print failures reported back as a ``PrintResult``."""

    kind = "print_error"


class RenderEngineUnavailable(PrintError):
    kind = "render_engine_unavailable"


class RenderEngineError(PrintError):
    kind = "render_engine_error"


class LocalQueueError(PrintError):
    kind = "local_queue_error"


class PrinterConnectionError(PrintError):
    """Refused or otherwise failed socket connection to a network printer."""

    kind = "connection_error"


class SocketTimeout(PrinterConnectionError):
    kind = "socket_timeout"


__all__ = [
    "WeighbridgeError",
    "FeedError",
    "TransportOpenFailed",
    "TransportRuntimeError",
    "SampleOutOfRange",
    "PrintError",
    "RenderEngineUnavailable",
    "RenderEngineError",
    "LocalQueueError",
    "PrinterConnectionError",
    "SocketTimeout",
]
