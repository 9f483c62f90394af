"""RAW/JetDirect (port 9100) network printer client."""
from __future__ import annotations

import asyncio
import contextlib
from typing import Any, Dict

from weighbridge.core.errors import PrinterConnectionError, SocketTimeout
from weighbridge.core.log import get_logger

LOG = get_logger("printer.raw")

RAW_PORT = 9100
SEND_TIMEOUT = 10.0
PROBE_TIMEOUT = 4.0


class RawProtocolWriter:
    """Send one complete job per connection.

    The writer half-closes after the last byte and waits for the printer to
    close its side; that close, not the end of our write, marks the job done.
    """

    def __init__(self, timeout: float = SEND_TIMEOUT) -> None:
        self.timeout = timeout

    async def send(self, host: str, port: int, data: bytes) -> None:
        try:
            await asyncio.wait_for(self._send(host, port, data), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise SocketTimeout(f"IP Printer timeout connecting to {host}:{port}") from None
        except OSError as exc:
            raise PrinterConnectionError(f"IP Printer error: {exc.strerror or exc}") from exc

    async def _send(self, host: str, port: int, data: bytes) -> None:
        reader, writer = await asyncio.open_connection(host, port)
        LOG.info("Connected to printer %s:%s", host, port)
        try:
            writer.write(data)
            await writer.drain()
            if writer.can_write_eof():
                writer.write_eof()
            while await reader.read(4096):
                pass
        except BaseException:
            writer.transport.abort()
            raise
        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()


async def test_connectivity(host: str, port: int = RAW_PORT, *, timeout: float = PROBE_TIMEOUT) -> Dict[str, Any]:
    """TCP handshake only; nothing is sent to the printer."""

    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=timeout)
    except asyncio.TimeoutError:
        return {"reachable": False, "host": host, "port": port, "error": "Timeout"}
    except OSError as exc:
        return {"reachable": False, "host": host, "port": port, "error": str(exc) or type(exc).__name__}
    writer.transport.abort()
    return {"reachable": True, "host": host, "port": port}


# Not a pytest test despite the name.
test_connectivity.__test__ = False  # type: ignore[attr-defined]

__all__ = ["PROBE_TIMEOUT", "RAW_PORT", "RawProtocolWriter", "SEND_TIMEOUT", "test_connectivity"]
