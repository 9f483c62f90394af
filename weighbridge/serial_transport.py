"""pyserial transport driven from the asyncio loop."""
from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Protocol

import serial
from serial import SerialException
from serial.tools import list_ports

from weighbridge.core.errors import TransportOpenFailed, TransportRuntimeError


class FeedTransport(Protocol):
    """What the connection manager needs from a weight feed transport."""

    @property
    def is_open(self) -> bool: ...

    async def open(self, path: str, baud: int) -> None: ...

    async def read(self) -> bytes: ...

    async def close(self) -> None: ...


class SerialTransport:
    """Serial port whose blocking calls run in worker threads."""

    def __init__(self, *, read_timeout: float = 0.1) -> None:
        self._read_timeout = max(0.05, read_timeout)
        self._serial: Optional[serial.Serial] = None

    @property
    def is_open(self) -> bool:
        return self._serial is not None and self._serial.is_open

    async def open(self, path: str, baud: int) -> None:
        opening = asyncio.ensure_future(asyncio.to_thread(self._open_blocking, path, baud))
        try:
            self._serial = await asyncio.shield(opening)
        except asyncio.CancelledError:
            # The worker thread cannot be interrupted; close the port once it opens.
            opening.add_done_callback(_close_abandoned)
            raise
        except (SerialException, OSError, ValueError) as exc:
            raise TransportOpenFailed(str(exc)) from exc

    def _open_blocking(self, path: str, baud: int) -> serial.Serial:
        conn = serial.Serial(
            path,
            baud,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            timeout=self._read_timeout,
        )
        conn.reset_input_buffer()
        return conn

    async def read(self) -> bytes:
        conn = self._serial
        if conn is None or not conn.is_open:
            raise TransportRuntimeError("serial port closed")
        try:
            return await asyncio.to_thread(self._read_blocking, conn)
        except (SerialException, OSError, TypeError) as exc:
            # pyserial raises TypeError when the port is closed mid-read.
            raise TransportRuntimeError(str(exc) or "serial read failed") from exc

    @staticmethod
    def _read_blocking(conn: serial.Serial) -> bytes:
        waiting = conn.in_waiting
        return conn.read(max(1, waiting))

    async def close(self) -> None:
        conn, self._serial = self._serial, None
        if conn is None:
            return
        try:
            await asyncio.to_thread(conn.close)
        except (SerialException, OSError):
            pass


def _close_abandoned(opening: "asyncio.Future[serial.Serial]") -> None:
    if opening.cancelled() or opening.exception() is not None:
        return
    try:
        opening.result().close()
    except (SerialException, OSError):
        pass


def _list_ports_blocking() -> List[Dict[str, Optional[str]]]:
    ports = []
    for info in list_ports.comports():
        ports.append(
            {
                "path": info.device,
                "description": info.description,
                "manufacturer": info.manufacturer,
                "serialNumber": info.serial_number,
            }
        )
    return ports


async def list_serial_ports() -> List[Dict[str, Optional[str]]]:
    """Return the serial endpoints currently present on this machine."""

    try:
        return await asyncio.to_thread(_list_ports_blocking)
    except OSError:
        return []


__all__ = ["FeedTransport", "SerialTransport", "list_serial_ports"]
