"""Decode indicator output lines into weight values."""
from __future__ import annotations

import re
from typing import Iterator, Optional, Union

from weighbridge.core.errors import SampleOutOfRange

WEIGHT_MIN = 0.0
WEIGHT_MAX = 200000.0

# First number on the line; indicators wrap it in tags such as "ST,GS,+" or "kg".
_NUMBER_RE = re.compile(r"[+-]?\d+(?:\.\d*)?")


def parse_weight_line(line: Union[str, bytes]) -> Optional[float]:
    """Return the first decimal number in ``line`` or ``None`` when there is none.

    A leading sign is kept, so ``-15 kg`` parses as -15.0 and is then rejected
    by ``check_range`` instead of being read as 15 kg.
    """

    if isinstance(line, bytes):
        line = line.decode("ascii", errors="replace")
    match = _NUMBER_RE.search(line.strip())
    if match is None:
        return None
    try:
        return float(match.group(0))
    except ValueError:
        return None


def check_range(value: float) -> float:
    if not (WEIGHT_MIN <= value < WEIGHT_MAX):
        raise SampleOutOfRange(value)
    return value


class LineBuffer:
    """Accumulate raw bytes and yield complete CR/LF terminated lines."""

    def __init__(self, max_length: int = 4096) -> None:
        self._buffer = bytearray()
        self._max_length = max_length

    def feed(self, data: bytes) -> Iterator[bytes]:
        self._buffer.extend(data)
        while b"\n" in self._buffer:
            line, _, remainder = self._buffer.partition(b"\n")
            self._buffer = bytearray(remainder)
            line = line.strip(b"\r\x00 \t")
            if line:
                yield bytes(line)
        if len(self._buffer) > self._max_length:
            # Indicator is not sending line breaks; never grow without bound.
            self._buffer.clear()

    def clear(self) -> None:
        self._buffer.clear()


__all__ = ["LineBuffer", "WEIGHT_MAX", "WEIGHT_MIN", "check_range", "parse_weight_line"]
