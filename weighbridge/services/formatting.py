"""Date and weight formatting shared by the receipt documents."""
from __future__ import annotations

from datetime import datetime
from typing import Optional


def local_time(value: datetime) -> datetime:
    return value.astimezone() if value.tzinfo is not None else value


def format_date(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return local_time(value).strftime("%d/%m/%Y")


def format_time(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return local_time(value).strftime("%I:%M:%S %p").lower()


def format_datetime(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return f"{format_date(value)}, {format_time(value)}"


def format_number(value: Optional[float]) -> str:
    """Render a weight without a trailing ``.0`` for whole kilograms."""

    if value is None:
        return "--"
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def format_indian(value: float) -> str:
    """Indian digit grouping: 12,34,567."""

    whole = int(round(value))
    sign = "-" if whole < 0 else ""
    digits = str(abs(whole))
    if len(digits) <= 3:
        return sign + digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return sign + ",".join(groups + [tail])
