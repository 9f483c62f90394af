"""Plain-text receipt framed in PJL/PCL control codes.

Used when no PDF engine is available. Camera snapshots cannot be carried by a
text job, so this document only ever contains the structured bill fields.
"""
from __future__ import annotations

from typing import List, Optional

from weighbridge.config.settings import CompanySettings
from weighbridge.models.print_job import BillSnapshot, WeightReading
from weighbridge.services.formatting import format_date, format_datetime, format_number, format_time

UEL = "\x1b%-12345X"
PJL_HEADER = UEL + "@PJL\r\n" + "@PJL ENTER LANGUAGE=PCL\r\n"
PCL_RESET = "\x1bE"
PCL_PORTRAIT = "\x1b&l0O"
PCL_LETTER = "\x1b&l2A"
RULE = "─" * 48
CRLF = "\r\n"


def _weight_lines(label: str, reading: WeightReading) -> List[str]:
    value = format_number(reading.value) if reading.value else "--"
    return [
        f"{label:<14}: {value} Kg",
        f"{'':15}{format_datetime(reading.timestamp)}",
    ]


def _charges(value: Optional[float]) -> str:
    if value is None:
        return ""
    return f"{value:.2f}"


def build_raw_document(bill: BillSnapshot, company: Optional[CompanySettings] = None) -> bytes:
    """Return the complete PJL/PCL job for ``bill`` as UTF-8 bytes."""

    company = company or CompanySettings()
    body = [
        company.name,
        RULE,
        f"Serial No : {bill.bill_no}    Date: {format_date(bill.date_time)}",
        f"Time      : {format_time(bill.date_time)}",
        RULE,
        f"Vehicle No    : {bill.vehicle_no}",
        f"Customer Name : {bill.customer}",
        f"Material      : {bill.material}",
        f"Charge        : Rs. {_charges(bill.charges)}",
        RULE,
        *_weight_lines("Gross Weight", bill.gross_weight),
        *_weight_lines("Tare Weight", bill.tare_weight),
        RULE,
        f"NET WEIGHT    : {format_number(bill.net_weight) if bill.net_weight else '--'} Kg",
        RULE,
    ]
    parts = [PJL_HEADER, PCL_RESET, PCL_PORTRAIT, PCL_LETTER, CRLF]
    parts.extend(line + CRLF for line in body)
    parts.append(CRLF * 3)
    parts.append(PCL_RESET)
    parts.append(UEL)
    return "".join(parts).encode("utf-8")


__all__ = ["build_raw_document"]
