from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from weighbridge.config.settings import CompanySettings


class PrintMode(str, enum.Enum):
    LOCAL = "local"
    IP = "ip"
    HTML = "html"
    PDF = "pdf"


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Millisecond epoch, as emitted by the bill store.
        return datetime.fromtimestamp(float(value) / 1000.0, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def _parse_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and value.strip():
        try:
            return float(value.strip().replace(",", ""))
        except ValueError:
            return None
    return None


@dataclass(frozen=True, slots=True)
class WeightReading:
    value: Optional[float] = None
    timestamp: Optional[datetime] = None

    @classmethod
    def from_raw(cls, raw: Any) -> "WeightReading":
        if isinstance(raw, Mapping):
            return cls(value=_parse_number(raw.get("value")), timestamp=_parse_datetime(raw.get("timestamp")))
        return cls(value=_parse_number(raw))


@dataclass(frozen=True, slots=True)
class BillSnapshot:
    """Completed bill as handed over by the storage layer."""

    bill_no: str
    date_time: Optional[datetime] = None
    vehicle_no: str = ""
    customer: str = ""
    material: str = ""
    charges: Optional[float] = None
    gross_weight: WeightReading = field(default_factory=WeightReading)
    tare_weight: WeightReading = field(default_factory=WeightReading)
    net_weight: Optional[float] = None
    camera1_image: str = ""
    camera2_image: str = ""

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "BillSnapshot":
        def pick(*keys: str) -> Any:
            for key in keys:
                if key in raw and raw[key] is not None:
                    return raw[key]
            return None

        bill_no = pick("billNo", "bill_no")
        if bill_no is None or str(bill_no).strip() == "":
            raise ValueError("bill number is required")
        return cls(
            bill_no=str(bill_no).strip(),
            date_time=_parse_datetime(pick("dateTime", "date_time")),
            vehicle_no=str(pick("vehicleNo", "vehicle_no") or ""),
            customer=str(pick("customer") or ""),
            material=str(pick("material") or ""),
            charges=_parse_number(pick("charges")),
            gross_weight=WeightReading.from_raw(pick("grossWeight", "gross_weight")),
            tare_weight=WeightReading.from_raw(pick("tareWeight", "tare_weight")),
            net_weight=_parse_number(pick("netWeight", "net_weight")),
            camera1_image=str(pick("camera1Image", "camera1_image") or ""),
            camera2_image=str(pick("camera2Image", "camera2_image") or ""),
        )


@dataclass(frozen=True, slots=True)
class PrintTarget:
    name: str = ""
    host: Optional[str] = None
    port: Optional[int] = None


@dataclass(frozen=True, slots=True)
class PrintRequest:
    bill: BillSnapshot
    mode: Optional[PrintMode] = None
    target: PrintTarget = field(default_factory=PrintTarget)
    copies: int = 1
    company: CompanySettings = field(default_factory=CompanySettings)

    def __post_init__(self) -> None:
        if self.mode is not None and not isinstance(self.mode, PrintMode):
            object.__setattr__(self, "mode", PrintMode(self.mode))
        if int(self.copies) < 1:
            raise ValueError("copies must be at least 1")


@dataclass(frozen=True, slots=True)
class PrintResult:
    success: bool
    method: str
    detail: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @classmethod
    def ok(cls, method: str, **detail: Any) -> "PrintResult":
        return cls(success=True, method=method, detail=detail)

    @classmethod
    def failed(cls, method: str, error: str, kind: str, **detail: Any) -> "PrintResult":
        return cls(success=False, method=method, detail=detail, error=error, error_kind=kind)

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": self.success, "method": self.method}
        payload.update(self.detail)
        if self.error is not None:
            payload["error"] = self.error
            payload["errorKind"] = self.error_kind
        return payload


__all__ = [
    "BillSnapshot",
    "PrintMode",
    "PrintRequest",
    "PrintResult",
    "PrintTarget",
    "WeightReading",
]
