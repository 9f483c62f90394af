"""Environment-backed settings for the weighbridge services."""
from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from weighbridge.config import defaults
from weighbridge.core.log import get_logger

LOG = get_logger("config")

PrinterType = Literal["local", "ip", "html", "pdf"]


def _env_str(env: Mapping[str, str], name: str, default: str) -> str:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        LOG.warning("Invalid %s value %r; using %s", name, raw, default)
        return default


class SerialSettings(BaseModel):
    port: str = defaults.DEFAULT_SERIAL_PORT
    baud_rate: int = Field(default=defaults.DEFAULT_BAUD_RATE, gt=0)


class CompanySettings(BaseModel):
    """Header printed on every receipt."""

    model_config = ConfigDict(frozen=True)

    name: str = defaults.DEFAULT_COMPANY_NAME
    addr1: str = defaults.DEFAULT_COMPANY_ADDR1
    addr2: str = defaults.DEFAULT_COMPANY_ADDR2
    phone: str = defaults.DEFAULT_COMPANY_PHONE
    logo: str = ""

    def merged(self, overrides: Optional[Mapping[str, object]]) -> "CompanySettings":
        """Return a copy with every non-empty override applied."""

        if not overrides:
            return self
        updates = {
            key: str(value)
            for key, value in overrides.items()
            if key in type(self).model_fields and value not in (None, "")
        }
        return self.model_copy(update=updates)


class PrinterSettings(BaseModel):
    default_type: PrinterType = "local"
    ip_host: str = defaults.DEFAULT_PRINTER_IP
    ip_port: int = Field(default=defaults.DEFAULT_PRINTER_PORT, gt=0, lt=65536)
    local_name: str = ""
    paper_width_mm: int = defaults.DEFAULT_PAPER_WIDTH_MM
    pdf_engine: str = defaults.DEFAULT_PDF_ENGINE
    temp_dir: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()) / "weighbridge")


class WeighbridgeSettings(BaseModel):
    serial: SerialSettings = Field(default_factory=SerialSettings)
    printer: PrinterSettings = Field(default_factory=PrinterSettings)
    company: CompanySettings = Field(default_factory=CompanySettings)
    host: str = defaults.DEFAULT_HTTP_HOST
    port: int = defaults.DEFAULT_HTTP_PORT


def load_settings(env: Optional[Mapping[str, str]] = None) -> WeighbridgeSettings:
    """Build settings from ``env`` (``os.environ`` by default)."""

    env = os.environ if env is None else env

    printer_type = _env_str(env, "PRINTER_TYPE", defaults.DEFAULT_PRINTER_TYPE).lower()
    if printer_type not in {"local", "ip", "html", "pdf"}:
        LOG.warning("Unknown PRINTER_TYPE %r; using %s", printer_type, defaults.DEFAULT_PRINTER_TYPE)
        printer_type = defaults.DEFAULT_PRINTER_TYPE

    printer_kwargs = {
        "default_type": printer_type,
        "ip_host": _env_str(env, "PRINTER_IP", defaults.DEFAULT_PRINTER_IP),
        "ip_port": _env_int(env, "PRINTER_PORT", defaults.DEFAULT_PRINTER_PORT),
        "local_name": env.get("PRINTER_NAME", "").strip(),
        "paper_width_mm": _env_int(env, "PRINTER_WIDTH_MM", defaults.DEFAULT_PAPER_WIDTH_MM),
        "pdf_engine": _env_str(env, "PDF_ENGINE", defaults.DEFAULT_PDF_ENGINE),
    }
    temp_dir = env.get("PRINT_TEMP_DIR")
    if temp_dir:
        printer_kwargs["temp_dir"] = Path(temp_dir)

    return WeighbridgeSettings(
        serial=SerialSettings(
            port=_env_str(env, "SERIAL_PORT", defaults.DEFAULT_SERIAL_PORT),
            baud_rate=_env_int(env, "BAUD_RATE", defaults.DEFAULT_BAUD_RATE),
        ),
        printer=PrinterSettings(**printer_kwargs),
        company=CompanySettings(
            name=_env_str(env, "COMPANY_NAME", defaults.DEFAULT_COMPANY_NAME),
            addr1=_env_str(env, "COMPANY_ADDR1", defaults.DEFAULT_COMPANY_ADDR1),
            addr2=_env_str(env, "COMPANY_ADDR2", defaults.DEFAULT_COMPANY_ADDR2),
            phone=_env_str(env, "COMPANY_PHONE", defaults.DEFAULT_COMPANY_PHONE),
            logo=env.get("COMPANY_LOGO", ""),
        ),
        host=_env_str(env, "HOST", defaults.DEFAULT_HTTP_HOST),
        port=_env_int(env, "PORT", defaults.DEFAULT_HTTP_PORT),
    )


__all__ = [
    "CompanySettings",
    "PrinterSettings",
    "PrinterType",
    "SerialSettings",
    "WeighbridgeSettings",
    "load_settings",
]
