"""Configuration helpers for the weighbridge services."""

from .settings import (  # noqa: F401
    CompanySettings,
    PrinterSettings,
    SerialSettings,
    WeighbridgeSettings,
    load_settings,
)

__all__ = [
    "CompanySettings",
    "PrinterSettings",
    "SerialSettings",
    "WeighbridgeSettings",
    "load_settings",
]
