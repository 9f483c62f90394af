"""Explicitly constructed services shared by the HTTP surface."""
from __future__ import annotations

from typing import Optional

from weighbridge.config.settings import WeighbridgeSettings, load_settings
from weighbridge.core.events import Broadcaster
from weighbridge.core.log import get_logger
from weighbridge.serial_scale_service import ConnectionManager
from weighbridge.services.printer_service import PrintDispatcher

LOG = get_logger("app")


class WeighbridgeServices:
    """Owns the feed connection, its broadcaster and the print dispatcher."""

    def __init__(
        self,
        settings: Optional[WeighbridgeSettings] = None,
        *,
        broadcaster: Optional[Broadcaster] = None,
        connection: Optional[ConnectionManager] = None,
        dispatcher: Optional[PrintDispatcher] = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.broadcaster = broadcaster or Broadcaster()
        self.connection = connection or ConnectionManager(self.broadcaster)
        self.dispatcher = dispatcher or PrintDispatcher(self.settings.printer)
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> None:
        if self._started:
            return
        serial_cfg = self.settings.serial
        LOG.info("Starting weighbridge services (serial=%s @ %d)", serial_cfg.port, serial_cfg.baud_rate)
        await self.connection.initialize(serial_cfg.port, serial_cfg.baud_rate)
        self._started = True

    async def reconfigure_serial(self, port: str, baud_rate: int) -> None:
        self.settings.serial.port = port
        self.settings.serial.baud_rate = baud_rate
        await self.connection.reconnect(port, baud_rate)

    async def shutdown(self) -> None:
        if not self._started:
            return
        self._started = False
        try:
            await self.connection.shutdown()
        except Exception as exc:
            LOG.error("Failed to stop serial connection: %s", exc)


__all__ = ["WeighbridgeServices"]
