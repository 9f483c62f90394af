"""Weighbridge indicator connection with simulation fallback."""
from __future__ import annotations

import asyncio
import enum
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from weighbridge.core.errors import SampleOutOfRange, TransportOpenFailed, TransportRuntimeError
from weighbridge.core.events import Broadcaster, FeedEvent, StatusEvent, WeightEvent
from weighbridge.core.log import get_logger
from weighbridge.core.scheduling import PeriodicTask
from weighbridge.serial_transport import FeedTransport, SerialTransport, list_serial_ports
from weighbridge.simulation import SIMULATION_INTERVAL, SimulationGenerator
from weighbridge.stability import StabilityFilter, WeightSample, WeightUpdate
from weighbridge.weight_parser import LineBuffer, check_range, parse_weight_line

LOG = get_logger("serial")

RECONNECT_POLL_INTERVAL = 5.0
ERROR_LOG_INTERVAL = 5.0

EndpointLister = Callable[[], Awaitable[List[Dict[str, Any]]]]


class ConnectionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    SIMULATING = "simulating"


class ConnectionManager:
    """Own the indicator connection and feed samples to subscribers.

    ``initialize``/``reconnect`` start a single connect attempt. When the port
    cannot be opened, or drops later, the manager switches to the simulated
    feed and polls the port list until the configured device reappears.
    """

    def __init__(
        self,
        broadcaster: Broadcaster,
        *,
        transport_factory: Callable[[], FeedTransport] = SerialTransport,
        list_endpoints: EndpointLister = list_serial_ports,
        stability: Optional[StabilityFilter] = None,
        poll_interval: float = RECONNECT_POLL_INTERVAL,
        simulation_interval: float = SIMULATION_INTERVAL,
        simulation: Optional[SimulationGenerator] = None,
    ) -> None:
        self._broadcaster = broadcaster
        self._transport_factory = transport_factory
        self._list_endpoints = list_endpoints
        self._stability = stability or StabilityFilter()
        self._simulation = simulation or SimulationGenerator(
            self._on_simulated_sample,
            lambda: self._state is ConnectionState.CONNECTED,
            interval=simulation_interval,
        )
        self._poll = PeriodicTask("serial-reconnect-poll", poll_interval, self._poll_endpoints)
        self._path: Optional[str] = None
        self._baud = 9600
        self._state = ConnectionState.DISCONNECTED
        self._connecting = False
        self._transport: Optional[FeedTransport] = None
        self._reader: Optional[asyncio.Task[None]] = None
        self._attempt: Optional[asyncio.Task[None]] = None
        self._closing: Set[asyncio.Task[None]] = set()
        self._lines = LineBuffer()
        self._current_weight: float = 0.0
        self._last_error_log = 0.0
        broadcaster.set_snapshot_provider(self.current_events)

    # ------------------------------------------------------------------
    # Read-only state
    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def simulation(self) -> bool:
        return self._simulation.running

    @property
    def connecting(self) -> bool:
        return self._connecting

    @property
    def port(self) -> Optional[str]:
        return self._path

    @property
    def baud_rate(self) -> int:
        return self._baud

    def snapshot(self) -> Dict[str, Any]:
        return {
            "weight": self._current_weight,
            "stableWeight": self._stability.stable_weight,
            "simulation": self.simulation,
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        }

    def status(self) -> Dict[str, Any]:
        return {
            "state": self._state.value,
            "connected": self.connected,
            "simulation": self.simulation,
            "port": self._path,
            "baudRate": self._baud,
        }

    def current_events(self) -> List[FeedEvent]:
        """Synthetic events handed to a subscriber when it joins."""

        return [
            WeightEvent(
                weight=self._current_weight,
                stable=False,
                stable_weight=self._stability.stable_weight,
                simulation=self.simulation,
                timestamp=time.time(),
            ),
            StatusEvent(connected=self.connected, simulation=self.simulation),
        ]

    async def available_endpoints(self) -> List[Dict[str, Any]]:
        return await self._list_endpoints()

    # ------------------------------------------------------------------
    # Lifecycle
    async def initialize(self, path: str, baud: int = 9600) -> None:
        self._path = path
        self._baud = int(baud)
        await self._try_connect()

    async def reconnect(self, path: str, baud: int = 9600) -> None:
        LOG.info("Serial reconnect requested: %s @ %s", path, baud)
        self._path = path
        self._baud = int(baud)
        await self._drop_transport()
        self._simulation.stop()
        self._poll.stop()
        if not self._connecting:
            self._state = ConnectionState.DISCONNECTED
        await self._try_connect()

    async def shutdown(self) -> None:
        self._simulation.stop()
        self._poll.stop()
        attempt, self._attempt = self._attempt, None
        if attempt is not None and not attempt.done():
            attempt.cancel()
            try:
                await attempt
            except asyncio.CancelledError:
                pass
        await self._drop_transport()
        self._state = ConnectionState.DISCONNECTED
        LOG.info("Serial connection manager stopped")

    # ------------------------------------------------------------------
    # Connection attempts
    async def _try_connect(self) -> None:
        """Start a connect attempt unless one is pending, then wait for it.

        The attempt runs in its own task, so cancelling the caller (the
        reconnect poll being stopped, for one) leaves it running to completion.
        """
        if self._connecting or self._path is None:
            return
        self._connecting = True
        self._state = ConnectionState.CONNECTING
        self._attempt = asyncio.get_running_loop().create_task(
            self._connect_once(self._path, self._baud), name="serial-connect"
        )
        await asyncio.shield(self._attempt)

    async def _connect_once(self, path: str, baud: int) -> None:
        transport = self._transport_factory()
        try:
            await transport.open(path, baud)
        except asyncio.CancelledError:
            self._connecting = False
            self._close_later(transport)
            raise
        except TransportOpenFailed as exc:
            self._connecting = False
            self._log_throttled("Serial %s: %s", path, exc)
            self._fall_back_to_simulation()
            return
        except Exception:
            self._connecting = False
            LOG.exception("Unexpected error opening %s", path)
            self._close_later(transport)
            self._fall_back_to_simulation()
            return

        self._connecting = False
        self._transport = transport
        self._state = ConnectionState.CONNECTED
        self._lines.clear()
        self._stability.reset()
        self._simulation.stop()
        self._poll.stop()
        LOG.info("Serial port %s opened at %d baud", path, baud)
        self._broadcast_status()
        self._reader = asyncio.get_running_loop().create_task(
            self._read_loop(transport), name="serial-reader"
        )

    def _fall_back_to_simulation(self) -> None:
        self._state = ConnectionState.SIMULATING
        if not self._simulation.running:
            self._stability.reset()
        self._simulation.start()
        self._start_reconnect_poll()
        self._broadcast_status()

    def _start_reconnect_poll(self) -> None:
        if self._poll.running:
            return
        LOG.info("Serial reconnect poll started (every %.0f s)", self._poll.interval)
        self._poll.start()

    async def _poll_endpoints(self) -> None:
        if self.connected:
            self._poll.stop()
            return
        if self._connecting or self._path is None:
            return
        endpoints = await self._list_endpoints()
        wanted = self._path.lower()
        if any(str(item.get("path", "")).lower() == wanted for item in endpoints):
            LOG.info("Port %s detected; reconnecting", self._path)
            await self._try_connect()

    async def _read_loop(self, transport: FeedTransport) -> None:
        try:
            while True:
                data = await transport.read()
                if not data:
                    await asyncio.sleep(0.01)
                    continue
                for line in self._lines.feed(data):
                    self.handle_line(line)
        except TransportRuntimeError as exc:
            self._on_transport_lost(transport, str(exc))

    def _on_transport_lost(self, transport: FeedTransport, reason: str) -> None:
        if transport is not self._transport:
            return
        LOG.warning("Serial port lost (%s); falling back to simulation", reason or "closed")
        self._transport = None
        self._reader = None
        self._close_later(transport)
        self._fall_back_to_simulation()

    def _close_later(self, transport: FeedTransport) -> None:
        task = asyncio.get_running_loop().create_task(transport.close(), name="serial-close")
        self._closing.add(task)
        task.add_done_callback(self._on_closed)

    def _on_closed(self, task: "asyncio.Task[None]") -> None:
        self._closing.discard(task)
        if not task.cancelled() and task.exception() is not None:
            LOG.warning("Closing serial transport failed: %s", task.exception())

    async def _drop_transport(self) -> None:
        reader, self._reader = self._reader, None
        transport, self._transport = self._transport, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass
        if transport is not None:
            await transport.close()
        if self._closing:
            await asyncio.gather(*self._closing, return_exceptions=True)

    # ------------------------------------------------------------------
    # Samples
    def handle_line(self, line: bytes | str) -> Optional[WeightUpdate]:
        value = parse_weight_line(line)
        if value is None:
            LOG.debug("Dropped unparseable line: %r", line)
            return None
        return self._accept(value, simulation=False)

    def _on_simulated_sample(self, value: float) -> None:
        self._accept(value, simulation=True)

    def _accept(self, value: float, *, simulation: bool) -> Optional[WeightUpdate]:
        try:
            check_range(value)
        except SampleOutOfRange as exc:
            LOG.debug("Dropped sample: %s", exc)
            return None
        self._current_weight = value
        update = self._stability.ingest(WeightSample(value), simulation=simulation)
        self._broadcaster.publish(
            WeightEvent(
                weight=update.weight,
                stable=update.stable,
                stable_weight=update.stable_weight,
                simulation=update.simulation,
                timestamp=update.timestamp,
            )
        )
        return update

    def _broadcast_status(self) -> None:
        self._broadcaster.publish(StatusEvent(connected=self.connected, simulation=self.simulation))

    def _log_throttled(self, message: str, *args: object) -> None:
        now = time.monotonic()
        if now - self._last_error_log > ERROR_LOG_INTERVAL:
            LOG.warning(message, *args)
            self._last_error_log = now


__all__ = ["ConnectionManager", "ConnectionState", "RECONNECT_POLL_INTERVAL"]
