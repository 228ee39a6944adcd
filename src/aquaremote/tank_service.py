"""Tank service: the context object that owns the connectivity core.

Holds every handle the core needs (push channel, poller, reminder timer,
event queue) and exposes the presentation contract: readable state plus the
``toggle_actuator``, ``set_schedule``, ``set_address`` and ``refresh_now``
operations.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from .commands import CommandDispatcher
from .commands.encoder import Command
from .connection import ConnectionManager
from .constants import (
    DEFAULT_DEVICE_ADDRESS,
    FEED_COUNTDOWN_DEFAULT,
    POLL_INTERVAL_DEFAULT,
    RECONNECT_DELAY_DEFAULT,
    WATER_CHANGE_COUNTDOWN_DEFAULT,
)
from .errors import CommandValidationError, ErrorCode, ProtocolError
from .events import TelemetryEvent
from .models import ConnectionHealth, ReminderRecord, ScheduleSettings, TankState
from .poller import TelemetryPoller
from .reconciler import StateReconciler, water_level_percent
from .reminders import ReminderScheduler
from .settings import DeviceSettings
from .utils import get_config_dir, get_env_bool, get_env_float, get_env_int, get_env_str
from .utils.serializers import snapshot_to_dict

logger = logging.getLogger(__name__)

# Environment variable names
DEVICE_ADDRESS_ENV = "AQUA_REMOTE_DEVICE_ADDRESS"
POLL_INTERVAL_ENV = "AQUA_REMOTE_POLL_INTERVAL"
RECONNECT_DELAY_ENV = "AQUA_REMOTE_RECONNECT_DELAY"
FEED_COUNTDOWN_ENV = "AQUA_REMOTE_FEED_COUNTDOWN"
WATER_CHANGE_COUNTDOWN_ENV = "AQUA_REMOTE_WATER_CHANGE_COUNTDOWN"
PERSIST_ADDRESS_ENV = "AQUA_REMOTE_PERSIST_ADDRESS"

_ADDRESS_RE = re.compile(r"^[A-Za-z0-9.\-]+$")


def normalize_address(address: Any) -> str:
    """Validate an operator-supplied host or IP and return it stripped.

    Raises:
        CommandValidationError: Empty, or contains a scheme, path or spaces
    """
    if not isinstance(address, str) or not address.strip():
        raise CommandValidationError(
            "Device address must not be empty", code=ErrorCode.INVALID_ADDRESS
        )
    host = address.strip()
    if not _ADDRESS_RE.match(host):
        raise CommandValidationError(
            f"Invalid device address '{host}'; expected a host name or IP",
            details={"address": host},
            code=ErrorCode.INVALID_ADDRESS,
        )
    return host


class TankService:
    """Owns the connection manager, poller, reconciler, dispatcher and reminders."""

    def __init__(
        self,
        *,
        settings: Optional[DeviceSettings] = None,
        poll_interval: Optional[float] = None,
        reconnect_delay: Optional[float] = None,
        feed_seconds: Optional[int] = None,
        water_change_seconds: Optional[int] = None,
        connector: Optional[Callable[..., Any]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._persist_address = get_env_bool(PERSIST_ADDRESS_ENV, True)
        self._poll_interval = (
            poll_interval
            if poll_interval is not None
            else get_env_float(POLL_INTERVAL_ENV, POLL_INTERVAL_DEFAULT)
        )
        self._reconnect_delay = (
            reconnect_delay
            if reconnect_delay is not None
            else get_env_float(RECONNECT_DELAY_ENV, RECONNECT_DELAY_DEFAULT)
        )
        self._connector = connector
        self._sleep = sleep

        self._events: asyncio.Queue[TelemetryEvent] = asyncio.Queue()
        self._generation = 0
        self._address: Optional[str] = None
        self._connection: Optional[ConnectionManager] = None
        self._consumer_task: Optional[asyncio.Task] = None
        self._started = False
        # Serializes start/stop/retarget so two managers never overlap
        self._lock = asyncio.Lock()

        self._reconciler = StateReconciler()
        self._dispatcher = CommandDispatcher(self._send)
        self._poller = TelemetryPoller(self._enqueue, client=http_client, sleep=sleep)
        self._reminders = ReminderScheduler(
            feed_seconds
            if feed_seconds is not None
            else get_env_int(FEED_COUNTDOWN_ENV, FEED_COUNTDOWN_DEFAULT),
            water_change_seconds
            if water_change_seconds is not None
            else get_env_int(WATER_CHANGE_COUNTDOWN_ENV, WATER_CHANGE_COUNTDOWN_DEFAULT),
            sleep=sleep,
        )

    @classmethod
    def from_env(cls) -> "TankService":
        """Build a service using the configuration directory from the environment."""
        return cls(settings=DeviceSettings(get_config_dir()))

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def address(self) -> Optional[str]:
        return self._address

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_running(self) -> bool:
        return self._started

    @property
    def health(self) -> ConnectionHealth:
        if self._connection is None:
            return ConnectionHealth.DISCONNECTED
        return self._connection.health

    @property
    def tank_state(self) -> TankState:
        return self._reconciler.current_state()

    @property
    def water_level_percent(self) -> Optional[float]:
        return water_level_percent(self.tank_state.water_level_distance_cm)

    @property
    def actuators(self) -> Dict[str, bool]:
        return self._dispatcher.actuators

    @property
    def schedule(self) -> ScheduleSettings:
        return self._dispatcher.schedule

    @property
    def reminders(self) -> Dict[str, ReminderRecord]:
        return self._reminders.snapshot()

    def get_snapshot(self) -> Dict[str, Any]:
        """Return the full presentation snapshot as JSON-safe primitives."""
        return snapshot_to_dict(self)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _initial_address(self) -> str:
        if self._address:
            return self._address
        if self._settings is not None:
            persisted = self._settings.get_device_address()
            if persisted:
                return persisted
        return get_env_str(DEVICE_ADDRESS_ENV, DEFAULT_DEVICE_ADDRESS)

    async def start(self, address: Optional[str] = None) -> None:
        """Start the event loop, reminders, push channel and poller."""
        async with self._lock:
            if self._started:
                logger.warning("Tank service already running for %s", self._address)
                return
            target = normalize_address(
                address if address is not None else self._initial_address()
            )
            self._started = True
            self._consumer_task = asyncio.create_task(self._consume_events())
            await self._reminders.start()
            await self._retarget(target)
        logger.info("Tank service started for %s", target)

    async def stop(self) -> None:
        """Tear down in order: polling, reminders, socket, event loop, HTTP client."""
        async with self._lock:
            await self._poller.stop()
            await self._reminders.stop()
            if self._connection is not None:
                await self._connection.stop()
            consumer, self._consumer_task = self._consumer_task, None
            if consumer:
                consumer.cancel()
                try:
                    await consumer
                except asyncio.CancelledError:
                    pass
            await self._poller.aclose()
            self._started = False
        logger.info("Tank service stopped")

    async def _retarget(self, address: str) -> None:
        """Point both data paths at ``address`` under a fresh generation.

        Callers must hold ``self._lock``.
        """
        self._generation += 1
        generation = self._generation
        await self._poller.stop()
        if self._connection is not None:
            await self._connection.stop()
            self._connection = None
        self._reconciler.reset()
        self._address = address

        self._connection = ConnectionManager(
            address,
            self._enqueue,
            generation=generation,
            reconnect_delay=self._reconnect_delay,
            connector=self._connector,
            sleep=self._sleep,
        )
        await self._connection.start()
        await self._poller.start(address, self._poll_interval, generation=generation)
        logger.info("Targeting device %s (generation %d)", address, generation)

    async def set_address(self, address: str) -> str:
        """Re-target the core at a new device address.

        Concurrent calls are applied one after another; the last one wins.

        Raises:
            CommandValidationError: If the address is empty or malformed
        """
        host = normalize_address(address)
        async with self._lock:
            if self._started and host == self._address:
                return host
            if self._started:
                await self._retarget(host)
            else:
                self._address = host
            if self._settings is not None and self._persist_address:
                self._settings.set_device_address(host)
        return host

    # ------------------------------------------------------------------
    # Telemetry
    # ------------------------------------------------------------------

    def _enqueue(self, event: TelemetryEvent) -> None:
        self._events.put_nowait(event)

    def _handle_event(self, event: TelemetryEvent) -> bool:
        """Apply one event if it belongs to the current generation."""
        if event.generation != self._generation:
            logger.debug(
                "Discarding %s reading for %s from generation %d (current %d)",
                event.source.value,
                event.address,
                event.generation,
                self._generation,
            )
            return False
        try:
            self._reconciler.apply_reading(event.source, event.payload)
        except ProtocolError as e:
            logger.warning(
                "Rejected %s reading from %s: %s", event.source.value, event.address, e.message
            )
            return False
        return True

    def process_pending(self) -> int:
        """Apply every queued event now; returns how many were applied."""
        applied = 0
        while True:
            try:
                event = self._events.get_nowait()
            except asyncio.QueueEmpty:
                return applied
            try:
                if self._handle_event(event):
                    applied += 1
            finally:
                self._events.task_done()

    async def _consume_events(self) -> None:
        while True:
            event = await self._events.get()
            try:
                self._handle_event(event)
            except Exception:  # pragma: no cover - runtime diagnostics
                logger.exception("Failed to apply telemetry event")
            finally:
                self._events.task_done()

    async def refresh_now(self) -> TankState:
        """Force an immediate pull and return the resulting state."""
        await self._poller.fetch_once()
        self.process_pending()
        return self.tank_state

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def _send(self, command: Command) -> bool:
        if self._connection is None:
            logger.warning("Dropping %r: no device connection configured", command)
            return False
        return await self._connection.send(command)

    def resolve_actuator(self, name: str) -> str:
        """Return the canonical actuator name for ``name`` or an alias of it."""
        return self._dispatcher.resolve_actuator(name)

    async def toggle_actuator(self, name: str) -> tuple[bool, bool]:
        """Flip an actuator; returns (new_state, sent)."""
        return await self._dispatcher.toggle_actuator(name)

    async def set_schedule(self, kind: str, value: Any) -> bool:
        """Send a schedule setting; returns whether it reached the transport."""
        return await self._dispatcher.set_schedule(kind, value)
