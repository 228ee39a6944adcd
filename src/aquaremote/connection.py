"""
Push channel connection manager

Keeps one WebSocket open to the tank controller, reconnecting after a flat
delay whenever it drops, and forwards telemetry frames to the reconciler.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from .commands.encoder import Command, encode_message
from .constants import PUSH_CHANNEL_PORT, RECONNECT_DELAY_DEFAULT
from .errors import ProtocolError, TransportError
from .events import TelemetryEvent, TelemetrySink
from .models import ConnectionHealth, TelemetrySource

logger = logging.getLogger(__name__)


def push_url(address: str) -> str:
    """Return the WebSocket URL of the device's push channel."""
    return f"ws://{address}:{PUSH_CHANNEL_PORT}/"


def decode_frame(frame: Union[str, bytes]) -> Dict[str, Any]:
    """Decode a telemetry frame into a JSON object, raising ProtocolError."""
    try:
        if isinstance(frame, (bytes, bytearray)):
            frame = frame.decode("utf-8")
        data = json.loads(frame)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ProtocolError(
            "Push frame is not valid JSON",
            details={"frame": repr(frame)[:200]},
            cause=exc,
        ) from exc
    if not isinstance(data, dict):
        raise ProtocolError("Push frame is not a JSON object", details={"frame": repr(frame)[:200]})
    return data


class ConnectionManager:
    """WebSocket client for the device push channel.

    Health is written only here. ``send`` never queues: a message sent while
    the channel is not connected is logged and dropped.
    """

    def __init__(
        self,
        address: str,
        sink: TelemetrySink,
        *,
        generation: int = 0,
        reconnect_delay: float = RECONNECT_DELAY_DEFAULT,
        connector: Optional[Callable[..., Any]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_health_change: Optional[Callable[[ConnectionHealth], None]] = None,
    ):
        self.address = address
        self.url = push_url(address)
        self.generation = generation
        self.reconnect_delay = reconnect_delay
        self._sink = sink
        self._connector = connector or websockets.connect
        self._sleep = sleep
        self._on_health_change = on_health_change
        self._health = ConnectionHealth.DISCONNECTED
        self._ws: Optional[Any] = None
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self.connect_attempts = 0

    @property
    def health(self) -> ConnectionHealth:
        """Current health of the push channel."""
        return self._health

    @property
    def is_running(self) -> bool:
        return self._running

    def _set_health(self, health: ConnectionHealth) -> None:
        if health is self._health:
            return
        previous, self._health = self._health, health
        logger.info("Push channel %s: %s -> %s", self.url, previous.value, health.value)
        if self._on_health_change:
            try:
                self._on_health_change(health)
            except Exception as e:
                logger.error(f"Error in health callback: {e}")

    async def start(self) -> None:
        """Start the connect/reconnect loop in the background."""
        if self._running:
            logger.warning("Connection manager for %s already running", self.url)
            return
        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info("Started push channel client for %s", self.url)

    async def stop(self) -> None:
        """Close the socket and make sure no reconnect follows."""
        # Flag first so the close path of the current socket cannot reschedule
        self._running = False
        task, self._task = self._task, None
        if task:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._ws = None
        self._set_health(ConnectionHealth.DISCONNECTED)
        logger.info("Stopped push channel client for %s", self.url)

    async def _run(self) -> None:
        """Connection loop with flat-delay reconnection."""
        while self._running:
            try:
                await self._connect_and_listen()
            except asyncio.CancelledError:
                raise
            except TransportError as e:
                logger.warning("%s", e.message)
            except Exception:  # pragma: no cover - runtime diagnostics
                logger.exception("Push channel %s failed unexpectedly", self.url)
            finally:
                self._ws = None
            self._set_health(ConnectionHealth.DISCONNECTED)
            if not self._running:
                break
            logger.info("Reconnecting to %s in %.1f seconds...", self.url, self.reconnect_delay)
            await self._sleep(self.reconnect_delay)

    async def _connect_and_listen(self) -> None:
        """Open one socket and read frames until it closes."""
        self._set_health(ConnectionHealth.CONNECTING)
        self.connect_attempts += 1
        try:
            async with self._connector(self.url) as ws:
                self._ws = ws
                self._set_health(ConnectionHealth.CONNECTED)
                await self._listen(ws)
        except ConnectionClosed:
            logger.warning("Push channel %s closed", self.url)
        except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
            raise TransportError(self.address, cause=exc) from exc

    async def _listen(self, ws: Any) -> None:
        async for frame in ws:
            if not self._running:
                return
            try:
                payload = decode_frame(frame)
            except ProtocolError as e:
                logger.warning("Discarding push frame from %s: %s", self.address, e.message)
                continue
            self._sink(
                TelemetryEvent(
                    source=TelemetrySource.PUSH,
                    payload=payload,
                    generation=self.generation,
                    address=self.address,
                )
            )
        logger.warning("Push channel %s closed by peer", self.url)

    async def send(self, message: Command) -> bool:
        """Send a command if the channel is connected.

        Args:
            message: Bare token string, or a dict sent as a JSON envelope

        Returns:
            True if the message was handed to the socket, False if dropped
        """
        text = encode_message(message)
        ws = self._ws
        if self._health is not ConnectionHealth.CONNECTED or ws is None:
            logger.warning("Dropping %r: push channel %s is %s", text, self.url, self._health.value)
            return False
        try:
            await ws.send(text)
        except (ConnectionClosed, OSError) as exc:
            logger.warning("Failed to send %r to %s: %s", text, self.url, exc)
            return False
        logger.debug("Sent %r to %s", text, self.url)
        return True
