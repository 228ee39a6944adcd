"""
Telemetry poller

Fetches ``http://<address>/data`` on a fixed period, independent of the push
channel, and forwards each reading to the reconciler.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set

import httpx

from .constants import POLL_INTERVAL_DEFAULT, PULL_DATA_PATH
from .errors import ProtocolError, TankError, TransportError
from .events import TelemetryEvent, TelemetrySink
from .models import TelemetrySource

logger = logging.getLogger(__name__)


def pull_url(address: str) -> str:
    """Return the URL of the device's data endpoint."""
    return f"http://{address}{PULL_DATA_PATH}"


class TelemetryPoller:
    """Periodic one-shot fetches of current sensor readings.

    Every fetch remembers the generation it was issued under; a response that
    comes back after the target changed is dropped instead of delivered.
    """

    def __init__(
        self,
        sink: TelemetrySink,
        *,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._sink = sink
        self._client = client
        self._sleep = sleep
        self._address: Optional[str] = None
        self._interval = POLL_INTERVAL_DEFAULT
        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def address(self) -> Optional[str]:
        return self._address

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def aclose(self) -> None:
        """Stop polling and close the HTTP client."""
        await self.stop()
        if self._client:
            await self._client.aclose()
            self._client = None

    async def start(
        self,
        address: str,
        interval: float = POLL_INTERVAL_DEFAULT,
        *,
        generation: Optional[int] = None,
    ) -> None:
        """Begin polling ``address``; an existing poll is stopped first."""
        await self.stop()
        self._address = address
        self._interval = interval
        self._generation = self._generation + 1 if generation is None else generation
        self._task = asyncio.create_task(self._run())
        logger.info(
            "Polling %s every %.1fs (generation %d)", pull_url(address), interval, self._generation
        )

    async def stop(self) -> None:
        """Cancel the periodic tick and every fetch still in flight."""
        task, self._task = self._task, None
        pending = list(self._inflight)
        self._inflight.clear()
        for t in [task, *pending]:
            if t is not None:
                t.cancel()
        for t in [task, *pending]:
            if t is None:
                continue
            try:
                await t
            except asyncio.CancelledError:
                pass

    async def _run(self) -> None:
        while True:
            fetch = asyncio.create_task(self.fetch_once())
            self._inflight.add(fetch)
            fetch.add_done_callback(self._inflight.discard)
            await self._sleep(self._interval)

    async def fetch_once(self) -> bool:
        """Fetch one reading now and deliver it if still current.

        Returns:
            True if a reading was delivered, False if skipped or stale
        """
        address = self._address
        generation = self._generation
        if address is None:
            logger.warning("Poll requested before a device address was set")
            return False
        try:
            payload = await self._fetch(address)
        except TankError as e:
            logger.warning("Skipping poll of %s: %s", address, e.message)
            return False
        if generation != self._generation:
            logger.debug(
                "Discarding stale reading from %s (generation %d, current %d)",
                address,
                generation,
                self._generation,
            )
            return False
        self._sink(
            TelemetryEvent(
                source=TelemetrySource.PULL,
                payload=payload,
                generation=generation,
                address=address,
            )
        )
        return True

    async def _fetch(self, address: str) -> Dict[str, Any]:
        client = await self._get_client()
        url = pull_url(address)
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransportError(address, cause=exc) from exc
        try:
            data = response.json()
        except ValueError as exc:
            raise ProtocolError(
                f"Response from {url} is not JSON", details={"body": response.text[:200]}, cause=exc
            ) from exc
        if not isinstance(data, dict):
            raise ProtocolError(f"Response from {url} is not a JSON object")
        return data
