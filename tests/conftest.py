"""Test configuration ensuring the src package is importable, plus shared fakes."""

from __future__ import annotations

import asyncio
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Callable

import pytest

SRC_PATH = Path(__file__).resolve().parents[1] / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep every test away from the real ~/.aqua-remote directory."""
    config_dir = tmp_path / "config"
    monkeypatch.setenv("AQUA_REMOTE_CONFIG_DIR", str(config_dir))
    return config_dir


# ========== Fakes for the device transports ==========
# The push channel is faked at the connector seam; the pull endpoint is
# faked with httpx.MockTransport inside the individual tests.

_CLOSE = object()


class FakeWebSocket:
    """In-memory stand-in for a connected websockets client."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self._incoming: asyncio.Queue = asyncio.Queue()

    async def send(self, text: str) -> None:
        self.sent.append(text)

    def push(self, frame) -> None:
        """Deliver a frame from the device."""
        self._incoming.put_nowait(frame)

    def close_from_peer(self) -> None:
        """Simulate the device closing the socket."""
        self._incoming.put_nowait(_CLOSE)

    def __aiter__(self):
        return self

    async def __anext__(self):
        frame = await self._incoming.get()
        if frame is _CLOSE:
            raise StopAsyncIteration
        return frame


class FakeConnector:
    """Replacement for ``websockets.connect`` that records every attempt."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.urls: list[str] = []
        self.sockets: list[FakeWebSocket] = []
        self.open_sessions: dict[str, int] = {}

    def __call__(self, url: str, **kwargs):
        self.urls.append(url)
        return self._session(url)

    @asynccontextmanager
    async def _session(self, url: str):
        if self.fail:
            raise OSError("connection refused")
        ws = FakeWebSocket()
        self.sockets.append(ws)
        self.open_sessions[url] = self.open_sessions.get(url, 0) + 1
        try:
            yield ws
        finally:
            self.open_sessions[url] -= 1

    @property
    def open_count(self) -> int:
        return sum(self.open_sessions.values())


class RecordingSleep:
    """Sleep replacement that records delays and parks after ``limit`` calls."""

    def __init__(self, limit: int | None = None) -> None:
        self.calls: list[float] = []
        self.limit = limit
        self.reached = asyncio.Event()

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)
        if self.limit is not None and len(self.calls) >= self.limit:
            self.reached.set()
            await asyncio.Event().wait()
        await asyncio.sleep(0)


async def park(delay: float) -> None:
    """Sleep replacement that never returns until cancelled."""
    await asyncio.Event().wait()


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the event loop until ``predicate`` holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)
