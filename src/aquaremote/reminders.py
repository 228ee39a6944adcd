"""Local feed and water-change countdowns.

The countdowns tick on their own 1 second timer and do not depend on the
device being reachable. A reminder that reaches zero latches as fired for
the rest of the process lifetime.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from .constants import (
    FEED_COUNTDOWN_DEFAULT,
    REMINDER_TICK_SECONDS,
    WATER_CHANGE_COUNTDOWN_DEFAULT,
)
from .models import ReminderRecord

logger = logging.getLogger(__name__)

FEED = "feed"
WATER_CHANGE = "water_change"

_PENDING_LABELS = {FEED: "Feed in", WATER_CHANGE: "Water change in"}
_FIRED_MESSAGES = {FEED: "Reminder: Feed the fish!", WATER_CHANGE: "Reminder: Change the water!"}


def format_remaining(seconds: int) -> str:
    """Render a countdown as ``M:SS``."""
    if seconds < 0:
        raise ValueError(f"remaining seconds must be >= 0, got {seconds}")
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


def reminder_text(name: str, record: ReminderRecord) -> str:
    """Return the line a UI shows for a reminder."""
    if record.fired:
        return _FIRED_MESSAGES[name]
    return f"{_PENDING_LABELS[name]}: {format_remaining(record.remaining_seconds)}"


class ReminderScheduler:
    """Two independent countdowns on a fixed local tick."""

    def __init__(
        self,
        feed_seconds: int = FEED_COUNTDOWN_DEFAULT,
        water_change_seconds: int = WATER_CHANGE_COUNTDOWN_DEFAULT,
        *,
        tick_seconds: float = REMINDER_TICK_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if feed_seconds < 0 or water_change_seconds < 0:
            raise ValueError("countdown values must be >= 0")
        self._records: Dict[str, ReminderRecord] = {
            FEED: ReminderRecord(feed_seconds, fired=feed_seconds == 0),
            WATER_CHANGE: ReminderRecord(water_change_seconds, fired=water_change_seconds == 0),
        }
        self._tick_seconds = tick_seconds
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def snapshot(self) -> Dict[str, ReminderRecord]:
        """Return copies of both reminder records."""
        return {
            name: ReminderRecord(record.remaining_seconds, record.fired)
            for name, record in self._records.items()
        }

    def tick(self) -> None:
        """Advance both countdowns by one second."""
        for name, record in self._records.items():
            if record.fired:
                continue
            record.remaining_seconds = max(0, record.remaining_seconds - 1)
            if record.remaining_seconds == 0:
                record.fired = True
                logger.info("%s", _FIRED_MESSAGES[name])

    async def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _run(self) -> None:
        while True:
            await self._sleep(self._tick_seconds)
            self.tick()
