"""Translate user intents into device commands.

Actuator state here is optimistic: it records what was last commanded. The
controller never acknowledges a command, so there is nothing to confirm it
against.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from ..constants import ACTUATOR_ALIASES, ACTUATOR_PINS
from ..errors import CommandValidationError, UnknownActuatorError
from ..models import ScheduleSettings
from .encoder import (
    Command,
    actuator_token,
    feeding_time_message,
    water_change_interval_message,
)

logger = logging.getLogger(__name__)

SendFn = Callable[[Command], Awaitable[bool]]

FEEDING_TIME = "feedingTime"
WATER_CHANGE_INTERVAL = "waterChangeInterval"

SCHEDULE_KINDS = {
    "feedingTime": FEEDING_TIME,
    "feeding_time": FEEDING_TIME,
    "waterChangeInterval": WATER_CHANGE_INTERVAL,
    "water_change_interval": WATER_CHANGE_INTERVAL,
}


class CommandDispatcher:
    """Owns ActuatorState and ScheduleSettings; all sends are best-effort."""

    def __init__(self, send: SendFn, pins: Optional[Mapping[str, str]] = None):
        self._send = send
        self._pins: Dict[str, str] = dict(pins or ACTUATOR_PINS)
        self._actuators: Dict[str, bool] = {name: False for name in self._pins}
        self._schedule = ScheduleSettings()

    @property
    def actuators(self) -> Dict[str, bool]:
        """Copy of the last commanded state of each actuator."""
        return dict(self._actuators)

    @property
    def schedule(self) -> ScheduleSettings:
        return self._schedule.model_copy()

    def resolve_actuator(self, name: str) -> str:
        """Return the canonical actuator name, raising UnknownActuatorError."""
        key = ACTUATOR_ALIASES.get(name, name)
        if key not in self._pins:
            raise UnknownActuatorError(name, sorted(self._pins))
        return key

    async def toggle_actuator(self, name: str) -> tuple[bool, bool]:
        """Flip an actuator and send the token for its new state.

        Returns:
            (new_state, sent) where ``sent`` is False if the channel was down
        """
        key = self.resolve_actuator(name)
        new_state = not self._actuators[key]
        self._actuators[key] = new_state
        token = actuator_token(self._pins[key], new_state)
        sent = await self._send(token)
        logger.info("Actuator %s -> %s (%s)", key, token, "sent" if sent else "not sent")
        return new_state, sent

    async def set_schedule(self, kind: str, value: Any) -> bool:
        """Validate and send a schedule setting.

        Raises:
            CommandValidationError: Unknown kind or empty value; nothing is sent

        Returns:
            True if the message reached the transport
        """
        canonical = SCHEDULE_KINDS.get(kind)
        if canonical is None:
            raise CommandValidationError(
                f"Unknown schedule setting '{kind}'",
                details={"kind": kind, "known": sorted(set(SCHEDULE_KINDS.values()))},
            )

        if canonical == FEEDING_TIME:
            if not isinstance(value, str) or not value.strip():
                raise CommandValidationError("Feeding time must not be empty", details={"kind": kind})
            feeding_time = value.strip()
            message: Command = feeding_time_message(feeding_time)
            self._schedule = self._schedule.model_copy(update={"feeding_time": feeding_time})
        else:
            if value is None or isinstance(value, bool) or not str(value).strip():
                raise CommandValidationError(
                    "Water change interval is required", details={"kind": kind}
                )
            interval = str(value).strip()
            message = water_change_interval_message(interval)
            self._schedule = self._schedule.model_copy(
                update={"water_change_interval_hours": interval}
            )

        sent = await self._send(message)
        logger.info("Schedule %s=%s (%s)", canonical, message, "sent" if sent else "not sent")
        return sent
