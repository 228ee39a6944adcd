"""Data model for the tank connectivity core.

Telemetry arriving from the device is validated with pydantic; the state the
core hands to the presentation layer is made of small immutable dataclasses.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class ConnectionHealth(str, Enum):
    """Health of the push channel, owned by the connection manager."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class TelemetrySource(str, Enum):
    """Which data path delivered a reading."""

    PUSH = "push"
    PULL = "pull"


class TelemetryPayload(BaseModel):
    """Telemetry object as sent by the device on either data path.

    ``water_level`` is the ultrasonic distance from sensor to water surface;
    some firmware builds call it ``distance``.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    temperature: Optional[float] = None
    water_level: Optional[float] = None
    distance: Optional[float] = None

    @field_validator("temperature", "water_level", "distance", mode="before")
    @classmethod
    def _require_number(cls, value: Any) -> Any:
        if value is None:
            return None
        # bool is an int subclass; strings would be coerced by pydantic
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"expected a number, got {type(value).__name__}")
        if not math.isfinite(value):
            raise ValueError("expected a finite number")
        return value

    @model_validator(mode="after")
    def _require_any_reading(self) -> "TelemetryPayload":
        if self.temperature is None and self.distance_cm is None:
            raise ValueError("payload carries no telemetry fields")
        return self

    @property
    def distance_cm(self) -> Optional[float]:
        """Return the water distance, preferring ``water_level`` over ``distance``."""
        if self.water_level is not None:
            return self.water_level
        return self.distance


@dataclass(frozen=True, slots=True)
class TankState:
    """Authoritative snapshot of the tank; ``None`` means unknown."""

    temperature_celsius: float | None = None
    water_level_distance_cm: float | None = None
    last_updated_source: TelemetrySource | None = None
    last_updated_at: float | None = None


class ScheduleSettings(BaseModel):
    """Last schedule values sent to the device; not interpreted locally."""

    feeding_time: Optional[str] = None
    water_change_interval_hours: Optional[str] = None


@dataclass(slots=True)
class ReminderRecord:
    """Countdown for a single reminder."""

    remaining_seconds: int
    fired: bool = False
