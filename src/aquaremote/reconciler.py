"""Merge telemetry from the push channel and the pull endpoint into one TankState.

Push and pull are not ordered relative to each other and both describe the
*current* tank, so the reconciler applies last-arrival-wins regardless of
which path a reading came from.
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Any, Callable

from pydantic import ValidationError

from .constants import WATER_LEVEL_EMPTY_CM, WATER_LEVEL_FULL_CM
from .errors import ProtocolError
from .models import TankState, TelemetryPayload, TelemetrySource

logger = logging.getLogger(__name__)


def water_level_percent(distance_cm: float | None) -> float | None:
    """Convert sensor-to-surface distance into a fill percentage.

    Calibration of the controller's ultrasonic sensor: 5 cm or closer is a
    full tank, 17 cm or further is empty, linear in between.
    """
    if distance_cm is None:
        return None
    if distance_cm <= WATER_LEVEL_FULL_CM:
        return 100.0
    if distance_cm >= WATER_LEVEL_EMPTY_CM:
        return 0.0
    span = WATER_LEVEL_EMPTY_CM - WATER_LEVEL_FULL_CM
    return ((WATER_LEVEL_EMPTY_CM - distance_cm) / span) * 100


def parse_payload(payload: Any) -> TelemetryPayload:
    """Validate a decoded telemetry object, raising ProtocolError on bad shape."""
    if isinstance(payload, TelemetryPayload):
        return payload
    if not isinstance(payload, dict):
        raise ProtocolError(
            "Telemetry payload must be a JSON object",
            details={"type": type(payload).__name__},
        )
    try:
        return TelemetryPayload.model_validate(payload)
    except ValidationError as exc:
        raise ProtocolError(
            "Telemetry payload has unexpected shape",
            details={"errors": exc.errors(include_url=False)},
            cause=exc,
        ) from exc


class StateReconciler:
    """Sole writer of the TankState snapshot."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._state = TankState()

    def apply_reading(self, source: TelemetrySource, payload: Any) -> TankState:
        """Apply one reading and return the new snapshot.

        Fields absent from the payload keep their previous value, so a known
        reading never reverts to unknown.

        Raises:
            ProtocolError: If the payload is invalid; state is left untouched
        """
        reading = parse_payload(payload)
        changes: dict[str, Any] = {
            "last_updated_source": TelemetrySource(source),
            "last_updated_at": self._clock(),
        }
        if reading.temperature is not None:
            changes["temperature_celsius"] = reading.temperature
        if reading.distance_cm is not None:
            changes["water_level_distance_cm"] = reading.distance_cm
        self._state = replace(self._state, **changes)
        logger.debug("Applied %s reading: %s", changes["last_updated_source"].value, reading)
        return self._state

    def current_state(self) -> TankState:
        """Return the immutable snapshot."""
        return self._state

    def reset(self) -> None:
        """Forget everything; only used when the device address changes."""
        self._state = TankState()
