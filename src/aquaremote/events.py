"""Event types exchanged between the data paths and the reconciling loop."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from .models import TelemetrySource


@dataclass(frozen=True, slots=True)
class TelemetryEvent:
    """A raw reading tagged with the path and generation it was issued under."""

    source: TelemetrySource
    payload: Any
    generation: int
    address: str


TelemetrySink = Callable[[TelemetryEvent], None]
