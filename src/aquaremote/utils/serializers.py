"""Serialization helpers for API responses.

These convert the core's dataclasses into JSON-safe primitives.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

from ..models import ReminderRecord, TankState
from ..reconciler import water_level_percent
from ..reminders import format_remaining, reminder_text

if TYPE_CHECKING:
    from ..tank_service import TankService


def serialize_tank_state(state: TankState) -> Dict[str, Any]:
    """Convert a TankState into JSON-safe primitives, adding the fill percentage."""
    return {
        "temperature_celsius": state.temperature_celsius,
        "water_level_distance_cm": state.water_level_distance_cm,
        "water_level_percent": water_level_percent(state.water_level_distance_cm),
        "last_updated_source": (
            state.last_updated_source.value if state.last_updated_source else None
        ),
        "last_updated_at": state.last_updated_at,
    }


def serialize_reminder(name: str, record: ReminderRecord) -> Dict[str, Any]:
    return {
        "remaining_seconds": record.remaining_seconds,
        "remaining": format_remaining(record.remaining_seconds),
        "fired": record.fired,
        "text": reminder_text(name, record),
    }


def snapshot_to_dict(service: "TankService") -> Dict[str, Any]:
    """Build the presentation snapshot for a running TankService."""
    return {
        "address": service.address,
        "health": service.health.value,
        "tank": serialize_tank_state(service.tank_state),
        "actuators": service.actuators,
        "schedule": service.schedule.model_dump(),
        "reminders": {
            name: serialize_reminder(name, record)
            for name, record in service.reminders.items()
        },
    }
