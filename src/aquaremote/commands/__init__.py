"""Command encoding and dispatch for the tank controller."""

from .dispatcher import FEEDING_TIME, WATER_CHANGE_INTERVAL, CommandDispatcher
from .encoder import (
    actuator_token,
    encode_message,
    feeding_time_message,
    water_change_interval_message,
)

__all__ = [
    "CommandDispatcher",
    "FEEDING_TIME",
    "WATER_CHANGE_INTERVAL",
    "actuator_token",
    "encode_message",
    "feeding_time_message",
    "water_change_interval_message",
]
