"""Command encoders for the tank controller's push channel.

The controller accepts two kinds of client frames: a bare actuator token
such as ``pin1_on`` and a JSON envelope carrying an ``action`` key.
"""

import json
from typing import Any, Dict, Union

from ..constants import ACTION_SET_FEEDING_TIME, ACTION_SET_WATER_CHANGE_INTERVAL

Command = Union[str, Dict[str, Any]]


def actuator_token(pin: str, on: bool) -> str:
    """Return the token that drives ``pin`` to the requested state."""
    return f"{pin}_{'on' if on else 'off'}"


def feeding_time_message(time: str) -> Dict[str, str]:
    """Build the envelope that sets the daily feeding time (HH:MM)."""
    return {"action": ACTION_SET_FEEDING_TIME, "time": time}


def water_change_interval_message(interval: Union[int, str]) -> Dict[str, str]:
    """Build the envelope that sets the water-change interval in hours.

    The firmware reads the interval as a string, so integers are converted.
    """
    return {"action": ACTION_SET_WATER_CHANGE_INTERVAL, "interval": str(interval)}


def encode_message(command: Command) -> str:
    """Return the wire text for a token or an envelope."""
    if isinstance(command, str):
        return command
    return json.dumps(command)
