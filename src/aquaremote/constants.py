"""Application constants including device protocol, timing and calibration values.

Centralized constants to ensure consistency across the connectivity core and the API.
"""

from __future__ import annotations

# ============================================================================
# Device Protocol Constants
# ============================================================================

DEFAULT_DEVICE_ADDRESS = "192.168.70.37"

PUSH_CHANNEL_PORT = 81
PULL_DATA_PATH = "/data"

ACTION_SET_FEEDING_TIME = "setFeedingTime"
ACTION_SET_WATER_CHANGE_INTERVAL = "setWaterChangeInterval"

# Actuator name -> device pin, in the order the controller wires them
ACTUATOR_PINS = {
    "light": "pin1",
    "fill": "pin2",
    "empty": "pin3",
    "dispenser": "pin4",
}
ACTUATOR_ALIASES = {"pump": "fill"}

# ============================================================================
# Timing Constants
# ============================================================================

# seconds
RECONNECT_DELAY_DEFAULT = 2.0
POLL_INTERVAL_DEFAULT = 1.0
REMINDER_TICK_SECONDS = 1.0

FEED_COUNTDOWN_DEFAULT = 1800  # 30 minutes
WATER_CHANGE_COUNTDOWN_DEFAULT = 1140  # 19 minutes

# ============================================================================
# Water Level Calibration (ultrasonic distance, cm)
# ============================================================================

WATER_LEVEL_FULL_CM = 5
WATER_LEVEL_EMPTY_CM = 17
