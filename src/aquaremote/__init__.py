"""Remote-control client for a Wi-Fi aquarium tank controller."""

from .errors import CommandValidationError, ProtocolError, TankError, TransportError
from .models import ConnectionHealth, TankState, TelemetrySource
from .tank_service import TankService

__all__ = [
    "CommandValidationError",
    "ConnectionHealth",
    "ProtocolError",
    "TankError",
    "TankService",
    "TankState",
    "TelemetrySource",
    "TransportError",
]
