"""Error types and constants for consistent error handling across the application."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Standardized error codes for consistent error handling."""

    # Transport errors (socket / HTTP fetch)
    TRANSPORT_ERROR = "transport_error"

    # Payload errors
    PROTOCOL_ERROR = "protocol_error"

    # Validation errors
    VALIDATION_ERROR = "validation_error"
    UNKNOWN_ACTUATOR = "unknown_actuator"
    INVALID_ADDRESS = "invalid_address"


class TankError(Exception):
    """Base exception class for Aqua Remote errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        """Initialize the tank error.

        Args:
            code: Error code identifier
            message: Human-readable error message
            details: Additional error context and data
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class TransportError(TankError):
    """Raised when the device cannot be reached over HTTP or the socket."""

    def __init__(
        self,
        address: str,
        cause: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize transport error.

        Args:
            address: Device host the request was aimed at
            cause: Original exception raised by the transport
            details: Additional error context
        """
        message = f"Transport failure talking to {address}"
        if cause:
            message += f": {cause}"
        super().__init__(
            ErrorCode.TRANSPORT_ERROR,
            message,
            details={"address": address, **(details or {})},
            cause=cause,
        )


class ProtocolError(TankError):
    """Raised when a telemetry payload is malformed or has an unexpected shape."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(ErrorCode.PROTOCOL_ERROR, message, details, cause)


class CommandValidationError(TankError):
    """Raised when command input is invalid; nothing is transmitted."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ):
        """Initialize command validation error.

        Args:
            message: Validation error message
            details: Additional validation context
            code: More specific code (unknown actuator, invalid address)
        """
        super().__init__(code, message, details)


class UnknownActuatorError(CommandValidationError):
    """Raised when a toggle names an actuator the device does not have."""

    def __init__(self, name: str, known: list[str]):
        super().__init__(
            f"Unknown actuator '{name}'",
            details={"actuator": name, "known": known},
            code=ErrorCode.UNKNOWN_ACTUATOR,
        )
