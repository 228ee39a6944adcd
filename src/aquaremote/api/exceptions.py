"""Exception handling utilities for API routes.

Maps core errors onto HTTP responses so every route reports them the same way.
"""

import logging

from fastapi import HTTPException

from ..errors import CommandValidationError, ErrorCode

logger = logging.getLogger(__name__)


def unknown_actuator(name: str) -> HTTPException:
    """Create a standardized 404 error for an actuator the device lacks.

    Args:
        name: Actuator name from the request path

    Returns:
        HTTPException with 404 status and formatted message
    """
    return HTTPException(status_code=404, detail=f"Actuator not found: {name}")


def invalid_request(message: str) -> HTTPException:
    """Create a standardized 422 error for invalid command input.

    Args:
        message: Detailed validation error message

    Returns:
        HTTPException with 422 status and formatted message
    """
    return HTTPException(status_code=422, detail=f"Invalid request: {message}")


def service_unavailable() -> HTTPException:
    """Create a standardized 503 error for a core that is not running."""
    return HTTPException(status_code=503, detail="Tank service not running")


def from_validation_error(exc: CommandValidationError) -> HTTPException:
    """Translate a CommandValidationError into the matching HTTP error."""
    logger.info("Rejected command: %s", exc.message)
    if exc.code is ErrorCode.UNKNOWN_ACTUATOR:
        return unknown_actuator(exc.details.get("actuator", ""))
    return invalid_request(exc.message)
