"""Presentation API routes (status, refresh, address, actuators, schedule)."""

from __future__ import annotations

from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, Request
from pydantic import BaseModel, StrictInt, StrictStr

from ..errors import CommandValidationError
from ..tank_service import TankService
from .exceptions import from_validation_error, service_unavailable

router = APIRouter(prefix="/api", tags=["tank"])


class AddressRequest(BaseModel):
    """Body for re-targeting the device."""

    address: str


class ScheduleRequest(BaseModel):
    """Body for a schedule command; value is validated by the dispatcher."""

    kind: str
    value: Optional[Union[StrictStr, StrictInt]] = None


def _service(request: Request) -> TankService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise service_unavailable()
    return service


@router.get("/status")
async def get_status(request: Request) -> Dict[str, Any]:
    """Return the current tank, actuator, connection and reminder snapshot."""
    return _service(request).get_snapshot()


@router.post("/refresh")
async def refresh(request: Request) -> Dict[str, Any]:
    """Force an immediate pull from the device and return the snapshot."""
    service = _service(request)
    await service.refresh_now()
    return service.get_snapshot()


@router.put("/address")
async def set_address(request: Request, body: AddressRequest) -> Dict[str, Any]:
    """Point the core at a different device."""
    service = _service(request)
    try:
        await service.set_address(body.address)
    except CommandValidationError as exc:
        raise from_validation_error(exc) from exc
    return service.get_snapshot()


@router.post("/actuators/{name}/toggle")
async def toggle_actuator(request: Request, name: str) -> Dict[str, Any]:
    """Toggle an actuator; ``sent`` is False when the push channel is down."""
    service = _service(request)
    try:
        actuator = service.resolve_actuator(name)
        state, sent = await service.toggle_actuator(actuator)
    except CommandValidationError as exc:
        raise from_validation_error(exc) from exc
    return {"actuator": actuator, "state": state, "sent": sent}


@router.post("/schedule")
async def set_schedule(request: Request, body: ScheduleRequest) -> Dict[str, Any]:
    """Send a feeding time or water-change interval to the device."""
    try:
        sent = await _service(request).set_schedule(body.kind, body.value)
    except CommandValidationError as exc:
        raise from_validation_error(exc) from exc
    return {"kind": body.kind, "value": body.value, "sent": sent}
