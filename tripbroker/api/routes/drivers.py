"""
Driver endpoints
================

GET /api/v1/drivers/me               -- own profile and window
PUT /api/v1/drivers/me/availability  -- overwrite the availability window
"""

from fastapi import APIRouter, Depends, Request

from tripbroker.api.dependencies import get_actor, get_broker
from tripbroker.api.middleware import limiter
from tripbroker.api.schemas import AvailabilityUpdateRequest, DriverResponse
from tripbroker.config import settings
from tripbroker.domain.entities import Actor
from tripbroker.services.broker import Broker

router = APIRouter(prefix="/drivers", tags=["drivers"])


@router.get("/me", response_model=DriverResponse)
@limiter.limit(settings.rate_limit)
async def get_profile(
    request: Request,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return await broker.drivers.get_profile(actor)


@router.put("/me/availability", response_model=DriverResponse)
@limiter.limit(settings.rate_limit)
async def update_availability(
    request: Request,
    body: AvailabilityUpdateRequest,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return await broker.drivers.update_availability(
        actor, body.location, body.available_from, body.available_to
    )
