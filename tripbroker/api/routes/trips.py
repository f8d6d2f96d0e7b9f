"""
Trip endpoints
==============

Company side
    POST   /api/v1/trips                              -- post a trip
    GET    /api/v1/trips?status=active                -- list own trips
    PATCH  /api/v1/trips/{trip_id}                    -- edit a pending trip
    DELETE /api/v1/trips/{trip_id}                    -- delete a pending trip
    POST   /api/v1/trips/{trip_id}/cancel             -- cancel
    POST   /api/v1/trips/{trip_id}/rating             -- rate the driver
    GET    /api/v1/trips/{trip_id}/eligible-drivers   -- matcher
    GET    /api/v1/trips/{trip_id}/requesting-drivers -- volunteers
    POST   /api/v1/trips/{trip_id}/requests           -- offer to a driver
    POST   /api/v1/trips/{trip_id}/reassignment       -- ask driver to release

Driver side
    GET    /api/v1/trips/assigned                     -- own trips
    GET    /api/v1/trips/available                    -- open trips in window
    POST   /api/v1/trips/{trip_id}/driver-requests    -- volunteer
    POST   /api/v1/trips/{trip_id}/start
    POST   /api/v1/trips/{trip_id}/complete
    POST   /api/v1/trips/{trip_id}/company-rating     -- rate the company
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from tripbroker.api.dependencies import get_actor, get_broker
from tripbroker.api.middleware import limiter
from tripbroker.api.schemas import (
    CompanyRequestCreate,
    CompleteTripRequest,
    CompletionResponse,
    DriverResponse,
    ErrorResponse,
    RatingCreateRequest,
    RatingResponse,
    RequestingDriverResponse,
    TripCreateRequest,
    TripRequestResponse,
    TripResponse,
    TripUpdateRequest,
)
from tripbroker.config import settings
from tripbroker.domain.entities import Actor
from tripbroker.services.broker import Broker

router = APIRouter(prefix="/trips", tags=["trips"])

_errors = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


# ── Collections (static paths before /{trip_id}) ──────────────────────


@router.post("", status_code=201, response_model=TripResponse, summary="Post a trip")
@limiter.limit(settings.rate_limit)
async def create_trip(
    request: Request,
    body: TripCreateRequest,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return await broker.trips.create_trip(actor, body.model_dump())


@router.get(
    "",
    response_model=list[TripResponse],
    summary="List the company's trips",
    description="``status`` is a trip status or ``active`` (pending, assigned, in progress).",
)
@limiter.limit(settings.rate_limit)
async def list_company_trips(
    request: Request,
    status: Optional[str] = Query(None),
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return await broker.trips.list_company_trips(actor, status)


@router.get("/assigned", response_model=list[TripResponse], summary="Driver's trips")
@limiter.limit(settings.rate_limit)
async def list_driver_trips(
    request: Request,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return await broker.trips.list_driver_trips(actor)


@router.get(
    "/available",
    response_model=list[TripResponse],
    summary="Open trips inside the driver's availability window",
)
@limiter.limit(settings.rate_limit)
async def list_available_trips(
    request: Request,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return await broker.matcher.find_available_trips(actor)


# ── Single trip ───────────────────────────────────────────────────────


@router.get("/{trip_id}", response_model=TripResponse, responses=_errors)
@limiter.limit(settings.rate_limit)
async def get_trip(
    request: Request,
    trip_id: int,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return await broker.trips.get_trip(actor, trip_id)


@router.patch("/{trip_id}", response_model=TripResponse, responses=_errors)
@limiter.limit(settings.rate_limit)
async def update_trip(
    request: Request,
    trip_id: int,
    body: TripUpdateRequest,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return await broker.trips.update_trip(actor, trip_id, body.model_dump(exclude_unset=True))


@router.delete("/{trip_id}", status_code=204, responses=_errors)
@limiter.limit(settings.rate_limit)
async def delete_trip(
    request: Request,
    trip_id: int,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    await broker.trips.delete_trip(actor, trip_id)
    return Response(status_code=204)


@router.post("/{trip_id}/cancel", response_model=TripResponse, responses=_errors)
@limiter.limit(settings.rate_limit)
async def cancel_trip(
    request: Request,
    trip_id: int,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return await broker.trips.cancel_trip(actor, trip_id)


@router.post("/{trip_id}/start", response_model=TripResponse, responses=_errors)
@limiter.limit(settings.rate_limit)
async def start_trip(
    request: Request,
    trip_id: int,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return await broker.trips.start_trip(actor, trip_id)


@router.post(
    "/{trip_id}/complete",
    response_model=CompletionResponse,
    responses=_errors,
    description="Completion always commits; ``rating_saved`` reports the optional rating.",
)
@limiter.limit(settings.rate_limit)
async def complete_trip(
    request: Request,
    trip_id: int,
    body: Optional[CompleteTripRequest] = None,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    body = body or CompleteTripRequest()
    outcome = await broker.trips.complete_trip(actor, trip_id, body.rating, body.comment)
    return CompletionResponse.model_validate(outcome)


@router.post(
    "/{trip_id}/rating",
    status_code=201,
    response_model=RatingResponse,
    responses=_errors,
)
@limiter.limit(settings.rate_limit)
async def rate_driver(
    request: Request,
    trip_id: int,
    body: RatingCreateRequest,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return await broker.trips.rate_driver(actor, trip_id, body.rating, body.comment)


@router.post(
    "/{trip_id}/company-rating",
    status_code=201,
    response_model=RatingResponse,
    responses=_errors,
    summary="Driver rates the company of a completed trip",
)
@limiter.limit(settings.rate_limit)
async def rate_company(
    request: Request,
    trip_id: int,
    body: RatingCreateRequest,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return await broker.trips.rate_company(actor, trip_id, body.rating, body.comment)


# ── Matching ──────────────────────────────────────────────────────────


@router.get(
    "/{trip_id}/eligible-drivers",
    response_model=list[DriverResponse],
    responses=_errors,
    summary="Drivers who could take this trip right now",
)
@limiter.limit(settings.rate_limit)
async def eligible_drivers(
    request: Request,
    trip_id: int,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return await broker.matcher.find_eligible_drivers(trip_id, actor)


@router.get(
    "/{trip_id}/requesting-drivers",
    response_model=list[RequestingDriverResponse],
    responses=_errors,
)
@limiter.limit(settings.rate_limit)
async def requesting_drivers(
    request: Request,
    trip_id: int,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    pairs = await broker.matcher.find_requesting_drivers(trip_id, actor)
    return [
        RequestingDriverResponse(
            request=TripRequestResponse.model_validate(req),
            driver=DriverResponse.model_validate(driver),
        )
        for req, driver in pairs
    ]


# ── Negotiation ───────────────────────────────────────────────────────


@router.post(
    "/{trip_id}/requests",
    status_code=201,
    response_model=TripRequestResponse,
    responses=_errors,
    summary="Offer the trip to a driver",
)
@limiter.limit(settings.rate_limit)
async def send_company_request(
    request: Request,
    trip_id: int,
    body: CompanyRequestCreate,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return await broker.requests.send_company_request(actor, trip_id, body.driver_id)


@router.post(
    "/{trip_id}/driver-requests",
    status_code=201,
    response_model=TripRequestResponse,
    responses=_errors,
    summary="Volunteer for an open trip",
)
@limiter.limit(settings.rate_limit)
async def send_driver_request(
    request: Request,
    trip_id: int,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return await broker.requests.send_driver_request(actor, trip_id)


@router.post(
    "/{trip_id}/reassignment",
    status_code=201,
    response_model=TripRequestResponse,
    responses=_errors,
    summary="Ask the assigned driver to release the trip",
)
@limiter.limit(settings.rate_limit)
async def request_reassignment(
    request: Request,
    trip_id: int,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return await broker.requests.request_reassignment(actor, trip_id)
