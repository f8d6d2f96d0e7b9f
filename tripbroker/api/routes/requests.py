"""
Trip request endpoints
======================

GET  /api/v1/requests                      -- company: pending on own trips;
                                              driver: all own requests
GET  /api/v1/requests/count                -- pending requests awaiting my answer
POST /api/v1/requests/{request_id}/accept  -- responder only; assigns or releases
POST /api/v1/requests/{request_id}/reject  -- responder only
POST /api/v1/requests/{request_id}/cancel  -- initiator only
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from tripbroker.api.dependencies import get_actor, get_broker
from tripbroker.api.middleware import limiter
from tripbroker.api.schemas import (
    AssignmentResponse,
    CountResponse,
    ErrorResponse,
    TripRequestResponse,
)
from tripbroker.config import settings
from tripbroker.domain.entities import Actor
from tripbroker.domain.enums import RequestDirection, Role
from tripbroker.services.broker import Broker

router = APIRouter(prefix="/requests", tags=["requests"])

_errors = {
    400: {"model": ErrorResponse, "description": "Initiator tried to respond, or vice versa."},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.get("", response_model=list[TripRequestResponse], summary="List requests")
@limiter.limit(settings.rate_limit)
async def list_requests(
    request: Request,
    direction: Optional[RequestDirection] = Query(None),
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    if actor.role == Role.DRIVER:
        return await broker.requests.list_driver_requests(actor)
    return await broker.requests.list_company_requests(actor, direction)


@router.get("/count", response_model=CountResponse, summary="Requests awaiting my answer")
@limiter.limit(settings.rate_limit)
async def count_requests(
    request: Request,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return CountResponse(count=await broker.requests.count_awaiting_response(actor))


@router.post(
    "/{request_id}/accept",
    response_model=AssignmentResponse,
    responses=_errors,
    summary="Accept a request",
    description=(
        "Binds the driver to the trip (or releases it for a reassignment "
        "approval) and rejects every other pending request on the trip, "
        "in one transaction."
    ),
)
@limiter.limit(settings.rate_limit)
async def accept_request(
    request: Request,
    request_id: int,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    outcome = await broker.assignment.accept_request(request_id, actor)
    return AssignmentResponse.model_validate(outcome)


@router.post("/{request_id}/reject", response_model=TripRequestResponse, responses=_errors)
@limiter.limit(settings.rate_limit)
async def reject_request(
    request: Request,
    request_id: int,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return await broker.requests.reject_request(request_id, actor)


@router.post("/{request_id}/cancel", response_model=TripRequestResponse, responses=_errors)
@limiter.limit(settings.rate_limit)
async def cancel_request(
    request: Request,
    request_id: int,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return await broker.requests.cancel_request(request_id, actor)
