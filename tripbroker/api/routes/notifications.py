"""
Notification endpoints
======================

GET   /api/v1/notifications                         -- own notifications
GET   /api/v1/notifications/unread-count            -- badge count
PATCH /api/v1/notifications/{notification_id}/read  -- mark one as read
PATCH /api/v1/notifications/read-all                -- mark every one as read
"""

from fastapi import APIRouter, Depends, Query, Request

from tripbroker.api.dependencies import get_actor, get_broker
from tripbroker.api.middleware import limiter
from tripbroker.api.schemas import CountResponse, NotificationResponse
from tripbroker.config import settings
from tripbroker.domain.entities import Actor
from tripbroker.services.broker import Broker

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
@limiter.limit(settings.rate_limit)
async def list_notifications(
    request: Request,
    unread_only: bool = Query(False),
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return await broker.inbox.list_notifications(actor, unread_only)


@router.get("/unread-count", response_model=CountResponse)
@limiter.limit(settings.rate_limit)
async def unread_count(
    request: Request,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return CountResponse(count=await broker.inbox.unread_count(actor))


@router.patch(
    "/read-all",
    response_model=CountResponse,
    description="``count`` is the number of notifications that were unread.",
)
@limiter.limit(settings.rate_limit)
async def mark_all_read(
    request: Request,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return CountResponse(count=await broker.inbox.mark_all_read(actor))


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
@limiter.limit(settings.rate_limit)
async def mark_read(
    request: Request,
    notification_id: int,
    actor: Actor = Depends(get_actor),
    broker: Broker = Depends(get_broker),
):
    return await broker.inbox.mark_notification_read(actor, notification_id)
