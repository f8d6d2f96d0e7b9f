"""
Shared scaffolding for engine services.

Every mutating operation follows the same shape::

    notices = []
    async with self.transaction() as session:
        ...                     # checks + mutations, all or nothing
        notices.append(...)
    await self.dispatcher.dispatch(notices)   # only after commit

so a failed precondition leaves nothing behind and a failed notification
never undoes a committed change.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tripbroker.config import settings
from tripbroker.domain.enums import RequestStatus
from tripbroker.domain.errors import InvalidState, NotFound
from tripbroker.infrastructure.models import TripModel, TripRequestModel
from tripbroker.infrastructure.notifications import (
    DatabaseNotificationSink,
    NotificationDispatcher,
)
from tripbroker.infrastructure.repositories import (
    TripRepository,
    TripRequestRepository,
)


class EngineService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dispatcher: Optional[NotificationDispatcher] = None,
        *,
        conflict_buffer: Optional[timedelta] = None,
        operations_user_id: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.dispatcher = dispatcher or NotificationDispatcher(
            DatabaseNotificationSink(session_factory)
        )
        self.conflict_buffer = conflict_buffer or timedelta(
            minutes=settings.conflict_buffer_minutes
        )
        self.operations_user_id = (
            operations_user_id
            if operations_user_id is not None
            else settings.operations_user_id
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """One session, one transaction: commit on success, rollback on error."""
        async with self.session_factory() as session:
            async with session.begin():
                yield session


async def lock_trip(session: AsyncSession, trip_id: int) -> TripModel:
    trip = await TripRepository(session).get_for_update(trip_id)
    if trip is None:
        raise NotFound("Trip not found", {"trip_id": trip_id})
    return trip


async def lock_pending_request(
    session: AsyncSession, request_id: int
) -> tuple[TripRequestModel, TripModel]:
    """
    Load a request and lock its trip row, then re-read the request.

    The re-read happens after the lock is held, so a concurrent acceptance on
    the same trip is always observed.  Raises ``InvalidState`` unless the
    request is still pending.
    """
    requests = TripRequestRepository(session)
    request = await requests.get_by_id(request_id)
    if request is None:
        raise NotFound("Trip request not found", {"request_id": request_id})

    trip = await lock_trip(session, request.trip_id)
    request = await requests.refresh(request_id)
    if request is None:
        raise NotFound("Trip request not found", {"request_id": request_id})

    status = RequestStatus(request.status)
    if status != RequestStatus.PENDING:
        raise InvalidState(
            f"Request is already {status.value}",
            {"request_id": request.id, "status": status.value},
        )
    return request, trip
