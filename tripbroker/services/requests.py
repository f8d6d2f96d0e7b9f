"""
Request Lifecycle
=================

Creation, rejection and cancellation of ``TripRequest`` negotiations.
Acceptance lives in ``services.assignment`` because it is the only
transition that touches the trip.

Every write locks the trip row first (``SELECT ... FOR UPDATE``), so the
"at most one pending request per (trip, driver)" lookup and the insert that
follows it cannot interleave with another writer on the same trip.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tripbroker.domain.entities import Actor, advance_request
from tripbroker.domain.enums import (
    BOOKED_TRIP_STATUSES,
    TERMINAL_TRIP_STATUSES,
    RequestDirection,
    RequestStatus,
    Role,
    TripStatus,
)
from tripbroker.domain.errors import Conflict, InvalidState
from tripbroker.domain.requests import directions_answered_by, kind_for
from tripbroker.infrastructure.models import TripModel, TripRequestModel
from tripbroker.infrastructure.notifications import Notice
from tripbroker.infrastructure.repositories import TripRequestRepository
from tripbroker.services import notices
from tripbroker.services.base import EngineService, lock_pending_request, lock_trip
from tripbroker.services.parties import (
    company_of,
    driver_by_id,
    ensure_request_party,
    owned_by,
    resolve_company,
    resolve_driver,
)

logger = logging.getLogger(__name__)


async def _open_request(
    session: AsyncSession,
    trip: TripModel,
    driver_id: int,
    direction: RequestDirection,
) -> TripRequestModel:
    requests = TripRequestRepository(session)
    existing = await requests.find_pending_for_pair(trip.id, driver_id)
    if existing is not None:
        raise Conflict("Request already exists", {"request_id": existing.id})
    request = await requests.create(trip_id=trip.id, driver_id=driver_id, direction=direction)
    logger.info(
        "Request %s opened: %s, trip %s, driver %s",
        request.id, direction.value, trip.id, driver_id,
    )
    return request


class RequestService(EngineService):
    # ── Creation ──────────────────────────────────────────────────────

    async def send_driver_request(self, actor: Actor, trip_id: int) -> TripRequestModel:
        """A driver volunteers for an open trip."""
        async with self.transaction() as session:
            driver = await resolve_driver(session, actor)
            trip = await lock_trip(session, trip_id)
            if TripStatus(trip.status) != TripStatus.PENDING:
                raise InvalidState(
                    "Trip is no longer open for requests",
                    {"status": TripStatus(trip.status).value},
                )
            request = await _open_request(
                session, trip, driver.id, RequestDirection.DRIVER_TO_COMPANY
            )
            company = await company_of(session, trip)
            outgoing = [notices.new_driver_request(company, driver, trip)]

        await self.dispatcher.dispatch(outgoing)
        return request

    async def send_company_request(
        self, actor: Actor, trip_id: int, driver_id: int
    ) -> TripRequestModel:
        """A company offers one of its trips to a specific driver."""
        async with self.transaction() as session:
            trip = await lock_trip(session, trip_id)
            company = await owned_by(session, actor, trip)
            driver = await driver_by_id(session, driver_id)
            status = TripStatus(trip.status)
            if status in TERMINAL_TRIP_STATUSES:
                raise InvalidState(
                    f"This trip is already {status.value}", {"status": status.value}
                )
            request = await _open_request(
                session, trip, driver.id, RequestDirection.COMPANY_TO_DRIVER
            )
            outgoing = [notices.new_company_request(driver, company, trip)]

        await self.dispatcher.dispatch(outgoing)
        return request

    async def request_reassignment(self, actor: Actor, trip_id: int) -> TripRequestModel:
        """Ask the assigned driver to release the trip."""
        async with self.transaction() as session:
            trip = await lock_trip(session, trip_id)
            company = await owned_by(session, actor, trip)
            status = TripStatus(trip.status)
            if trip.driver_id is None or status not in BOOKED_TRIP_STATUSES:
                raise InvalidState(
                    "Only assigned or in-progress trips can be reassigned",
                    {"status": status.value},
                )
            driver = await driver_by_id(session, trip.driver_id)
            request = await _open_request(
                session, trip, driver.id, RequestDirection.REASSIGNMENT_APPROVAL
            )
            outgoing = [notices.reassignment_requested(driver, company, trip)]

        await self.dispatcher.dispatch(outgoing)
        return request

    # ── Resolution ────────────────────────────────────────────────────

    async def reject_request(self, request_id: int, actor: Actor) -> TripRequestModel:
        async with self.transaction() as session:
            request, trip = await lock_pending_request(session, request_id)
            await ensure_request_party(session, actor, request, trip)
            kind = kind_for(request.direction)
            kind.check_responder(actor.role)

            advance_request(request, RequestStatus.REJECTED)

            driver = await driver_by_id(session, request.driver_id)
            company = await company_of(session, trip)
            outgoing: list[Notice]
            if kind.direction == RequestDirection.REASSIGNMENT_APPROVAL:
                outgoing = [notices.reassignment_rejected(company, driver, trip)]
            elif kind.responder == Role.COMPANY:
                outgoing = [notices.request_rejected(driver.user_id, trip)]
            else:
                outgoing = [notices.request_rejected(company.user_id, trip)]
            await session.flush()

        logger.info("Request %s rejected by %s", request_id, actor.role.value)
        await self.dispatcher.dispatch(outgoing)
        return request

    async def cancel_request(self, request_id: int, actor: Actor) -> TripRequestModel:
        """Withdraw a pending request; only its sender may, and nobody is told."""
        async with self.transaction() as session:
            request, trip = await lock_pending_request(session, request_id)
            await ensure_request_party(session, actor, request, trip)
            kind_for(request.direction).check_initiator(actor.role)
            advance_request(request, RequestStatus.CANCELLED)
            await session.flush()

        logger.info("Request %s cancelled by %s", request_id, actor.role.value)
        return request

    # ── Listing ───────────────────────────────────────────────────────

    async def list_company_requests(
        self, actor: Actor, direction: Optional[RequestDirection] = None
    ) -> list[TripRequestModel]:
        async with self.transaction() as session:
            company = await resolve_company(session, actor)
            return await TripRequestRepository(session).list_pending_for_company(
                company.id, direction
            )

    async def list_driver_requests(self, actor: Actor) -> list[TripRequestModel]:
        async with self.transaction() as session:
            driver = await resolve_driver(session, actor)
            return await TripRequestRepository(session).list_for_driver(driver.id)

    async def count_awaiting_response(self, actor: Actor) -> int:
        """Pending requests on which the actor is the one expected to answer."""
        directions = directions_answered_by(actor.role)
        async with self.transaction() as session:
            requests = TripRequestRepository(session)
            if actor.role == Role.DRIVER:
                driver = await resolve_driver(session, actor)
                return await requests.count_pending_for_driver(driver.id, directions)
            company = await resolve_company(session, actor)
            return await requests.count_pending_for_company(company.id, directions)
