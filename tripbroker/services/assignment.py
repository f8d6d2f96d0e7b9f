"""
Assignment Transaction
======================

The single place where a driver becomes bound to (or released from) a trip.

Algorithm
---------
1. ``SELECT ... FOR UPDATE`` the trip row, then re-read the request.
2. Authorize the responder and check the trip against the request kind.
3. For binding kinds, lock the driver row and run the authoritative
   conflict check (the matcher's earlier answer may be stale).
4. Accept the request and apply the kind's effect.  Binding kinds reject
   every other pending request on the trip; a release leaves them open so
   the company can still place the trip with a replacement driver.
5. Commit, then dispatch notifications.

Locks are always taken trip first, driver second.  Two acceptances on the
same trip serialize on the trip row; two acceptances for the same driver on
different trips serialize on the driver row, so the second one sees the
first one's booking when it checks for conflicts.

Patterns used
-------------
- **Strategy**: ``domain.requests.kind_for`` supplies the per-direction
  rules; this module never branches on the direction string.
- **Unit of Work**: one ``AsyncSession`` transaction for steps 1-4.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from tripbroker.domain.entities import Actor, advance_request
from tripbroker.domain.enums import RequestStatus
from tripbroker.domain.errors import Conflict, NotFound
from tripbroker.domain.requests import kind_for
from tripbroker.infrastructure.models import TripModel, TripRequestModel
from tripbroker.infrastructure.notifications import Notice
from tripbroker.infrastructure.repositories import DriverRepository, TripRequestRepository
from tripbroker.services import notices
from tripbroker.services.base import EngineService, lock_pending_request
from tripbroker.services.conflicts import ConflictDetector
from tripbroker.services.parties import company_of, ensure_request_party

logger = logging.getLogger(__name__)


@dataclass
class AssignmentOutcome:
    request: TripRequestModel
    trip: TripModel
    rejected_request_ids: list[int] = field(default_factory=list)
    released_driver_id: Optional[int] = None


class AssignmentService(EngineService):
    async def accept_request(self, request_id: int, actor: Actor) -> AssignmentOutcome:
        outgoing: list[Notice] = []

        async with self.transaction() as session:
            request, trip = await lock_pending_request(session, request_id)
            await ensure_request_party(session, actor, request, trip)
            kind = kind_for(request.direction)
            kind.check_responder(actor.role)
            kind.check_trip(trip, request.driver_id)

            drivers = DriverRepository(session)
            driver = await drivers.get_for_update(request.driver_id)
            if driver is None:
                raise NotFound("Driver not found", {"driver_id": request.driver_id})

            if kind.binds_driver:
                clash = await ConflictDetector(session, self.conflict_buffer).find_conflict(
                    driver.id, trip.scheduled_at, exclude_trip_id=trip.id
                )
                if clash is not None:
                    raise Conflict(
                        "Driver already has a trip within the conflict buffer",
                        {"driver_id": driver.id, "conflicting_trip_id": clash.id},
                    )

            advance_request(request, RequestStatus.ACCEPTED)
            displaced_id = kind.apply_acceptance(trip, driver.id)

            rivals: list[TripRequestModel] = []
            if kind.binds_driver:
                pending = await TripRequestRepository(session).get_pending_for_trip(trip.id)
                rivals = [r for r in pending if r.id != request.id]
            for rival in rivals:
                advance_request(rival, RequestStatus.REJECTED)

            company = await company_of(session, trip)
            if kind.binds_driver:
                outgoing.append(notices.assigned_to_driver(driver, trip))
                outgoing.append(notices.assigned_to_company(company, driver, trip))
            else:
                outgoing.append(notices.reassignment_approved(company, driver, trip))

            affected = await drivers.get_by_ids(
                [r.driver_id for r in rivals]
                + ([displaced_id] if displaced_id is not None else [])
            )
            for rival in rivals:
                # the displaced driver gets the release notice instead
                if rival.driver_id == displaced_id:
                    continue
                outgoing.append(notices.request_rejected(affected[rival.driver_id].user_id, trip))
            if displaced_id is not None:
                outgoing.append(notices.released(affected[displaced_id], trip))

            await session.flush()

        logger.info(
            "Request %s accepted: trip %s now %s (driver %s), %d rival(s) rejected",
            request.id, trip.id, trip.status.value, trip.driver_id, len(rivals),
        )
        await self.dispatcher.dispatch(outgoing)
        return AssignmentOutcome(
            request=request,
            trip=trip,
            rejected_request_ids=[r.id for r in rivals],
            released_driver_id=displaced_id,
        )
