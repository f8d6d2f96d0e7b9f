"""
Availability Matcher
====================

Read-only projections over trips and drivers.  Nothing here reserves a
driver; a result can be stale by the time anyone acts on it, which is why
the assignment transaction re-checks conflicts under lock.

Algorithm (``find_eligible_drivers``)
-------------------------------------
1. SQL pre-filter: vehicle class >= required and a fully populated window.
2. One query for drivers already negotiating / accepted on the trip.
3. One query for the candidates' booked trips (conflict pre-filter).
4. Per-driver predicate from ``domain.matching`` (location + window + 2-3).

Complexity: O(D x k) after the SQL filter, D = candidates, k = booked trips
per driver.  Results are ordered by driver id.
"""

from __future__ import annotations

import logging
from typing import Optional

from tripbroker.domain.entities import Actor
from tripbroker.domain.enums import RequestDirection
from tripbroker.domain.errors import NotFound, ValidationError
from tripbroker.domain.matching import eligibility_failures, location_matches
from tripbroker.domain.scheduling import first_overlap
from tripbroker.infrastructure.models import DriverModel, TripModel, TripRequestModel
from tripbroker.infrastructure.repositories import (
    DriverRepository,
    TripRepository,
    TripRequestRepository,
)
from tripbroker.services.base import EngineService
from tripbroker.services.conflicts import ConflictDetector
from tripbroker.services.parties import owned_by, resolve_driver

logger = logging.getLogger(__name__)


def _require_matchable(trip: TripModel) -> None:
    missing = [
        name
        for name in ("pickup_location", "vehicle_type", "trip_date", "departure_time")
        if getattr(trip, name) in (None, "")
    ]
    if missing:
        raise ValidationError(
            "Trip is missing fields required for matching", {"missing": missing}
        )


class AvailabilityMatcher(EngineService):
    async def find_eligible_drivers(
        self, trip_id: int, actor: Optional[Actor] = None
    ) -> list[DriverModel]:
        async with self.transaction() as session:
            trip = await TripRepository(session).get_by_id(trip_id)
            if trip is None:
                raise NotFound("Trip not found", {"trip_id": trip_id})
            if actor is not None:
                await owned_by(session, actor, trip)
            _require_matchable(trip)

            departure = trip.scheduled_at
            candidates = await DriverRepository(session).get_searchable(trip.vehicle_type)
            negotiating = await TripRequestRepository(session).get_active_driver_ids(trip.id)
            schedule = await ConflictDetector(session, self.conflict_buffer).booked_schedule(
                [d.id for d in candidates], exclude_trip_id=trip.id
            )

            eligible: list[DriverModel] = []
            for driver in candidates:
                failures = eligibility_failures(
                    driver_vehicle=driver.vehicle_type,
                    window=driver.window,
                    trip_vehicle=trip.vehicle_type,
                    pickup_location=trip.pickup_location,
                    departure=departure,
                    has_active_request=driver.id in negotiating,
                    booked=schedule.get(driver.id, ()),
                    buffer=self.conflict_buffer,
                )
                if failures:
                    logger.debug(
                        "Driver %s not eligible for trip %s: %s",
                        driver.id, trip.id, ", ".join(failures),
                    )
                    continue
                eligible.append(driver)

        logger.info(
            "Trip %s: %d of %d searchable drivers eligible",
            trip_id, len(eligible), len(candidates),
        )
        return eligible

    async def find_available_trips(self, actor: Actor) -> list[TripModel]:
        """Open trips the acting driver could ask for right now."""
        async with self.transaction() as session:
            driver = await resolve_driver(session, actor)
            window = driver.window
            if not window.is_complete:
                raise ValidationError("Please update your availability first")

            open_trips = await TripRepository(session).get_open_trips(
                max_vehicle_type=driver.vehicle_type
            )
            requested = await TripRequestRepository(session).get_active_trip_ids(driver.id)

        return [
            trip
            for trip in open_trips
            if trip.id not in requested
            and window.covers(trip.scheduled_at)
            and location_matches(window.location, trip.pickup_location)
        ]

    async def find_requesting_drivers(
        self, trip_id: int, actor: Actor
    ) -> list[tuple[TripRequestModel, DriverModel]]:
        """Pending driver-initiated requests whose driver could still take the trip."""
        async with self.transaction() as session:
            trip = await TripRepository(session).get_by_id(trip_id)
            if trip is None:
                raise NotFound("Trip not found", {"trip_id": trip_id})
            await owned_by(session, actor, trip)

            pending = [
                r
                for r in await TripRequestRepository(session).get_pending_for_trip(trip.id)
                if r.direction == RequestDirection.DRIVER_TO_COMPANY
            ]
            drivers = await DriverRepository(session).get_by_ids(r.driver_id for r in pending)
            schedule = await ConflictDetector(session, self.conflict_buffer).booked_schedule(
                drivers.keys(), exclude_trip_id=trip.id
            )

            result = []
            for request in pending:
                driver = drivers[request.driver_id]
                if driver.vehicle_type < trip.vehicle_type:
                    continue
                booked = schedule.get(driver.id, ())
                if first_overlap(trip.scheduled_at, booked, self.conflict_buffer) is not None:
                    continue
                result.append((request, driver))
        return result
