"""
Conflict Detector
=================

A driver is double-booked when another of their trips in ``assigned`` or
``in_progress`` departs strictly closer than the conflict buffer (2 hours by
default) to the candidate departure.

Two call sites, kept separate on purpose:

* the availability matcher uses ``booked_schedule`` as an eager pre-filter;
* the assignment transaction calls ``find_conflict`` again with the trip row
  locked, which is the authoritative answer.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tripbroker.domain.scheduling import DEFAULT_BUFFER, overlaps
from tripbroker.infrastructure.models import TripModel
from tripbroker.infrastructure.repositories import TripRepository


class ConflictDetector:
    def __init__(self, session: AsyncSession, buffer: timedelta = DEFAULT_BUFFER):
        self.trips = TripRepository(session)
        self.buffer = buffer

    async def find_conflict(
        self,
        driver_id: int,
        candidate: datetime,
        exclude_trip_id: Optional[int] = None,
    ) -> Optional[TripModel]:
        """Return the first booked trip that clashes with *candidate*, if any."""
        booked = await self.trips.get_booked_for_drivers([driver_id], exclude_trip_id)
        for trip in sorted(booked, key=lambda t: t.scheduled_at):
            if overlaps(candidate, trip.scheduled_at, self.buffer):
                return trip
        return None

    async def has_conflict(
        self,
        driver_id: int,
        candidate: datetime,
        exclude_trip_id: Optional[int] = None,
    ) -> bool:
        return await self.find_conflict(driver_id, candidate, exclude_trip_id) is not None

    async def booked_schedule(
        self, driver_ids: Iterable[int], exclude_trip_id: Optional[int] = None
    ) -> dict[int, list[datetime]]:
        """Departure times of every booked trip, grouped by driver."""
        schedule: dict[int, list[datetime]] = defaultdict(list)
        for trip in await self.trips.get_booked_for_drivers(driver_ids, exclude_trip_id):
            schedule[trip.driver_id].append(trip.scheduled_at)
        return schedule
