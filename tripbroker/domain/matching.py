"""
Driver Eligibility Predicate
============================

A driver qualifies for a trip iff ALL of the following hold:

1. **Vehicle class**   -- driver class >= required class (a bus may run a
   car trip, never the reverse).
2. **Searchable**      -- location, window start and window end all set.
3. **Location**        -- bidirectional substring match on the free-text
   labels (see ``location_matches``).
4. **Window**          -- trip departure inside ``[from, to]`` inclusive.
5. **No negotiation**  -- no pending/accepted request already links the
   driver and the trip.
6. **No overlap**      -- none of the driver's booked trips departs within
   the conflict buffer of this trip.

Rule 6 is an eager pre-filter only.  The authoritative check runs again
inside the assignment transaction, because a driver shown here can be booked
elsewhere before anyone accepts.

Complexity
----------
O(k) per driver where k = the driver's booked trips; O(D x k) for a scan over
D candidates after the SQL pre-filter on rules 1-2.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Optional

from .entities import AvailabilityWindow
from .scheduling import DEFAULT_BUFFER, first_overlap


def location_matches(driver_location: Optional[str], pickup_location: Optional[str]) -> bool:
    """
    Case-sensitive containment in either direction.

    Tolerates free-text entry ("Haifa" vs "Haifa Port") at the cost of
    false positives ("Acre" inside "Acrelands").  Callers must treat the
    result as advisory.
    """
    if not driver_location or not pickup_location:
        return False
    return driver_location in pickup_location or pickup_location in driver_location


def eligibility_failures(
    *,
    driver_vehicle: int,
    window: AvailabilityWindow,
    trip_vehicle: int,
    pickup_location: str,
    departure: datetime,
    has_active_request: bool,
    booked: Iterable[datetime] = (),
    buffer: timedelta = DEFAULT_BUFFER,
) -> list[str]:
    """Return the names of the failed rules; an empty list means eligible."""
    failures: list[str] = []
    if int(driver_vehicle) < int(trip_vehicle):
        failures.append("vehicle")
    if not window.is_complete:
        failures.append("not_searchable")
    else:
        if not location_matches(window.location, pickup_location):
            failures.append("location")
        if not window.covers(departure):
            failures.append("window")
    if has_active_request:
        failures.append("active_request")
    if first_overlap(departure, booked, buffer) is not None:
        failures.append("schedule_conflict")
    return failures
