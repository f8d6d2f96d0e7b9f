"""
Schedule arithmetic for the conflict buffer.

A trip is scheduled by a calendar date plus a departure time; both are
combined into a naive local ``datetime`` before comparison.  Two trips of
the same driver conflict when their departures are strictly closer than the
buffer, so a separation of exactly the buffer is allowed.

Complexity: O(1) per comparison, O(k) for ``first_overlap`` over k trips.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

DEFAULT_BUFFER = timedelta(hours=2)


def scheduled_at(trip_date: date, departure_time: time) -> datetime:
    """Combine a trip's date and departure time into one timestamp."""
    return datetime.combine(trip_date, departure_time)


def overlaps(
    first: datetime, second: datetime, buffer: timedelta = DEFAULT_BUFFER
) -> bool:
    """True iff the two departures are within the symmetric buffer."""
    return abs(first - second) < buffer


def first_overlap(
    candidate: datetime,
    booked: Iterable[datetime],
    buffer: timedelta = DEFAULT_BUFFER,
) -> Optional[datetime]:
    for moment in booked:
        if overlaps(candidate, moment, buffer):
            return moment
    return None
