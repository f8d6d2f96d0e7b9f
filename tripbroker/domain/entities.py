"""
Domain value objects and state-transition guards.

Patterns used
-------------
- **State Pattern** on trips and requests: ``advance_trip`` and
  ``advance_request`` enforce the transition tables in ``enums`` on any
  object exposing a ``status`` attribute (ORM rows included).
- ``AvailabilityWindow`` encapsulates the "searchable driver" rule.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from .enums import (
    REQUEST_TRANSITIONS,
    TRIP_TRANSITIONS,
    RequestStatus,
    Role,
    TripStatus,
)
from .errors import InvalidState


class _HasTripStatus(Protocol):
    status: TripStatus


class _HasRequestStatus(Protocol):
    status: RequestStatus


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Actor:
    """The caller of an engine operation, as resolved by the API layer."""

    user_id: int
    role: Role


@dataclass(frozen=True)
class AvailabilityWindow:
    location: Optional[str]
    available_from: Optional[datetime]
    available_to: Optional[datetime]

    @property
    def is_complete(self) -> bool:
        return bool(self.location) and (
            self.available_from is not None and self.available_to is not None
        )

    def covers(self, moment: datetime) -> bool:
        """Inclusive on both ends; an incomplete window covers nothing."""
        if not self.is_complete:
            return False
        return self.available_from <= moment <= self.available_to


# ── State guards ──────────────────────────────────────────────────────


def advance_trip(trip: _HasTripStatus, new_status: TripStatus) -> None:
    """Move *trip* to *new_status* if the transition is legal, else raise."""
    current = TripStatus(trip.status)
    if new_status not in TRIP_TRANSITIONS.get(current, set()):
        raise InvalidState(
            f"Cannot move trip from {current.value} to {new_status.value}",
            {"status": current.value},
        )
    trip.status = new_status


def advance_request(request: _HasRequestStatus, new_status: RequestStatus) -> None:
    current = RequestStatus(request.status)
    if new_status not in REQUEST_TRANSITIONS.get(current, set()):
        raise InvalidState(
            f"Request is already {current.value}",
            {"status": current.value},
        )
    request.status = new_status


def running_average(current: float, count: int, score: int) -> float:
    """Fold one more score into a stored average of *count* scores."""
    return (current * count + score) / (count + 1)
