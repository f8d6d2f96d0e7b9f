"""
Request Kinds  (Strategy Pattern)
=================================

Every ``TripRequest`` carries a direction; each direction is a variant with
its own authorization rule and its own acceptance effect:

==========================  =========  ===============  ==================
direction                   initiator  responder        on accept
==========================  =========  ===============  ==================
``company_to_driver``       company    driver           bind the driver
``driver_to_company``       driver     company          bind the driver
``reassignment_approval``   company    assigned driver  release the trip
==========================  =========  ===============  ==================

Only the responder may accept or reject; only the initiator may cancel.
Callers look the variant up with ``kind_for`` instead of branching on the
direction string.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Protocol

from .entities import advance_trip
from .enums import (
    BOOKED_TRIP_STATUSES,
    TERMINAL_TRIP_STATUSES,
    RequestDirection,
    Role,
    TripStatus,
)
from .errors import InvalidOperation, InvalidState, Unauthorized


class _Trip(Protocol):
    status: TripStatus
    driver_id: Optional[int]


# ── Strategy hierarchy ────────────────────────────────────────────────


class RequestKind(ABC):
    direction: RequestDirection
    initiator: Role
    responder: Role
    binds_driver: bool

    def check_responder(self, role: Role) -> None:
        if role == self.responder:
            return
        if role == self.initiator:
            raise InvalidOperation("Cannot respond to a request you made")
        raise Unauthorized("Not a party to this request")

    def check_initiator(self, role: Role) -> None:
        if role != self.initiator:
            raise InvalidOperation("Only the sender of a request may cancel it")

    @abstractmethod
    def check_trip(self, trip: _Trip, driver_id: int) -> None:
        """Raise ``InvalidState`` if the trip cannot take this acceptance."""

    @abstractmethod
    def apply_acceptance(self, trip: _Trip, driver_id: int) -> Optional[int]:
        """Mutate the trip; return the id of a displaced driver, if any."""


class _DriverBinding(RequestKind):
    binds_driver = True

    def check_trip(self, trip: _Trip, driver_id: int) -> None:
        status = TripStatus(trip.status)
        if status in TERMINAL_TRIP_STATUSES:
            raise InvalidState(
                f"This trip is already {status.value} and cannot be assigned",
                {"status": status.value},
            )

    def apply_acceptance(self, trip: _Trip, driver_id: int) -> Optional[int]:
        displaced = trip.driver_id if trip.driver_id not in (None, driver_id) else None
        trip.driver_id = driver_id
        if TripStatus(trip.status) == TripStatus.PENDING:
            advance_trip(trip, TripStatus.ASSIGNED)
        return displaced


class CompanyToDriver(_DriverBinding):
    direction = RequestDirection.COMPANY_TO_DRIVER
    initiator = Role.COMPANY
    responder = Role.DRIVER


class DriverToCompany(_DriverBinding):
    direction = RequestDirection.DRIVER_TO_COMPANY
    initiator = Role.DRIVER
    responder = Role.COMPANY


class ReassignmentApproval(RequestKind):
    direction = RequestDirection.REASSIGNMENT_APPROVAL
    initiator = Role.COMPANY
    responder = Role.DRIVER
    binds_driver = False

    def check_trip(self, trip: _Trip, driver_id: int) -> None:
        status = TripStatus(trip.status)
        if status not in BOOKED_TRIP_STATUSES or trip.driver_id != driver_id:
            raise InvalidState(
                "Trip is no longer held by this driver",
                {"status": status.value},
            )

    def apply_acceptance(self, trip: _Trip, driver_id: int) -> Optional[int]:
        advance_trip(trip, TripStatus.PENDING)
        trip.driver_id = None
        return None


_KINDS: dict[RequestDirection, RequestKind] = {
    k.direction: k
    for k in (CompanyToDriver(), DriverToCompany(), ReassignmentApproval())
}


def kind_for(direction: RequestDirection | str) -> RequestKind:
    return _KINDS[RequestDirection(direction)]


def directions_answered_by(role: Role) -> list[RequestDirection]:
    """Directions in which ``role`` is the responder."""
    return [d for d, k in _KINDS.items() if k.responder == role]
