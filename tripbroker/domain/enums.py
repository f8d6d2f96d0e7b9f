"""Domain enumerations and state-transition rules."""

import enum


class TripStatus(str, enum.Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# State machine: maps current status -> set of valid next statuses
TRIP_TRANSITIONS: dict[TripStatus, set[TripStatus]] = {
    TripStatus.PENDING: {TripStatus.ASSIGNED, TripStatus.CANCELLED},
    TripStatus.ASSIGNED: {
        TripStatus.IN_PROGRESS,
        TripStatus.PENDING,  # reassignment approval
        TripStatus.CANCELLED,
    },
    TripStatus.IN_PROGRESS: {
        TripStatus.COMPLETED,
        TripStatus.PENDING,  # reassignment approval
        TripStatus.CANCELLED,
    },
    TripStatus.COMPLETED: set(),
    TripStatus.CANCELLED: set(),
}

TERMINAL_TRIP_STATUSES = frozenset({TripStatus.COMPLETED, TripStatus.CANCELLED})

# Trips that occupy a driver's schedule
BOOKED_TRIP_STATUSES = (TripStatus.ASSIGNED, TripStatus.IN_PROGRESS)

# Trips for which a driver_id must be present
DRIVER_HELD_STATUSES = frozenset(
    {TripStatus.ASSIGNED, TripStatus.IN_PROGRESS, TripStatus.COMPLETED}
)


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


REQUEST_TRANSITIONS: dict[RequestStatus, set[RequestStatus]] = {
    RequestStatus.PENDING: {
        RequestStatus.ACCEPTED,
        RequestStatus.REJECTED,
        RequestStatus.CANCELLED,
    },
    RequestStatus.ACCEPTED: set(),
    RequestStatus.REJECTED: set(),
    RequestStatus.CANCELLED: set(),
}

# Requests that block a new negotiation between the same trip and driver
ACTIVE_REQUEST_STATUSES = (RequestStatus.PENDING, RequestStatus.ACCEPTED)


class RequestDirection(str, enum.Enum):
    COMPANY_TO_DRIVER = "company_to_driver"
    DRIVER_TO_COMPANY = "driver_to_company"
    REASSIGNMENT_APPROVAL = "reassignment_approval"


class Role(str, enum.Enum):
    COMPANY = "company"
    DRIVER = "driver"


class VehicleClass(int, enum.Enum):
    """Ordinal vehicle classes; a higher class may serve a lower one."""

    CAR = 1
    VAN = 2
    BUS = 3
