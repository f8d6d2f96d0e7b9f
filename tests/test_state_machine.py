"""Unit tests for trip / request state transitions and the request kinds."""

from dataclasses import dataclass
from typing import Optional

import pytest

from tripbroker.domain.entities import advance_request, advance_trip, running_average
from tripbroker.domain.enums import RequestDirection, RequestStatus, Role, TripStatus
from tripbroker.domain.errors import InvalidOperation, InvalidState, Unauthorized
from tripbroker.domain.requests import (
    CompanyToDriver,
    DriverToCompany,
    ReassignmentApproval,
    kind_for,
)


@dataclass
class Trip:
    status: TripStatus = TripStatus.PENDING
    driver_id: Optional[int] = None


@dataclass
class Request:
    status: RequestStatus = RequestStatus.PENDING


class TestTripStateMachine:
    # ── Valid transitions ─────────────────────────────────────────

    def test_pending_to_assigned(self):
        trip = Trip()
        advance_trip(trip, TripStatus.ASSIGNED)
        assert trip.status == TripStatus.ASSIGNED

    def test_assigned_to_in_progress(self):
        trip = Trip(status=TripStatus.ASSIGNED, driver_id=1)
        advance_trip(trip, TripStatus.IN_PROGRESS)
        assert trip.status == TripStatus.IN_PROGRESS

    def test_in_progress_to_completed(self):
        trip = Trip(status=TripStatus.IN_PROGRESS, driver_id=1)
        advance_trip(trip, TripStatus.COMPLETED)
        assert trip.status == TripStatus.COMPLETED

    @pytest.mark.parametrize(
        "status", [TripStatus.PENDING, TripStatus.ASSIGNED, TripStatus.IN_PROGRESS]
    )
    def test_cancel_from_any_open_status(self, status):
        trip = Trip(status=status)
        advance_trip(trip, TripStatus.CANCELLED)
        assert trip.status == TripStatus.CANCELLED

    def test_release_back_to_pending(self):
        trip = Trip(status=TripStatus.IN_PROGRESS, driver_id=1)
        advance_trip(trip, TripStatus.PENDING)
        assert trip.status == TripStatus.PENDING

    # ── Invalid transitions ───────────────────────────────────────

    def test_pending_to_in_progress_fails(self):
        with pytest.raises(InvalidState):
            advance_trip(Trip(), TripStatus.IN_PROGRESS)

    @pytest.mark.parametrize("terminal", [TripStatus.COMPLETED, TripStatus.CANCELLED])
    def test_terminal_trip_is_final(self, terminal):
        trip = Trip(status=terminal)
        for target in TripStatus:
            with pytest.raises(InvalidState):
                advance_trip(trip, target)
        assert trip.status == terminal


class TestRequestStateMachine:
    @pytest.mark.parametrize(
        "target",
        [RequestStatus.ACCEPTED, RequestStatus.REJECTED, RequestStatus.CANCELLED],
    )
    def test_pending_resolves_once(self, target):
        request = Request()
        advance_request(request, target)
        assert request.status == target
        with pytest.raises(InvalidState, match=f"already {target.value}"):
            advance_request(request, RequestStatus.PENDING)

    def test_accepted_cannot_be_rejected(self):
        request = Request(status=RequestStatus.ACCEPTED)
        with pytest.raises(InvalidState):
            advance_request(request, RequestStatus.REJECTED)
        assert request.status == RequestStatus.ACCEPTED


class TestRequestKinds:
    def test_lookup_by_direction(self):
        assert isinstance(kind_for(RequestDirection.COMPANY_TO_DRIVER), CompanyToDriver)
        assert isinstance(kind_for("driver_to_company"), DriverToCompany)
        assert isinstance(kind_for("reassignment_approval"), ReassignmentApproval)

    # ── Direction guard ───────────────────────────────────────────

    def test_driver_responds_to_company_request(self):
        CompanyToDriver().check_responder(Role.DRIVER)

    def test_company_cannot_answer_its_own_request(self):
        with pytest.raises(InvalidOperation):
            CompanyToDriver().check_responder(Role.COMPANY)

    def test_driver_cannot_answer_its_own_request(self):
        with pytest.raises(InvalidOperation):
            DriverToCompany().check_responder(Role.DRIVER)

    def test_invalid_operation_is_an_authorization_failure(self):
        with pytest.raises(Unauthorized):
            DriverToCompany().check_responder(Role.DRIVER)

    def test_only_initiator_cancels(self):
        DriverToCompany().check_initiator(Role.DRIVER)
        with pytest.raises(InvalidOperation):
            DriverToCompany().check_initiator(Role.COMPANY)

    # ── Acceptance effects ────────────────────────────────────────

    def test_binding_assigns_pending_trip(self):
        trip = Trip()
        displaced = DriverToCompany().apply_acceptance(trip, driver_id=7)
        assert (trip.status, trip.driver_id, displaced) == (TripStatus.ASSIGNED, 7, None)

    def test_binding_keeps_in_progress_and_reports_displaced_driver(self):
        trip = Trip(status=TripStatus.IN_PROGRESS, driver_id=3)
        displaced = CompanyToDriver().apply_acceptance(trip, driver_id=7)
        assert (trip.status, trip.driver_id, displaced) == (TripStatus.IN_PROGRESS, 7, 3)

    @pytest.mark.parametrize("terminal", [TripStatus.COMPLETED, TripStatus.CANCELLED])
    def test_binding_rejects_terminal_trip(self, terminal):
        with pytest.raises(InvalidState):
            CompanyToDriver().check_trip(Trip(status=terminal), driver_id=7)

    def test_release_unassigns(self):
        trip = Trip(status=TripStatus.ASSIGNED, driver_id=7)
        kind = ReassignmentApproval()
        kind.check_trip(trip, driver_id=7)
        kind.apply_acceptance(trip, driver_id=7)
        assert (trip.status, trip.driver_id) == (TripStatus.PENDING, None)

    def test_release_requires_the_holding_driver(self):
        with pytest.raises(InvalidState):
            ReassignmentApproval().check_trip(
                Trip(status=TripStatus.ASSIGNED, driver_id=3), driver_id=7
            )
        with pytest.raises(InvalidState):
            ReassignmentApproval().check_trip(Trip(), driver_id=7)


def test_running_average():
    assert running_average(0.0, 0, 4) == 4.0
    assert running_average(4.0, 1, 5) == 4.5
    assert running_average(4.5, 2, 3) == pytest.approx(4.0)
