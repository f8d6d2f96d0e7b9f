"""
Assignment transaction tests.

Demonstrates:
1. Accepting binds the driver and cascade-rejects every rival in one commit;
   a release approval leaves other pending requests open.
2. Only the responder may accept; terminal requests and trips are final.
3. At most one acceptance wins per trip, even when fired concurrently.
4. A driver is never double-booked within the conflict buffer.
5. Reassignment approval releases the trip; notification failures never
   undo a committed assignment.
"""

import asyncio
from datetime import time

import pytest

from tripbroker.domain.enums import RequestDirection, RequestStatus, TripStatus
from tripbroker.domain.errors import (
    Conflict,
    InvalidOperation,
    InvalidState,
    NotFound,
    Unauthorized,
)
from tripbroker.infrastructure.notifications import NotificationDispatcher, NotificationSink
from tripbroker.services.broker import Broker
from tests.conftest import company_actor, driver_actor


class _BrokenSink(NotificationSink):
    async def enqueue(self, user_id, title, message):
        raise ConnectionError("notification backend is down")


# ── Happy path ────────────────────────────────────────────────────────


class TestAcceptRequest:
    @pytest.mark.asyncio
    async def test_company_accepts_volunteer(self, broker, factory, sink):
        company = await factory.company()
        trip = await factory.trip(company)
        d1 = await factory.driver("Haifa")
        d2 = await factory.driver("Haifa")
        r1 = await factory.request(trip, d1, RequestDirection.DRIVER_TO_COMPANY)
        r2 = await factory.request(trip, d2, RequestDirection.DRIVER_TO_COMPANY)

        outcome = await broker.assignment.accept_request(r1.id, company_actor(company))

        assert outcome.request.status == RequestStatus.ACCEPTED
        assert outcome.trip.status == TripStatus.ASSIGNED
        assert outcome.trip.driver_id == d1.id
        assert outcome.rejected_request_ids == [r2.id]
        assert outcome.released_driver_id is None

        stored = await factory.reload_trip(trip.id)
        assert (stored.status, stored.driver_id) == (TripStatus.ASSIGNED, d1.id)
        assert (await factory.reload_request(r2.id)).status == RequestStatus.REJECTED

        assert sink.titles_for(d1.user_id) == ["Trip Request Accepted"]
        assert sink.titles_for(company.user_id) == ["Driver Assigned"]
        assert sink.titles_for(d2.user_id) == ["Trip Request Rejected"]

    @pytest.mark.asyncio
    async def test_driver_accepts_company_offer(self, broker, factory):
        company = await factory.company()
        trip = await factory.trip(company)
        driver = await factory.driver()
        offer = await factory.request(trip, driver, RequestDirection.COMPANY_TO_DRIVER)

        outcome = await broker.assignment.accept_request(offer.id, driver_actor(driver))
        assert outcome.trip.driver_id == driver.id
        assert outcome.trip.status == TripStatus.ASSIGNED

    @pytest.mark.asyncio
    async def test_cascade_leaves_no_pending_request(self, broker, factory):
        company = await factory.company()
        trip = await factory.trip(company)
        drivers = [await factory.driver() for _ in range(4)]
        requests = [
            await factory.request(trip, d, RequestDirection.COMPANY_TO_DRIVER) for d in drivers
        ]

        await broker.assignment.accept_request(requests[2].id, driver_actor(drivers[2]))

        statuses = {r.id: r.status for r in await factory.requests_for(trip.id)}
        assert statuses.pop(requests[2].id) == RequestStatus.ACCEPTED
        assert set(statuses.values()) == {RequestStatus.REJECTED}

    @pytest.mark.asyncio
    async def test_reassigning_in_flight_trip_releases_previous_driver(
        self, broker, factory, sink
    ):
        company = await factory.company()
        old = await factory.driver()
        new = await factory.driver()
        trip = await factory.trip(company, status=TripStatus.IN_PROGRESS, driver=old)
        offer = await factory.request(trip, new, RequestDirection.COMPANY_TO_DRIVER)

        outcome = await broker.assignment.accept_request(offer.id, driver_actor(new))

        assert outcome.trip.status == TripStatus.IN_PROGRESS
        assert outcome.trip.driver_id == new.id
        assert outcome.released_driver_id == old.id
        assert sink.titles_for(old.user_id) == ["Trip Reassigned"]

    @pytest.mark.asyncio
    async def test_displaced_driver_gets_only_the_release_notice(self, broker, factory, sink):
        company = await factory.company()
        old = await factory.driver()
        new = await factory.driver()
        trip = await factory.trip(company, status=TripStatus.ASSIGNED, driver=old)
        release = await factory.request(trip, old, RequestDirection.REASSIGNMENT_APPROVAL)
        offer = await factory.request(trip, new, RequestDirection.COMPANY_TO_DRIVER)

        outcome = await broker.assignment.accept_request(offer.id, driver_actor(new))

        assert outcome.rejected_request_ids == [release.id]
        assert (await factory.reload_request(release.id)).status == RequestStatus.REJECTED
        assert sink.titles_for(old.user_id) == ["Trip Reassigned"]


# ── Guards ────────────────────────────────────────────────────────────


class TestDirectionGuard:
    @pytest.mark.asyncio
    async def test_driver_cannot_accept_own_request(self, broker, factory):
        company = await factory.company()
        trip = await factory.trip(company)
        driver = await factory.driver()
        request = await factory.request(trip, driver, RequestDirection.DRIVER_TO_COMPANY)

        with pytest.raises(InvalidOperation):
            await broker.assignment.accept_request(request.id, driver_actor(driver))
        assert (await factory.reload_request(request.id)).status == RequestStatus.PENDING

    @pytest.mark.asyncio
    async def test_company_cannot_accept_own_offer(self, broker, factory):
        company = await factory.company()
        trip = await factory.trip(company)
        driver = await factory.driver()
        offer = await factory.request(trip, driver, RequestDirection.COMPANY_TO_DRIVER)

        with pytest.raises(InvalidOperation):
            await broker.assignment.accept_request(offer.id, company_actor(company))
        assert (await factory.reload_trip(trip.id)).status == TripStatus.PENDING

    @pytest.mark.asyncio
    async def test_strangers_are_unauthorized(self, broker, factory):
        company = await factory.company()
        other_company = await factory.company("Negev Freight")
        trip = await factory.trip(company)
        driver = await factory.driver()
        other_driver = await factory.driver()
        request = await factory.request(trip, driver, RequestDirection.COMPANY_TO_DRIVER)

        with pytest.raises(Unauthorized):
            await broker.assignment.accept_request(request.id, driver_actor(other_driver))
        with pytest.raises(Unauthorized):
            await broker.assignment.accept_request(request.id, company_actor(other_company))

    @pytest.mark.asyncio
    async def test_unknown_request(self, broker, factory):
        driver = await factory.driver()
        with pytest.raises(NotFound):
            await broker.assignment.accept_request(999, driver_actor(driver))


class TestTerminalStates:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status", [RequestStatus.ACCEPTED, RequestStatus.REJECTED, RequestStatus.CANCELLED]
    )
    async def test_resolved_request_is_final(self, broker, factory, status):
        company = await factory.company()
        trip = await factory.trip(company)
        driver = await factory.driver()
        request = await factory.request(
            trip, driver, RequestDirection.COMPANY_TO_DRIVER, status
        )
        actor = driver_actor(driver)

        for attempt in (
            broker.assignment.accept_request,
            broker.requests.reject_request,
        ):
            with pytest.raises(InvalidState):
                await attempt(request.id, actor)
        with pytest.raises(InvalidState):
            await broker.requests.cancel_request(request.id, company_actor(company))

        stored = await factory.reload_trip(trip.id)
        assert (stored.status, stored.driver_id) == (TripStatus.PENDING, None)
        assert (await factory.reload_request(request.id)).status == status

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [TripStatus.COMPLETED, TripStatus.CANCELLED])
    async def test_finished_trip_cannot_be_assigned(self, broker, factory, status):
        company = await factory.company()
        trip = await factory.trip(company, status=status)
        driver = await factory.driver()
        request = await factory.request(trip, driver, RequestDirection.COMPANY_TO_DRIVER)

        with pytest.raises(InvalidState):
            await broker.assignment.accept_request(request.id, driver_actor(driver))

        stored = await factory.reload_trip(trip.id)
        assert (stored.status, stored.driver_id) == (status, None)
        assert (await factory.reload_request(request.id)).status == RequestStatus.PENDING


# ── Scheduling conflicts ──────────────────────────────────────────────


class TestNoDoubleBooking:
    @pytest.mark.asyncio
    async def test_overlapping_trip_is_rejected(self, broker, factory, sink):
        company = await factory.company()
        driver = await factory.driver()
        await factory.trip(company, departure=time(14), status=TripStatus.ASSIGNED, driver=driver)
        trip_b = await factory.trip(company, departure=time(15))
        offer = await factory.request(trip_b, driver, RequestDirection.COMPANY_TO_DRIVER)

        with pytest.raises(Conflict) as exc_info:
            await broker.assignment.accept_request(offer.id, driver_actor(driver))

        assert exc_info.value.extra["driver_id"] == driver.id
        stored = await factory.reload_trip(trip_b.id)
        assert (stored.status, stored.driver_id) == (TripStatus.PENDING, None)
        assert (await factory.reload_request(offer.id)).status == RequestStatus.PENDING
        assert sink.sent == []

    @pytest.mark.asyncio
    async def test_exactly_two_hours_apart_is_allowed(self, broker, factory):
        company = await factory.company()
        driver = await factory.driver()
        await factory.trip(company, departure=time(12), status=TripStatus.ASSIGNED, driver=driver)
        trip_b = await factory.trip(company, departure=time(14))
        offer = await factory.request(trip_b, driver, RequestDirection.COMPANY_TO_DRIVER)

        outcome = await broker.assignment.accept_request(offer.id, driver_actor(driver))
        assert outcome.trip.status == TripStatus.ASSIGNED


# ── Concurrency ───────────────────────────────────────────────────────


class TestConcurrentAcceptance:
    @pytest.mark.asyncio
    async def test_at_most_one_winner_per_trip(self, broker, factory):
        company = await factory.company()
        trip = await factory.trip(company)
        drivers = [await factory.driver() for _ in range(3)]
        offers = [
            await factory.request(trip, d, RequestDirection.COMPANY_TO_DRIVER) for d in drivers
        ]

        results = await asyncio.gather(
            *(
                broker.assignment.accept_request(offer.id, driver_actor(d))
                for offer, d in zip(offers, drivers)
            ),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, Exception)]
        assert len(winners) == 1
        assert all(isinstance(e, InvalidState) for e in losers)

        stored = await factory.requests_for(trip.id)
        assert [r.status for r in stored].count(RequestStatus.ACCEPTED) == 1
        assert (await factory.reload_trip(trip.id)).driver_id == winners[0].trip.driver_id

    @pytest.mark.asyncio
    async def test_same_driver_two_overlapping_trips(self, broker, factory):
        company = await factory.company()
        driver = await factory.driver()
        trip_a = await factory.trip(company, departure=time(14))
        trip_b = await factory.trip(company, departure=time(15))
        offer_a = await factory.request(trip_a, driver, RequestDirection.COMPANY_TO_DRIVER)
        offer_b = await factory.request(trip_b, driver, RequestDirection.COMPANY_TO_DRIVER)

        actor = driver_actor(driver)
        results = await asyncio.gather(
            broker.assignment.accept_request(offer_a.id, actor),
            broker.assignment.accept_request(offer_b.id, actor),
            return_exceptions=True,
        )

        assert sum(not isinstance(r, Exception) for r in results) == 1
        assert sum(isinstance(r, Conflict) for r in results) == 1
        held = [
            t for t in (await factory.reload_trip(trip_a.id), await factory.reload_trip(trip_b.id))
            if t.driver_id == driver.id
        ]
        assert len(held) == 1


# ── Reassignment approval ─────────────────────────────────────────────


class TestReassignmentApproval:
    @pytest.mark.asyncio
    async def test_driver_approves_release(self, broker, factory, sink):
        company = await factory.company()
        driver = await factory.driver()
        trip = await factory.trip(company, status=TripStatus.ASSIGNED, driver=driver)
        request = await broker.requests.request_reassignment(company_actor(company), trip.id)

        outcome = await broker.assignment.accept_request(request.id, driver_actor(driver))

        assert outcome.trip.status == TripStatus.PENDING
        assert outcome.trip.driver_id is None
        stored = await factory.reload_trip(trip.id)
        assert (stored.status, stored.driver_id) == (TripStatus.PENDING, None)
        assert "Reassignment Approved" in sink.titles_for(company.user_id)

    @pytest.mark.asyncio
    async def test_release_keeps_offers_to_replacements_open(self, broker, factory, sink):
        company = await factory.company()
        current = await factory.driver()
        replacement = await factory.driver()
        trip = await factory.trip(company, status=TripStatus.ASSIGNED, driver=current)
        offer = await broker.requests.send_company_request(
            company_actor(company), trip.id, replacement.id
        )
        release = await broker.requests.request_reassignment(company_actor(company), trip.id)

        outcome = await broker.assignment.accept_request(release.id, driver_actor(current))

        assert outcome.rejected_request_ids == []
        assert (await factory.reload_request(offer.id)).status == RequestStatus.PENDING
        assert sink.titles_for(replacement.user_id) == ["New Trip Request"]

        # the replacement can still take the now-open trip
        await broker.assignment.accept_request(offer.id, driver_actor(replacement))
        stored = await factory.reload_trip(trip.id)
        assert (stored.status, stored.driver_id) == (TripStatus.ASSIGNED, replacement.id)

    @pytest.mark.asyncio
    async def test_company_cannot_approve_its_own_reassignment(self, broker, factory):
        company = await factory.company()
        driver = await factory.driver()
        trip = await factory.trip(company, status=TripStatus.ASSIGNED, driver=driver)
        request = await broker.requests.request_reassignment(company_actor(company), trip.id)

        with pytest.raises(InvalidOperation):
            await broker.assignment.accept_request(request.id, company_actor(company))
        assert (await factory.reload_trip(trip.id)).driver_id == driver.id


# ── Notifications after commit ────────────────────────────────────────


@pytest.mark.asyncio
async def test_notification_failure_keeps_assignment(session_factory, factory):
    broker = Broker(session_factory, NotificationDispatcher(_BrokenSink()))
    company = await factory.company()
    trip = await factory.trip(company)
    driver = await factory.driver()
    offer = await factory.request(trip, driver, RequestDirection.COMPANY_TO_DRIVER)

    outcome = await broker.assignment.accept_request(offer.id, driver_actor(driver))

    assert outcome.trip.status == TripStatus.ASSIGNED
    assert (await factory.reload_trip(trip.id)).driver_id == driver.id
