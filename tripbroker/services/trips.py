"""
Trip Lifecycle
==============

Company-side trip management and the driver-driven state transitions::

    pending ──► assigned ──► in_progress ──► completed
       │           │              │
       └───────────┴──────────────┴──────► cancelled

``pending -> assigned`` and the reassignment release back to ``pending``
only happen inside ``services.assignment``; everything else is here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tripbroker.domain.entities import (
    Actor,
    advance_request,
    advance_trip,
    running_average,
)
from tripbroker.domain.enums import (
    RequestStatus,
    Role,
    TripStatus,
    VehicleClass,
)
from tripbroker.domain.errors import (
    BrokerError,
    Conflict,
    InvalidState,
    NotFound,
    Unauthorized,
    ValidationError,
)
from tripbroker.infrastructure.models import CompanyModel, RatingModel, TripModel
from tripbroker.infrastructure.notifications import Notice
from tripbroker.infrastructure.repositories import (
    CompanyRepository,
    DriverRepository,
    RatingRepository,
    TripRepository,
    TripRequestRepository,
)
from tripbroker.services import notices
from tripbroker.services.base import EngineService, lock_trip
from tripbroker.services.parties import (
    company_of,
    driver_by_id,
    owned_by,
    resolve_company,
    resolve_driver,
)

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(
    {
        "pickup_location",
        "destination",
        "trip_date",
        "departure_time",
        "passenger_count",
        "vehicle_type",
        "company_price",
        "driver_price",
        "visa_number",
    }
)
REQUIRED_FIELDS = ("pickup_location", "destination", "trip_date", "departure_time", "vehicle_type")
NOT_NULL_FIELDS = REQUIRED_FIELDS + ("passenger_count",)

ACTIVE_FILTER = "active"
ACTIVE_TRIP_STATUSES = (TripStatus.PENDING, TripStatus.ASSIGNED, TripStatus.IN_PROGRESS)


@dataclass
class CompletionOutcome:
    trip: TripModel
    rating_saved: bool = False


def _check_fields(data: Mapping[str, Any]) -> dict[str, Any]:
    unknown = set(data) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError(
            "These trip fields cannot be set", {"fields": sorted(unknown)}
        )
    cleared = sorted(name for name in NOT_NULL_FIELDS if name in data and data[name] is None)
    if cleared:
        raise ValidationError("These trip fields cannot be empty", {"fields": cleared})
    fields = dict(data)
    if fields.get("vehicle_type") is not None:
        try:
            fields["vehicle_type"] = int(VehicleClass(int(fields["vehicle_type"])))
        except (TypeError, ValueError):
            raise ValidationError(
                "Unknown vehicle type", {"vehicle_type": data["vehicle_type"]}
            ) from None
    if "passenger_count" in fields:
        try:
            fields["passenger_count"] = int(fields["passenger_count"])
        except (TypeError, ValueError):
            raise ValidationError(
                "Passenger count must be a number",
                {"passenger_count": data["passenger_count"]},
            ) from None
        if fields["passenger_count"] < 1:
            raise ValidationError("Passenger count must be at least 1")
    return fields


def _check_score(score: int) -> None:
    try:
        valid = 1 <= int(score) <= 5
    except (TypeError, ValueError):
        valid = False
    if not valid:
        raise ValidationError("Rating must be between 1 and 5", {"rating": score})


async def _ensure_unique_visa(
    session: AsyncSession,
    company_id: int,
    visa_number: Optional[str],
    trip_id: Optional[int] = None,
) -> None:
    if not visa_number:
        return
    existing = await TripRepository(session).find_by_visa_number(company_id, visa_number)
    if existing is not None and existing.id != trip_id:
        raise Conflict(
            "A trip with this visa number already exists",
            {"trip_id": existing.id},
        )


async def _store_company_rating(
    session: AsyncSession,
    trip: TripModel,
    driver_id: int,
    score: int,
    comment: Optional[str],
) -> tuple[RatingModel, CompanyModel]:
    ratings = RatingRepository(session)
    if await ratings.find_for_trip(trip.id, Role.DRIVER) is not None:
        raise Conflict("You have already rated this trip", {"trip_id": trip.id})
    company = await CompanyRepository(session).get_for_update(trip.company_id)
    if company is None:
        raise NotFound("Company not found", {"company_id": trip.company_id})
    rating = await ratings.create(
        RatingModel(
            trip_id=trip.id,
            rater_id=driver_id,
            rater_type=Role.DRIVER,
            rated_id=company.id,
            rated_type=Role.COMPANY,
            rating=score,
            comment=comment,
        )
    )
    company.rating = running_average(company.rating, company.rating_count, score)
    company.rating_count += 1
    return rating, company


class TripService(EngineService):
    # ── Company-side management ───────────────────────────────────────

    async def create_trip(self, actor: Actor, data: Mapping[str, Any]) -> TripModel:
        fields = _check_fields(data)
        missing = [name for name in REQUIRED_FIELDS if fields.get(name) in (None, "")]
        if missing:
            raise ValidationError("Missing required trip fields", {"missing": missing})

        async with self.transaction() as session:
            company = await resolve_company(session, actor)
            await _ensure_unique_visa(session, company.id, fields.get("visa_number"))
            trip = await TripRepository(session).create(
                TripModel(company_id=company.id, status=TripStatus.PENDING, **fields)
            )

        logger.info("Company %s created trip %s", company.id, trip.id)
        return trip

    async def update_trip(
        self, actor: Actor, trip_id: int, changes: Mapping[str, Any]
    ) -> TripModel:
        fields = _check_fields(changes)
        async with self.transaction() as session:
            trip = await lock_trip(session, trip_id)
            company = await owned_by(session, actor, trip)
            if TripStatus(trip.status) != TripStatus.PENDING or trip.driver_id is not None:
                raise InvalidState(
                    "Only pending, unassigned trips can be edited",
                    {"status": TripStatus(trip.status).value},
                )
            if "visa_number" in fields:
                await _ensure_unique_visa(
                    session, company.id, fields["visa_number"], trip_id=trip.id
                )
            for name, value in fields.items():
                setattr(trip, name, value)
            await session.flush()
        return trip

    async def delete_trip(self, actor: Actor, trip_id: int) -> None:
        async with self.transaction() as session:
            trip = await lock_trip(session, trip_id)
            await owned_by(session, actor, trip)
            if TripStatus(trip.status) != TripStatus.PENDING:
                raise InvalidState(
                    "Only pending trips can be deleted",
                    {"status": TripStatus(trip.status).value},
                )
            await TripRepository(session).delete(trip)
        logger.info("Trip %s deleted", trip_id)

    async def cancel_trip(self, actor: Actor, trip_id: int) -> TripModel:
        outgoing: list[Notice] = []
        async with self.transaction() as session:
            trip = await lock_trip(session, trip_id)
            await owned_by(session, actor, trip)
            previous = TripStatus(trip.status)
            driver_id = trip.driver_id

            advance_trip(trip, TripStatus.CANCELLED)
            trip.driver_id = None
            for request in await TripRequestRepository(session).get_pending_for_trip(trip.id):
                advance_request(request, RequestStatus.CANCELLED)

            if driver_id is not None:
                driver = await driver_by_id(session, driver_id)
                outgoing.append(notices.trip_cancelled(driver.user_id, trip))
            if previous == TripStatus.IN_PROGRESS and self.operations_user_id is not None:
                outgoing.append(notices.trip_cancelled(self.operations_user_id, trip))
            await session.flush()

        logger.info("Trip %s cancelled (was %s)", trip_id, previous.value)
        await self.dispatcher.dispatch(outgoing)
        return trip

    async def rate_driver(
        self, actor: Actor, trip_id: int, score: int, comment: Optional[str] = None
    ) -> RatingModel:
        _check_score(score)
        async with self.transaction() as session:
            trip = await lock_trip(session, trip_id)
            company = await owned_by(session, actor, trip)
            if TripStatus(trip.status) != TripStatus.COMPLETED or trip.driver_id is None:
                raise InvalidState("Only completed trips can be rated")
            ratings = RatingRepository(session)
            if await ratings.find_for_trip(trip.id, Role.COMPANY) is not None:
                raise Conflict("You have already rated this trip", {"trip_id": trip.id})

            driver = await DriverRepository(session).get_for_update(trip.driver_id)
            if driver is None:
                raise NotFound("Driver not found", {"driver_id": trip.driver_id})
            rating = await ratings.create(
                RatingModel(
                    trip_id=trip.id,
                    rater_id=company.id,
                    rater_type=Role.COMPANY,
                    rated_id=driver.id,
                    rated_type=Role.DRIVER,
                    rating=score,
                    comment=comment,
                )
            )
            driver.rating = running_average(driver.rating, driver.rating_count, score)
            driver.rating_count += 1
            outgoing = [notices.new_rating(driver.user_id, score, trip)]

        await self.dispatcher.dispatch(outgoing)
        return rating

    # ── Driver-side transitions ───────────────────────────────────────

    async def start_trip(self, actor: Actor, trip_id: int) -> TripModel:
        async with self.transaction() as session:
            driver = await resolve_driver(session, actor)
            trip = await lock_trip(session, trip_id)
            if trip.driver_id != driver.id:
                raise Unauthorized("You are not assigned to this trip", {"trip_id": trip.id})
            advance_trip(trip, TripStatus.IN_PROGRESS)
            company = await company_of(session, trip)
            outgoing = [notices.trip_started(company, driver, trip)]
            await session.flush()

        await self.dispatcher.dispatch(outgoing)
        return trip

    async def complete_trip(
        self,
        actor: Actor,
        trip_id: int,
        rating: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> CompletionOutcome:
        """
        Finish an in-progress trip, optionally rating the company.

        The completion commits on its own.  The rating is written afterwards
        in a second transaction; if that fails the trip stays completed and
        ``rating_saved`` is False.
        """
        async with self.transaction() as session:
            driver = await resolve_driver(session, actor)
            trip = await lock_trip(session, trip_id)
            if trip.driver_id != driver.id:
                raise Unauthorized("You are not assigned to this trip", {"trip_id": trip.id})
            advance_trip(trip, TripStatus.COMPLETED)
            company = await company_of(session, trip)
            outgoing = [notices.trip_completed(company, driver, trip)]
            await session.flush()

        outcome = CompletionOutcome(trip=trip)
        if rating is not None:
            outcome.rating_saved = await self._rate_company(trip, driver.id, rating, comment)

        await self.dispatcher.dispatch(outgoing)
        return outcome

    async def rate_company(
        self, actor: Actor, trip_id: int, score: int, comment: Optional[str] = None
    ) -> RatingModel:
        """Driver rates the company after the fact, e.g. when completion-time rating failed."""
        _check_score(score)
        async with self.transaction() as session:
            driver = await resolve_driver(session, actor)
            trip = await lock_trip(session, trip_id)
            if trip.driver_id != driver.id:
                raise Unauthorized("You are not assigned to this trip", {"trip_id": trip.id})
            if TripStatus(trip.status) != TripStatus.COMPLETED:
                raise InvalidState("Only completed trips can be rated")
            rating, company = await _store_company_rating(session, trip, driver.id, score, comment)
            outgoing = [notices.new_rating(company.user_id, score, trip)]

        await self.dispatcher.dispatch(outgoing)
        return rating

    async def _rate_company(
        self, trip: TripModel, driver_id: int, score: int, comment: Optional[str]
    ) -> bool:
        try:
            _check_score(score)
            async with self.transaction() as session:
                await _store_company_rating(session, trip, driver_id, score, comment)
        except BrokerError as exc:
            logger.warning("Rating for trip %s not saved: %s", trip.id, exc.message)
            return False
        except SQLAlchemyError:
            logger.exception("Rating for trip %s not saved", trip.id)
            return False
        return True

    # ── Reads ─────────────────────────────────────────────────────────

    async def get_trip(self, actor: Actor, trip_id: int) -> TripModel:
        """Owning company, assigned driver, or any driver while the trip is open."""
        async with self.transaction() as session:
            trip = await TripRepository(session).get_by_id(trip_id)
            if trip is None:
                raise NotFound("Trip not found", {"trip_id": trip_id})
            if actor.role == Role.COMPANY:
                await owned_by(session, actor, trip)
            else:
                driver = await resolve_driver(session, actor)
                open_trip = TripStatus(trip.status) == TripStatus.PENDING
                if trip.driver_id != driver.id and not open_trip:
                    raise Unauthorized("Not authorized to access this trip", {"trip_id": trip.id})
            return trip

    async def list_company_trips(
        self, actor: Actor, status: Optional[str] = None
    ) -> list[TripModel]:
        if status is None:
            statuses = None
        elif status == ACTIVE_FILTER:
            statuses = ACTIVE_TRIP_STATUSES
        else:
            try:
                statuses = (TripStatus(status),)
            except ValueError:
                raise ValidationError("Unknown trip status", {"status": status}) from None

        async with self.transaction() as session:
            company = await resolve_company(session, actor)
            return await TripRepository(session).list_for_company(company.id, statuses)

    async def list_driver_trips(self, actor: Actor) -> list[TripModel]:
        async with self.transaction() as session:
            driver = await resolve_driver(session, actor)
            return await TripRepository(session).list_for_driver(driver.id)
