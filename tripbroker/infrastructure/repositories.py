"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.
"""

from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    CompanyModel,
    DriverModel,
    NotificationModel,
    RatingModel,
    TripModel,
    TripRequestModel,
)
from tripbroker.domain.enums import (
    ACTIVE_REQUEST_STATUSES,
    BOOKED_TRIP_STATUSES,
    RequestDirection,
    RequestStatus,
    Role,
    TripStatus,
)


class TripRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, trip: TripModel) -> TripModel:
        self.session.add(trip)
        await self.session.flush()
        return trip

    async def get_by_id(self, trip_id: int) -> Optional[TripModel]:
        return await self.session.get(TripModel, trip_id)

    async def get_for_update(self, trip_id: int) -> Optional[TripModel]:
        """SELECT ... FOR UPDATE; always re-reads the row from the database."""
        result = await self.session.execute(
            select(TripModel)
            .where(TripModel.id == trip_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_by_visa_number(
        self, company_id: int, visa_number: str
    ) -> Optional[TripModel]:
        result = await self.session.execute(
            select(TripModel).where(
                TripModel.company_id == company_id,
                TripModel.visa_number == visa_number,
            )
        )
        return result.scalars().first()

    async def list_for_company(
        self, company_id: int, statuses: Optional[Iterable[TripStatus]] = None
    ) -> list[TripModel]:
        query = select(TripModel).where(TripModel.company_id == company_id)
        if statuses:
            query = query.where(TripModel.status.in_(list(statuses)))
        result = await self.session.execute(
            query.order_by(TripModel.created_at.desc(), TripModel.id.desc())
        )
        return list(result.scalars().all())

    async def list_for_driver(self, driver_id: int) -> list[TripModel]:
        result = await self.session.execute(
            select(TripModel)
            .where(TripModel.driver_id == driver_id)
            .order_by(TripModel.trip_date, TripModel.departure_time)
        )
        return list(result.scalars().all())

    async def get_booked_for_drivers(
        self, driver_ids: Iterable[int], exclude_trip_id: Optional[int] = None
    ) -> list[TripModel]:
        """Trips occupying the given drivers' schedules (assigned / in progress)."""
        ids = list(driver_ids)
        if not ids:
            return []
        query = select(TripModel).where(
            TripModel.driver_id.in_(ids),
            TripModel.status.in_(BOOKED_TRIP_STATUSES),
        )
        if exclude_trip_id is not None:
            query = query.where(TripModel.id != exclude_trip_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_open_trips(self, max_vehicle_type: Optional[int] = None) -> list[TripModel]:
        """Pending trips without a driver, optionally servable by a vehicle class."""
        query = select(TripModel).where(
            TripModel.status == TripStatus.PENDING,
            TripModel.driver_id.is_(None),
        )
        if max_vehicle_type is not None:
            query = query.where(TripModel.vehicle_type <= max_vehicle_type)
        result = await self.session.execute(
            query.order_by(TripModel.trip_date, TripModel.departure_time, TripModel.id)
        )
        return list(result.scalars().all())

    async def delete(self, trip: TripModel) -> None:
        await self.session.execute(
            delete(TripRequestModel).where(TripRequestModel.trip_id == trip.id)
        )
        await self.session.delete(trip)
        await self.session.flush()


class TripRequestRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self, *, trip_id: int, driver_id: int, direction: RequestDirection
    ) -> TripRequestModel:
        request = TripRequestModel(
            trip_id=trip_id,
            driver_id=driver_id,
            direction=direction,
            status=RequestStatus.PENDING,
        )
        self.session.add(request)
        await self.session.flush()
        return request

    async def get_by_id(self, request_id: int) -> Optional[TripRequestModel]:
        return await self.session.get(TripRequestModel, request_id)

    async def refresh(self, request_id: int) -> Optional[TripRequestModel]:
        """Re-read a request, overwriting whatever the identity map holds."""
        result = await self.session.execute(
            select(TripRequestModel)
            .where(TripRequestModel.id == request_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_pending_for_pair(
        self, trip_id: int, driver_id: int
    ) -> Optional[TripRequestModel]:
        result = await self.session.execute(
            select(TripRequestModel).where(
                TripRequestModel.trip_id == trip_id,
                TripRequestModel.driver_id == driver_id,
                TripRequestModel.status == RequestStatus.PENDING,
            )
        )
        return result.scalars().first()

    async def get_pending_for_trip(self, trip_id: int) -> list[TripRequestModel]:
        result = await self.session.execute(
            select(TripRequestModel)
            .where(
                TripRequestModel.trip_id == trip_id,
                TripRequestModel.status == RequestStatus.PENDING,
            )
            .order_by(TripRequestModel.created_at, TripRequestModel.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_active_driver_ids(self, trip_id: int) -> set[int]:
        """Drivers already negotiating (pending) or accepted for the trip."""
        result = await self.session.execute(
            select(TripRequestModel.driver_id).where(
                TripRequestModel.trip_id == trip_id,
                TripRequestModel.status.in_(ACTIVE_REQUEST_STATUSES),
            )
        )
        return set(result.scalars().all())

    async def get_active_trip_ids(self, driver_id: int) -> set[int]:
        result = await self.session.execute(
            select(TripRequestModel.trip_id).where(
                TripRequestModel.driver_id == driver_id,
                TripRequestModel.status.in_(ACTIVE_REQUEST_STATUSES),
            )
        )
        return set(result.scalars().all())

    async def list_pending_for_company(
        self, company_id: int, direction: Optional[RequestDirection] = None
    ) -> list[TripRequestModel]:
        query = (
            select(TripRequestModel)
            .join(TripModel, TripRequestModel.trip_id == TripModel.id)
            .where(
                TripModel.company_id == company_id,
                TripRequestModel.status == RequestStatus.PENDING,
            )
        )
        if direction is not None:
            query = query.where(TripRequestModel.direction == direction)
        result = await self.session.execute(
            query.order_by(
                TripRequestModel.created_at.desc(), TripRequestModel.id.desc()
            )
        )
        return list(result.scalars().all())

    async def list_for_driver(self, driver_id: int) -> list[TripRequestModel]:
        result = await self.session.execute(
            select(TripRequestModel)
            .where(TripRequestModel.driver_id == driver_id)
            .order_by(
                TripRequestModel.created_at.desc(), TripRequestModel.id.desc()
            )
        )
        return list(result.scalars().all())

    async def count_pending_for_company(
        self, company_id: int, directions: Iterable[RequestDirection]
    ) -> int:
        result = await self.session.execute(
            select(func.count(TripRequestModel.id))
            .join(TripModel, TripRequestModel.trip_id == TripModel.id)
            .where(
                TripModel.company_id == company_id,
                TripRequestModel.status == RequestStatus.PENDING,
                TripRequestModel.direction.in_(list(directions)),
            )
        )
        return result.scalar_one()

    async def count_pending_for_driver(
        self, driver_id: int, directions: Iterable[RequestDirection]
    ) -> int:
        result = await self.session.execute(
            select(func.count(TripRequestModel.id)).where(
                TripRequestModel.driver_id == driver_id,
                TripRequestModel.status == RequestStatus.PENDING,
                TripRequestModel.direction.in_(list(directions)),
            )
        )
        return result.scalar_one()


class DriverRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, driver_id: int) -> Optional[DriverModel]:
        return await self.session.get(DriverModel, driver_id)

    async def get_for_update(self, driver_id: int) -> Optional[DriverModel]:
        result = await self.session.execute(
            select(DriverModel)
            .where(DriverModel.id == driver_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_user_id(self, user_id: int) -> Optional[DriverModel]:
        result = await self.session.execute(
            select(DriverModel).where(DriverModel.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_by_ids(self, driver_ids: Iterable[int]) -> dict[int, DriverModel]:
        ids = list(driver_ids)
        if not ids:
            return {}
        result = await self.session.execute(
            select(DriverModel).where(DriverModel.id.in_(ids))
        )
        return {d.id: d for d in result.scalars().all()}

    async def get_searchable(self, min_vehicle_type: int) -> list[DriverModel]:
        """Drivers with a fully populated window and a sufficient vehicle."""
        result = await self.session.execute(
            select(DriverModel)
            .where(
                DriverModel.vehicle_type >= min_vehicle_type,
                DriverModel.current_location.is_not(None),
                DriverModel.current_location != "",
                DriverModel.available_from.is_not(None),
                DriverModel.available_to.is_not(None),
            )
            .order_by(DriverModel.id)
        )
        return list(result.scalars().all())


class CompanyRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, company_id: int) -> Optional[CompanyModel]:
        return await self.session.get(CompanyModel, company_id)

    async def get_for_update(self, company_id: int) -> Optional[CompanyModel]:
        result = await self.session.execute(
            select(CompanyModel)
            .where(CompanyModel.id == company_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_user_id(self, user_id: int) -> Optional[CompanyModel]:
        result = await self.session.execute(
            select(CompanyModel).where(CompanyModel.user_id == user_id)
        )
        return result.scalar_one_or_none()


class RatingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, rating: RatingModel) -> RatingModel:
        self.session.add(rating)
        await self.session.flush()
        return rating

    async def find_for_trip(self, trip_id: int, rater_type: Role) -> Optional[RatingModel]:
        result = await self.session.execute(
            select(RatingModel).where(
                RatingModel.trip_id == trip_id,
                RatingModel.rater_type == rater_type,
            )
        )
        return result.scalar_one_or_none()


class NotificationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add_many(self, rows: Iterable[NotificationModel]) -> None:
        self.session.add_all(list(rows))
        await self.session.flush()

    async def list_for_user(self, user_id: int, unread_only: bool = False) -> list[NotificationModel]:
        query = select(NotificationModel).where(NotificationModel.user_id == user_id)
        if unread_only:
            query = query.where(NotificationModel.is_read.is_(False))
        result = await self.session.execute(
            query.order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
        )
        return list(result.scalars().all())

    async def get_for_user(self, notification_id: int, user_id: int) -> Optional[NotificationModel]:
        result = await self.session.execute(
            select(NotificationModel).where(
                NotificationModel.id == notification_id,
                NotificationModel.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def count_unread(self, user_id: int) -> int:
        result = await self.session.execute(
            select(func.count(NotificationModel.id)).where(
                NotificationModel.user_id == user_id,
                NotificationModel.is_read.is_(False),
            )
        )
        return result.scalar_one()

    async def mark_all_read(self, user_id: int) -> int:
        """Returns the number of notifications that changed."""
        result = await self.session.execute(
            update(NotificationModel)
            .where(
                NotificationModel.user_id == user_id,
                NotificationModel.is_read.is_(False),
            )
            .values(is_read=True)
        )
        return result.rowcount
