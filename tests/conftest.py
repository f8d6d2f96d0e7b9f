"""
Shared test fixtures.

Each test gets its own SQLite file (via aiosqlite) under ``tmp_path``, built
with the production ``build_engine`` so transactions open with
``BEGIN IMMEDIATE`` exactly as they would in a local run.  A file, not
``:memory:``, because concurrent sessions must see the same database.

Notifications are captured by ``RecordingSink`` instead of Redis or the
``notifications`` table.
"""

from datetime import date, datetime, time, timedelta
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from tripbroker.domain.entities import Actor
from tripbroker.domain.enums import (
    RequestDirection,
    RequestStatus,
    Role,
    TripStatus,
    VehicleClass,
)
from tripbroker.infrastructure.database import Base, build_engine, build_session_factory
from tripbroker.infrastructure.models import (
    CompanyModel,
    DriverModel,
    TripModel,
    TripRequestModel,
)
from tripbroker.infrastructure.notifications import (
    Notice,
    NotificationDispatcher,
    NotificationSink,
)
from tripbroker.services.broker import Broker

DAY = date(2025, 10, 26)
OPS_USER_ID = 1


def at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
    return datetime.combine(day, time(hour, minute))


def company_actor(company: CompanyModel) -> Actor:
    return Actor(user_id=company.user_id, role=Role.COMPANY)


def driver_actor(driver: DriverModel) -> Actor:
    return Actor(user_id=driver.user_id, role=Role.DRIVER)


# ── Notification capture ──────────────────────────────────────────────


class RecordingSink(NotificationSink):
    def __init__(self):
        self.sent: list[Notice] = []

    async def enqueue(self, user_id: int, title: str, message: str) -> None:
        self.sent.append(Notice(user_id, title, message))

    def titles_for(self, user_id: int) -> list[str]:
        return [n.title for n in self.sent if n.user_id == user_id]


# ── Data builder ──────────────────────────────────────────────────────


class Factory:
    """Inserts rows directly, bypassing the engine's preconditions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self._next_user_id = 100

    def _user_id(self) -> int:
        self._next_user_id += 1
        return self._next_user_id

    async def _save(self, row):
        async with self.session_factory() as session:
            session.add(row)
            await session.commit()
        return row

    async def company(self, name: str = "Carmel Shipping") -> CompanyModel:
        return await self._save(CompanyModel(user_id=self._user_id(), company_name=name))

    async def driver(
        self,
        location: Optional[str] = "Haifa",
        *,
        vehicle: VehicleClass = VehicleClass.CAR,
        window: Optional[tuple[datetime, datetime]] = (at(8), at(18)),
        first_name: str = "Dana",
    ) -> DriverModel:
        available_from, available_to = window or (None, None)
        return await self._save(
            DriverModel(
                user_id=self._user_id(),
                first_name=first_name,
                last_name="Levi",
                vehicle_type=int(vehicle),
                current_location=location,
                available_from=available_from,
                available_to=available_to,
            )
        )

    async def trip(
        self,
        company: CompanyModel,
        *,
        pickup: str = "Haifa",
        departure: time = time(14, 0),
        day: date = DAY,
        vehicle: VehicleClass = VehicleClass.CAR,
        status: TripStatus = TripStatus.PENDING,
        driver: Optional[DriverModel] = None,
        visa_number: Optional[str] = None,
    ) -> TripModel:
        return await self._save(
            TripModel(
                company_id=company.id,
                driver_id=driver.id if driver is not None else None,
                pickup_location=pickup,
                destination="Ben Gurion Airport",
                trip_date=day,
                departure_time=departure,
                passenger_count=2,
                vehicle_type=int(vehicle),
                company_price=500.0,
                driver_price=350.0,
                visa_number=visa_number,
                status=status,
            )
        )

    async def request(
        self,
        trip: TripModel,
        driver: DriverModel,
        direction: RequestDirection,
        status: RequestStatus = RequestStatus.PENDING,
    ) -> TripRequestModel:
        return await self._save(
            TripRequestModel(
                trip_id=trip.id, driver_id=driver.id, direction=direction, status=status
            )
        )

    # ── Reads ─────────────────────────────────────────────────────────

    async def reload_trip(self, trip_id: int) -> Optional[TripModel]:
        async with self.session_factory() as session:
            return await session.get(TripModel, trip_id)

    async def reload_request(self, request_id: int) -> Optional[TripRequestModel]:
        async with self.session_factory() as session:
            return await session.get(TripRequestModel, request_id)

    async def reload_driver(self, driver_id: int) -> Optional[DriverModel]:
        async with self.session_factory() as session:
            return await session.get(DriverModel, driver_id)

    async def reload_company(self, company_id: int) -> Optional[CompanyModel]:
        async with self.session_factory() as session:
            return await session.get(CompanyModel, company_id)

    async def remove_driver(self, driver_id: int) -> None:
        """Delete the profile row only; trips keep pointing at it."""
        async with self.session_factory() as session:
            await session.execute(delete(DriverModel).where(DriverModel.id == driver_id))
            await session.commit()

    async def requests_for(self, trip_id: int) -> list[TripRequestModel]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(TripRequestModel)
                .where(TripRequestModel.trip_id == trip_id)
                .order_by(TripRequestModel.id)
            )
            return list(result.scalars().all())


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create tables in a fresh database file, yield the engine, dispose."""
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'tripbroker.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def broker(session_factory, sink) -> Broker:
    return Broker(
        session_factory,
        NotificationDispatcher(sink),
        conflict_buffer=timedelta(hours=2),
        operations_user_id=OPS_USER_ID,
    )


@pytest.fixture
def factory(session_factory) -> Factory:
    return Factory(session_factory)
