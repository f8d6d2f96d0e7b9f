"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 3 sample companies
  - 8 sample drivers (cars, vans and buses around Haifa and Tel Aviv)
  - 8 sample trips (mix of pending, assigned, in_progress, completed)
  - a few pending trip requests in both directions
"""

import asyncio
from datetime import date, datetime, time, timedelta

from sqlalchemy import text

from tripbroker.domain.enums import RequestDirection, RequestStatus, TripStatus, VehicleClass
from tripbroker.infrastructure.database import async_session_factory, engine
from tripbroker.infrastructure.models import (
    CompanyModel,
    DriverModel,
    TripModel,
    TripRequestModel,
)

TOMORROW = date.today() + timedelta(days=1)
WINDOW_FROM = datetime.combine(TOMORROW, time(6, 0))
WINDOW_TO = datetime.combine(TOMORROW, time(22, 0))


COMPANIES = [
    {"user_id": 101, "company_name": "Carmel Shipping Lines"},
    {"user_id": 102, "company_name": "Negev Freight"},
    {"user_id": 103, "company_name": "Galilee Crew Transfers"},
]

DRIVERS = [
    # user_id, first, last, vehicle, location
    (201, "Yossi", "Cohen", VehicleClass.BUS, "Haifa"),
    (202, "Dana", "Levi", VehicleClass.VAN, "Haifa Port"),
    (203, "Amir", "Mizrahi", VehicleClass.CAR, "Haifa"),
    (204, "Noa", "Peretz", VehicleClass.VAN, "Tel Aviv"),
    (205, "Omer", "Biton", VehicleClass.BUS, "Ashdod"),
    (206, "Shira", "Friedman", VehicleClass.CAR, "Tel Aviv"),
    (207, "Eitan", "Katz", VehicleClass.VAN, "Ashdod Port"),
    (208, "Maya", "Azoulay", VehicleClass.CAR, None),  # not searchable
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM companies"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Companies ─────────────────────────────────────────────────
        companies = [CompanyModel(**c) for c in COMPANIES]
        session.add_all(companies)
        await session.flush()
        print(f"  Created {len(companies)} companies")

        # ── Drivers ───────────────────────────────────────────────────
        drivers = []
        for user_id, first, last, vehicle, location in DRIVERS:
            m = DriverModel(
                user_id=user_id,
                first_name=first,
                last_name=last,
                vehicle_type=int(vehicle),
                current_location=location,
                available_from=WINDOW_FROM if location else None,
                available_to=WINDOW_TO if location else None,
            )
            session.add(m)
            drivers.append(m)
        await session.flush()
        print(f"  Created {len(drivers)} drivers")

        # ── Trips ─────────────────────────────────────────────────────
        trips_data = [
            # company, pickup, destination, hour, vehicle, status, driver
            (0, "Haifa Port", "Ben Gurion Airport", 10, VehicleClass.VAN, TripStatus.PENDING, None),
            (0, "Haifa", "Tel Aviv", 14, VehicleClass.CAR, TripStatus.PENDING, None),
            (0, "Haifa", "Jerusalem", 8, VehicleClass.BUS, TripStatus.ASSIGNED, 0),
            (1, "Ashdod Port", "Ben Gurion Airport", 9, VehicleClass.VAN, TripStatus.ASSIGNED, 6),
            (1, "Ashdod", "Eilat", 12, VehicleClass.BUS, TripStatus.PENDING, None),
            (1, "Tel Aviv", "Ashdod Port", 7, VehicleClass.CAR, TripStatus.IN_PROGRESS, 5),
            (2, "Tel Aviv", "Haifa Port", 16, VehicleClass.VAN, TripStatus.PENDING, None),
            (2, "Haifa", "Acre", 18, VehicleClass.CAR, TripStatus.COMPLETED, 2),
        ]
        trips = []
        for n, (company, pickup, dest, hour, vehicle, status, driver) in enumerate(trips_data):
            m = TripModel(
                company_id=companies[company].id,
                driver_id=drivers[driver].id if driver is not None else None,
                pickup_location=pickup,
                destination=dest,
                trip_date=TOMORROW,
                departure_time=time(hour, 0),
                passenger_count=2 if vehicle == VehicleClass.CAR else 6,
                vehicle_type=int(vehicle),
                company_price=450.0 + 50 * n,
                driver_price=300.0 + 40 * n,
                visa_number=f"VISA-{1000 + n}",
                status=status,
            )
            session.add(m)
            trips.append(m)
        await session.flush()
        print(f"  Created {len(trips)} trips")

        # ── Requests ──────────────────────────────────────────────────
        requests = [
            TripRequestModel(
                trip_id=trips[0].id,
                driver_id=drivers[1].id,
                direction=RequestDirection.DRIVER_TO_COMPANY,
                status=RequestStatus.PENDING,
            ),
            TripRequestModel(
                trip_id=trips[0].id,
                driver_id=drivers[0].id,
                direction=RequestDirection.COMPANY_TO_DRIVER,
                status=RequestStatus.PENDING,
            ),
            TripRequestModel(
                trip_id=trips[6].id,
                driver_id=drivers[3].id,
                direction=RequestDirection.COMPANY_TO_DRIVER,
                status=RequestStatus.PENDING,
            ),
        ]
        session.add_all(requests)
        await session.flush()
        print(f"  Created {len(requests)} trip requests")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
