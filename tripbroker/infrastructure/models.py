"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``companies``      -- shipping companies that post trips
* ``drivers``        -- independent drivers and their availability window
* ``trips``          -- transport jobs, at most one assigned driver each
* ``trip_requests``  -- negotiation instances between one trip and one driver
* ``ratings``        -- post-trip ratings in either direction
* ``notifications``  -- persisted notification sink

Indexes
-------
* **B-Tree** on ``trips.status``, ``trips.driver_id``, ``trips.company_id``
  for the conflict detector and company listings.
* **Composite** on ``trip_requests (trip_id, driver_id, status)`` for the
  duplicate-request lookup and the cascade rejection.
* **Unique** on ``trips (company_id, visa_number)``.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
    func,
)

from .database import Base
from tripbroker.domain.entities import AvailabilityWindow
from tripbroker.domain.enums import RequestDirection, RequestStatus, Role, TripStatus
from tripbroker.domain.scheduling import scheduled_at as combine_schedule


def _values(enum_cls):
    return [member.value for member in enum_cls]


_party_role = Enum(Role, name="partyrole", values_callable=_values)


class CompanyModel(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, unique=True, nullable=False)
    company_name = Column(String(255), nullable=False)
    rating = Column(Float, default=0.0, nullable=False)
    rating_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, unique=True, nullable=False)
    first_name = Column(String(120), nullable=False)
    last_name = Column(String(120), nullable=False)
    phone = Column(String(40), nullable=True)
    vehicle_type = Column(Integer, nullable=False)  # VehicleClass ordinal

    # Current availability window; any NULL makes the driver unsearchable
    current_location = Column(String(255), nullable=True)
    available_from = Column(DateTime, nullable=True)
    available_to = Column(DateTime, nullable=True)

    rating = Column(Float, default=0.0, nullable=False)
    rating_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_drivers_vehicle", "vehicle_type"),)

    @property
    def window(self) -> AvailabilityWindow:
        return AvailabilityWindow(
            self.current_location, self.available_from, self.available_to
        )


class TripModel(Base):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True)

    pickup_location = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    trip_date = Column(Date, nullable=False)
    departure_time = Column(Time, nullable=False)
    passenger_count = Column(Integer, default=1, nullable=False)
    vehicle_type = Column(Integer, nullable=False)  # required VehicleClass
    company_price = Column(Float, nullable=True)
    driver_price = Column(Float, nullable=True)
    visa_number = Column(String(64), nullable=True)

    status = Column(
        Enum(TripStatus, name="tripstatus", values_callable=_values),
        default=TripStatus.PENDING,
        nullable=False,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("company_id", "visa_number", name="uq_trips_company_visa"),
        Index("idx_trips_status", "status"),
        Index("idx_trips_driver", "driver_id"),
        Index("idx_trips_company", "company_id"),
    )
    __mapper_args__ = {"eager_defaults": True}

    @property
    def scheduled_at(self) -> datetime:
        return combine_schedule(self.trip_date, self.departure_time)


class TripRequestModel(Base):
    __tablename__ = "trip_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    trip_id = Column(
        Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False
    )
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=False)
    direction = Column(
        Enum(RequestDirection, name="requestdirection", values_callable=_values),
        nullable=False,
    )
    status = Column(
        Enum(RequestStatus, name="requeststatus", values_callable=_values),
        default=RequestStatus.PENDING,
        nullable=False,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_trip_requests_pair", "trip_id", "driver_id", "status"),
        Index("idx_trip_requests_driver", "driver_id"),
    )
    __mapper_args__ = {"eager_defaults": True}


class RatingModel(Base):
    __tablename__ = "ratings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    trip_id = Column(
        Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False
    )
    rater_id = Column(Integer, nullable=False)
    rater_type = Column(_party_role, nullable=False)
    rated_id = Column(Integer, nullable=False)
    rated_type = Column(_party_role, nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("trip_id", "rater_type", name="uq_ratings_trip_rater"),
        Index("idx_ratings_rated", "rated_type", "rated_id"),
    )


class NotificationModel(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_notifications_user", "user_id", "is_read"),)
