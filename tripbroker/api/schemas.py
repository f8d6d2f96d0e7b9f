"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from tripbroker.domain.enums import RequestDirection, RequestStatus, TripStatus, VehicleClass


def _naive(value: Optional[datetime]) -> Optional[datetime]:
    # schedules are compared as local wall-clock times
    if value is not None and value.tzinfo is not None:
        return value.replace(tzinfo=None)
    return value


# ── Requests ──────────────────────────────────────────────────────────


class TripCreateRequest(BaseModel):
    pickup_location: str = Field(..., min_length=1, max_length=255)
    destination: str = Field(..., min_length=1, max_length=255)
    trip_date: date
    departure_time: time
    passenger_count: int = Field(1, ge=1, le=100)
    vehicle_type: VehicleClass = Field(
        ..., description="Required vehicle class: 1 car, 2 van, 3 bus."
    )
    company_price: Optional[float] = Field(None, ge=0)
    driver_price: Optional[float] = Field(None, ge=0)
    visa_number: Optional[str] = Field(
        None, max_length=64, description="Unique per company when given."
    )


class TripUpdateRequest(BaseModel):
    pickup_location: Optional[str] = Field(None, min_length=1, max_length=255)
    destination: Optional[str] = Field(None, min_length=1, max_length=255)
    trip_date: Optional[date] = None
    departure_time: Optional[time] = None
    passenger_count: Optional[int] = Field(None, ge=1, le=100)
    vehicle_type: Optional[VehicleClass] = None
    company_price: Optional[float] = Field(None, ge=0)
    driver_price: Optional[float] = Field(None, ge=0)
    visa_number: Optional[str] = Field(None, max_length=64)

    model_config = {"extra": "forbid"}


class CompanyRequestCreate(BaseModel):
    driver_id: int


class AvailabilityUpdateRequest(BaseModel):
    location: Optional[str] = Field(None, max_length=255)
    available_from: Optional[datetime] = None
    available_to: Optional[datetime] = None

    @field_validator("available_from", "available_to")
    @classmethod
    def strip_timezone(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _naive(value)


class CompleteTripRequest(BaseModel):
    rating: Optional[int] = Field(
        None, description="Optional 1-5 rating of the company; never blocks completion."
    )
    comment: Optional[str] = None


class RatingCreateRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None


# ── Responses ─────────────────────────────────────────────────────────


class TripResponse(BaseModel):
    id: int
    company_id: int
    driver_id: Optional[int] = None
    pickup_location: str
    destination: str
    trip_date: date
    departure_time: time
    passenger_count: int
    vehicle_type: int
    company_price: Optional[float] = None
    driver_price: Optional[float] = None
    visa_number: Optional[str] = None
    status: TripStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TripRequestResponse(BaseModel):
    id: int
    trip_id: int
    driver_id: int
    direction: RequestDirection
    status: RequestStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DriverResponse(BaseModel):
    id: int
    user_id: int
    first_name: str
    last_name: str
    phone: Optional[str] = None
    vehicle_type: int
    current_location: Optional[str] = None
    available_from: Optional[datetime] = None
    available_to: Optional[datetime] = None
    rating: float
    rating_count: int

    model_config = {"from_attributes": True}


class RequestingDriverResponse(BaseModel):
    request: TripRequestResponse
    driver: DriverResponse


class AssignmentResponse(BaseModel):
    request: TripRequestResponse
    trip: TripResponse
    rejected_request_ids: list[int] = []
    released_driver_id: Optional[int] = None

    model_config = {"from_attributes": True}


class CompletionResponse(BaseModel):
    trip: TripResponse
    rating_saved: bool

    model_config = {"from_attributes": True}


class RatingResponse(BaseModel):
    id: int
    trip_id: int
    rating: int
    comment: Optional[str] = None

    model_config = {"from_attributes": True}


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    title: str
    message: str
    is_read: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CountResponse(BaseModel):
    count: int


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
    code: str
