"""Resolve the acting company or driver and check who may touch what."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from tripbroker.domain.entities import Actor
from tripbroker.domain.enums import Role
from tripbroker.domain.errors import NotFound, Unauthorized
from tripbroker.infrastructure.models import (
    CompanyModel,
    DriverModel,
    TripModel,
    TripRequestModel,
)
from tripbroker.infrastructure.repositories import CompanyRepository, DriverRepository


async def resolve_company(session: AsyncSession, actor: Actor) -> CompanyModel:
    if actor.role != Role.COMPANY:
        raise Unauthorized("Company role required")
    company = await CompanyRepository(session).get_by_user_id(actor.user_id)
    if company is None:
        raise NotFound("Company profile not found")
    return company


async def resolve_driver(session: AsyncSession, actor: Actor) -> DriverModel:
    if actor.role != Role.DRIVER:
        raise Unauthorized("Driver role required")
    driver = await DriverRepository(session).get_by_user_id(actor.user_id)
    if driver is None:
        raise NotFound("Driver profile not found")
    return driver


async def owned_by(session: AsyncSession, actor: Actor, trip: TripModel) -> CompanyModel:
    company = await resolve_company(session, actor)
    if trip.company_id != company.id:
        raise Unauthorized("Not authorized to access this trip", {"trip_id": trip.id})
    return company


async def company_of(session: AsyncSession, trip: TripModel) -> CompanyModel:
    company = await CompanyRepository(session).get_by_id(trip.company_id)
    if company is None:
        raise NotFound("Company profile not found", {"company_id": trip.company_id})
    return company


async def driver_by_id(session: AsyncSession, driver_id: int) -> DriverModel:
    driver = await DriverRepository(session).get_by_id(driver_id)
    if driver is None:
        raise NotFound("Driver not found", {"driver_id": driver_id})
    return driver


async def ensure_request_party(
    session: AsyncSession,
    actor: Actor,
    request: TripRequestModel,
    trip: TripModel,
) -> None:
    """The request's driver or the trip's owning company; nobody else."""
    if actor.role == Role.DRIVER:
        driver = await resolve_driver(session, actor)
        if driver.id != request.driver_id:
            raise Unauthorized("Not a party to this request")
    else:
        await owned_by(session, actor, trip)
