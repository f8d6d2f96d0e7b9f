"""Notification wording, kept in one place so every service speaks alike."""

from __future__ import annotations

from tripbroker.infrastructure.models import CompanyModel, DriverModel, TripModel
from tripbroker.infrastructure.notifications import Notice


def describe(trip: TripModel) -> str:
    when = trip.scheduled_at.strftime("%Y-%m-%d %H:%M")
    return f"{trip.pickup_location} to {trip.destination} on {when}"


def driver_name(driver: DriverModel) -> str:
    return f"{driver.first_name} {driver.last_name}"


# ── Requests ──────────────────────────────────────────────────────────


def new_driver_request(company: CompanyModel, driver: DriverModel, trip: TripModel) -> Notice:
    return Notice(
        company.user_id,
        "New Trip Request",
        f"{driver_name(driver)} asked to drive the trip from {describe(trip)}",
    )


def new_company_request(driver: DriverModel, company: CompanyModel, trip: TripModel) -> Notice:
    return Notice(
        driver.user_id,
        "New Trip Request",
        f"{company.company_name} offered you the trip from {describe(trip)}",
    )


def reassignment_requested(driver: DriverModel, company: CompanyModel, trip: TripModel) -> Notice:
    return Notice(
        driver.user_id,
        "Reassignment Request",
        f"{company.company_name} asked to reassign the trip from {describe(trip)}",
    )


def request_rejected(user_id: int, trip: TripModel) -> Notice:
    return Notice(
        user_id,
        "Trip Request Rejected",
        f"Your request for the trip from {describe(trip)} was rejected",
    )


def reassignment_rejected(company: CompanyModel, driver: DriverModel, trip: TripModel) -> Notice:
    return Notice(
        company.user_id,
        "Reassignment Rejected",
        f"{driver_name(driver)} declined to release the trip from {describe(trip)}",
    )


# ── Assignment ────────────────────────────────────────────────────────


def assigned_to_driver(driver: DriverModel, trip: TripModel) -> Notice:
    return Notice(
        driver.user_id,
        "Trip Request Accepted",
        f"You are assigned to the trip from {describe(trip)}",
    )


def assigned_to_company(company: CompanyModel, driver: DriverModel, trip: TripModel) -> Notice:
    return Notice(
        company.user_id,
        "Driver Assigned",
        f"{driver_name(driver)} will drive the trip from {describe(trip)}",
    )


def released(driver: DriverModel, trip: TripModel) -> Notice:
    return Notice(
        driver.user_id,
        "Trip Reassigned",
        f"You are no longer assigned to the trip from {describe(trip)}",
    )


def reassignment_approved(company: CompanyModel, driver: DriverModel, trip: TripModel) -> Notice:
    return Notice(
        company.user_id,
        "Reassignment Approved",
        f"{driver_name(driver)} released the trip from {describe(trip)}",
    )


# ── Trip lifecycle ────────────────────────────────────────────────────


def trip_started(company: CompanyModel, driver: DriverModel, trip: TripModel) -> Notice:
    return Notice(
        company.user_id,
        "Trip Started",
        f"{driver_name(driver)} started the trip from {describe(trip)}",
    )


def trip_completed(company: CompanyModel, driver: DriverModel, trip: TripModel) -> Notice:
    return Notice(
        company.user_id,
        "Trip Completed",
        f"{driver_name(driver)} completed the trip from {describe(trip)}",
    )


def trip_cancelled(user_id: int, trip: TripModel) -> Notice:
    return Notice(
        user_id,
        "Trip Cancelled",
        f"The trip from {describe(trip)} was cancelled",
    )


def new_rating(user_id: int, score: int, trip: TripModel) -> Notice:
    return Notice(
        user_id,
        "New Rating",
        f"You received a {score}-star rating for the trip from {describe(trip)}",
    )
