"""
Flight search and booking through the flight provider, with bookings
recorded locally and optionally added to a trip.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.auth import CurrentUser
from backend.db import ActivityRow, Database, FlightBookingRow
from backend.errors import (
    AccessDeniedError,
    BadRequestError,
    NotFoundError,
    ServiceError,
    UpstreamUnavailableError,
)
from backend.flights_client import (
    FlightProvider,
    FlightProviderError,
    FlightSearch,
    search_basic_airports,
)
from backend.schemas import BookingRequest, FlightSearchRequest
from backend.services.trips import load_trip

logger = logging.getLogger(__name__)

MIN_AIRPORT_QUERY = 2


def provider_error(e: FlightProviderError) -> ServiceError:
    """Maps a provider failure onto the service error family."""
    if e.status_code == 404:
        return NotFoundError(str(e))
    if e.status_code in (400, 422):
        return BadRequestError(str(e))
    return UpstreamUnavailableError("Flight provider is unavailable")


def search(provider: FlightProvider, payload: FlightSearchRequest) -> list[dict]:
    if payload.return_date and payload.return_date < payload.departure_date:
        raise BadRequestError("Return date must be on or after the departure date")
    query = FlightSearch(
        origin=payload.origin.upper(),
        destination=payload.destination.upper(),
        departure_date=payload.departure_date.isoformat(),
        return_date=payload.return_date.isoformat() if payload.return_date else None,
        adults=payload.passengers.adults,
        children=payload.passengers.children,
        infants=payload.passengers.infants,
        cabin_class=payload.cabin_class,
    )
    try:
        return provider.search(query)
    except FlightProviderError as e:
        logger.warning("Flight search failed: %s", e)
        raise provider_error(e) from e


def get_offer(provider: FlightProvider, offer_id: str) -> dict:
    try:
        return provider.get_offer(offer_id)
    except FlightProviderError as e:
        raise provider_error(e) from e


def _flight_activities(trip_id: int, order: dict) -> list[ActivityRow]:
    activities = []
    for flight in order.get("slices") or []:
        departure = flight.get("departure_datetime") or ""
        if len(departure) < 16:
            continue
        numbers = ", ".join(
            s["flight_number"] for s in flight.get("segments") or [] if s.get("flight_number")
        )
        notes = f"Booking reference {order.get('booking_reference') or order['id']}"
        if numbers:
            notes += f". Flights: {numbers}"
        activities.append(
            ActivityRow(
                trip_id=trip_id,
                title=f"Flight {flight.get('origin')} to {flight.get('destination')}",
                date=date.fromisoformat(departure[:10]),
                time=departure[11:16],
                location_name=f"{flight.get('origin')} Airport",
                notes=notes,
                tag="flight",
                travel_mode="flight",
                order=0,
            )
        )
    return activities


def book(
    db: Database, user: CurrentUser, payload: BookingRequest, provider: FlightProvider
) -> FlightBookingRow:
    if payload.trip_id is not None:
        with db.session() as session:
            load_trip(session, payload.trip_id, user, write=True)
    passengers = [p.model_dump(mode="json") for p in payload.passengers]
    try:
        order = provider.create_order(payload.offer_id, passengers)
    except FlightProviderError as e:
        logger.warning("Booking offer %s failed: %s", payload.offer_id, e)
        raise provider_error(e) from e

    with db.session() as session:
        booking = FlightBookingRow(
            user_id=user.id,
            trip_id=payload.trip_id,
            provider_order_id=order["id"],
            offer_id=payload.offer_id,
            booking_reference=order.get("booking_reference"),
            status=order.get("status") or "confirmed",
            total_amount=order.get("total_amount") or 0.0,
            currency=order.get("currency") or "USD",
            passengers=order.get("passengers") or [],
            slices=order.get("slices") or [],
        )
        session.add(booking)
        if payload.trip_id is not None:
            session.add_all(_flight_activities(payload.trip_id, order))
    logger.info("User %s booked order %s", user.id, booking.provider_order_id)
    return booking


def list_bookings(db: Database, user: CurrentUser) -> list[FlightBookingRow]:
    with db.session() as session:
        return list(
            session.execute(
                select(FlightBookingRow)
                .where(FlightBookingRow.user_id == user.id)
                .order_by(FlightBookingRow.created_at.desc())
            ).scalars()
        )


def _load_booking(session: Session, user: CurrentUser, booking_id: int) -> FlightBookingRow:
    booking = session.get(FlightBookingRow, booking_id)
    if not booking:
        raise NotFoundError("Booking not found")
    if booking.user_id != user.id and not user.is_superadmin:
        raise AccessDeniedError("Access denied")
    return booking


def get_booking(db: Database, user: CurrentUser, booking_id: int) -> FlightBookingRow:
    with db.session() as session:
        return _load_booking(session, user, booking_id)


def cancel_booking(
    db: Database, user: CurrentUser, booking_id: int, provider: FlightProvider
) -> tuple[FlightBookingRow, dict]:
    with db.session() as session:
        booking = _load_booking(session, user, booking_id)
        if booking.status == "cancelled":
            raise BadRequestError("Booking is already cancelled")
        order_id = booking.provider_order_id

    try:
        refund = provider.cancel_order(order_id)
    except FlightProviderError as e:
        raise provider_error(e) from e

    with db.session() as session:
        booking = session.get(FlightBookingRow, booking_id)
        booking.status = "cancelled"
    logger.info("User %s cancelled booking %s", user.id, booking_id)
    return booking, refund


def search_airports(provider: FlightProvider, query: str) -> tuple[list[dict], bool]:
    """Matching airports and whether the built-in list was used."""
    query = (query or "").strip()
    if len(query) < MIN_AIRPORT_QUERY:
        raise BadRequestError("Query must be at least 2 characters")
    try:
        return provider.search_airports(query), False
    except FlightProviderError as e:
        logger.warning("Airport search unavailable, using built-in list: %s", e)
        return search_basic_airports(query), True
