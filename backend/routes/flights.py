"""
Routes for flight search and booking.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from backend.auth import CurrentUser, get_current_user
from backend.db import Database
from backend.dependencies import get_db, get_flight_provider
from backend.flights_client import FlightProvider
from backend.schemas import (
    AirportSearchResponse,
    BookingRequest,
    BookingResponse,
    BookingsResponse,
    CancelBookingResponse,
    FlightOffer,
    FlightSearchRequest,
    FlightSearchResponse,
)
from backend.services import flights

router = APIRouter()


@router.post("/search", response_model=FlightSearchResponse)
def search(
    payload: FlightSearchRequest,
    user: CurrentUser = Depends(get_current_user),
    provider: FlightProvider = Depends(get_flight_provider),
):
    return FlightSearchResponse(offers=flights.search(provider, payload))


@router.get("/offers/{offer_id}", response_model=FlightOffer)
def get_offer(
    offer_id: str,
    user: CurrentUser = Depends(get_current_user),
    provider: FlightProvider = Depends(get_flight_provider),
):
    return flights.get_offer(provider, offer_id)


@router.get("/airports/search", response_model=AirportSearchResponse)
def search_airports(
    q: str = Query(default=""),
    user: CurrentUser = Depends(get_current_user),
    provider: FlightProvider = Depends(get_flight_provider),
):
    airports, fallback = flights.search_airports(provider, q)
    return AirportSearchResponse(airports=airports, fallback=fallback)


@router.post("/bookings", response_model=BookingResponse, status_code=201)
def book(
    payload: BookingRequest,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    provider: FlightProvider = Depends(get_flight_provider),
):
    return flights.book(db, user, payload, provider)


@router.get("/bookings", response_model=BookingsResponse)
def list_bookings(
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return BookingsResponse(bookings=flights.list_bookings(db, user))


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return flights.get_booking(db, user, booking_id)


@router.delete("/bookings/{booking_id}", response_model=CancelBookingResponse)
def cancel_booking(
    booking_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    provider: FlightProvider = Depends(get_flight_provider),
):
    booking, refund = flights.cancel_booking(db, user, booking_id, provider)
    return CancelBookingResponse(
        booking=BookingResponse.model_validate(booking),
        refund_amount=refund.get("refund_amount") or 0.0,
        refund_currency=refund.get("refund_currency"),
    )
