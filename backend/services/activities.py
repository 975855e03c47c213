"""
Activities: CRUD, ordering, completion and natural-language entry.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend.auth import CurrentUser
from backend.db import ActivityRow, Database, TripRow
from backend.errors import BadRequestError, NotFoundError
from backend.schemas import (
    ActivityCreate,
    ActivityUpdate,
    NaturalActivityRequest,
)
from backend.services.trips import load_trip, trip_activities
from itinerary.geocoding import Geocoder, geocode_in_city
from shared.activity_parser import parse_activity_text
from shared.types import ParsedActivity

logger = logging.getLogger(__name__)


def _check_in_range(trip: TripRow, day: date) -> None:
    if day < trip.start_date or day > trip.end_date:
        raise BadRequestError("Activity date must be within the trip dates")


def next_order(session: Session, trip_id: int, day: date) -> int:
    current = session.execute(
        select(func.max(ActivityRow.order)).where(
            ActivityRow.trip_id == trip_id, ActivityRow.date == day
        )
    ).scalar()
    return 0 if current is None else current + 1


def _geocode(
    geocoder: Geocoder, location_name: Optional[str], trip: TripRow
) -> tuple[Optional[float], Optional[float]]:
    point = geocode_in_city(geocoder, location_name or "", trip.city)
    if not point:
        return None, None
    return point.latitude, point.longitude


def _load_activity(
    session: Session, activity_id: int, user: CurrentUser, *, write: bool
) -> tuple[ActivityRow, TripRow]:
    activity = session.get(ActivityRow, activity_id)
    if not activity:
        raise NotFoundError("Activity not found")
    trip = load_trip(session, activity.trip_id, user, write=write)
    return activity, trip


def list_for_trip(db: Database, user: CurrentUser, trip_id: int) -> list[ActivityRow]:
    with db.session() as session:
        trip = load_trip(session, trip_id, user)
        return trip_activities(session, trip.id)


def create_activity(
    db: Database, user: CurrentUser, payload: ActivityCreate, geocoder: Geocoder
) -> ActivityRow:
    with db.session() as session:
        trip = load_trip(session, payload.trip_id, user, write=True)
        _check_in_range(trip, payload.date)
        values = payload.model_dump()
        if values["latitude"] is None or values["longitude"] is None:
            values["latitude"], values["longitude"] = _geocode(
                geocoder, payload.location_name, trip
            )
        if values["order"] is None:
            values["order"] = next_order(session, trip.id, payload.date)
        activity = ActivityRow(**values)
        session.add(activity)
    logger.info("Created activity %s on trip %s", activity.id, activity.trip_id)
    return activity


def update_activity(
    db: Database,
    user: CurrentUser,
    activity_id: int,
    payload: ActivityUpdate,
    geocoder: Geocoder,
) -> ActivityRow:
    changes = payload.model_dump(exclude_unset=True)
    with db.session() as session:
        activity, trip = _load_activity(session, activity_id, user, write=True)
        if changes.get("date"):
            _check_in_range(trip, changes["date"])
        location_changed = (
            "location_name" in changes
            and changes["location_name"] != activity.location_name
        )
        for key, value in changes.items():
            setattr(activity, key, value)
        if location_changed and "latitude" not in changes and "longitude" not in changes:
            activity.latitude, activity.longitude = _geocode(
                geocoder, activity.location_name, trip
            )
        return activity


def delete_activity(db: Database, user: CurrentUser, activity_id: int) -> None:
    with db.session() as session:
        activity, _ = _load_activity(session, activity_id, user, write=True)
        session.delete(activity)


def set_order(db: Database, user: CurrentUser, activity_id: int, order: int) -> ActivityRow:
    with db.session() as session:
        activity, _ = _load_activity(session, activity_id, user, write=True)
        activity.order = order
        return activity


def set_completed(
    db: Database, user: CurrentUser, activity_id: int, completed: Optional[bool]
) -> ActivityRow:
    """Sets `completed` when given, otherwise toggles it."""
    with db.session() as session:
        activity, _ = _load_activity(session, activity_id, user, write=True)
        activity.completed = (not activity.completed) if completed is None else completed
        return activity


def parse_text(text: str, reference: Optional[date] = None) -> ParsedActivity:
    try:
        return parse_activity_text(text, reference)
    except ValueError as e:
        raise BadRequestError(str(e)) from e


def create_from_text(
    db: Database,
    user: CurrentUser,
    payload: NaturalActivityRequest,
    geocoder: Geocoder,
    today: Optional[date] = None,
) -> ActivityRow:
    with db.session() as session:
        trip = load_trip(session, payload.trip_id, user, write=True)
        parsed = parse_text(payload.text, today or date.today())
        day = date.fromisoformat(parsed.date)
        if day < trip.start_date or day > trip.end_date:
            day = trip.start_date
        latitude, longitude = _geocode(geocoder, parsed.location_name, trip)
        activity = ActivityRow(
            trip_id=trip.id,
            title=parsed.title,
            date=day,
            time=parsed.time,
            location_name=parsed.location_name or None,
            latitude=latitude,
            longitude=longitude,
            order=next_order(session, trip.id, day),
        )
        session.add(activity)
    return activity
