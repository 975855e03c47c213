"""
Trips: CRUD, access rules, the day-by-day itinerary, sharing, hotel and
collaborators.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from backend.auth import CurrentUser
from backend.db import (
    ActivityRow,
    CollaboratorRow,
    Database,
    ProposalRow,
    TripRow,
    UserRow,
)
from backend.errors import AccessDeniedError, BadRequestError, NotFoundError
from backend.schemas import (
    ActivityResponse,
    CollaboratorCreate,
    CollaboratorUpdate,
    HotelRequest,
    ItineraryActivity,
    ItineraryDay,
    ShareSettingsUpdate,
    TripCreate,
    TripUpdate,
)
from itinerary.geocoding import Geocoder
from shared.geo import distance_between, iter_days
from shared.string_utils import random_code

logger = logging.getLogger(__name__)

CHECK_IN_TIME = "15:00"
CHECK_OUT_TIME = "11:00"
SHARE_CODE_LENGTH = 12


# Access rules


def _collaborator_for(
    session: Session, trip: TripRow, user: CurrentUser
) -> Optional[CollaboratorRow]:
    return session.execute(
        select(CollaboratorRow).where(
            CollaboratorRow.trip_id == trip.id,
            or_(
                CollaboratorRow.user_id == user.id,
                func.lower(CollaboratorRow.email) == user.email.lower(),
            ),
        )
    ).scalar_one_or_none()


def _same_organization(trip: TripRow, user: CurrentUser) -> bool:
    return (
        trip.organization_id is not None
        and trip.organization_id == user.organization_id
    )


def can_read(session: Session, trip: TripRow, user: CurrentUser) -> bool:
    if user.is_superadmin or trip.user_id == user.id:
        return True
    if _same_organization(trip, user):
        return True
    collaborator = _collaborator_for(session, trip, user)
    return bool(collaborator and collaborator.status == "accepted")


def can_write(session: Session, trip: TripRow, user: CurrentUser) -> bool:
    if user.is_superadmin or trip.user_id == user.id:
        return True
    if user.is_admin and _same_organization(trip, user):
        return True
    collaborator = _collaborator_for(session, trip, user)
    return bool(
        collaborator
        and collaborator.status == "accepted"
        and collaborator.role == "editor"
    )


def load_trip(
    session: Session, trip_id: int, user: CurrentUser, *, write: bool = False
) -> TripRow:
    """Fetches a trip the caller may read (or write); 404/403 otherwise."""
    trip = session.get(TripRow, trip_id)
    if not trip:
        raise NotFoundError("Trip not found")
    allowed = can_write(session, trip, user) if write else can_read(session, trip, user)
    if not allowed:
        raise AccessDeniedError("Access denied")
    return trip


def trip_activities(session: Session, trip_id: int) -> list[ActivityRow]:
    return list(
        session.execute(
            select(ActivityRow)
            .where(ActivityRow.trip_id == trip_id)
            .order_by(ActivityRow.date, ActivityRow.order, ActivityRow.time)
        ).scalars()
    )


# Trips


def list_trips(db: Database, user: CurrentUser) -> list[TripRow]:
    with db.session() as session:
        return list(
            session.execute(
                select(TripRow)
                .where(TripRow.user_id == user.id)
                .order_by(TripRow.start_date.desc(), TripRow.id.desc())
            ).scalars()
        )


def list_corporate_trips(db: Database, user: CurrentUser) -> list[dict]:
    """Organization trips with their owner's name and email."""
    if user.organization_id is None:
        raise BadRequestError("User is not part of an organization")
    with db.session() as session:
        rows = session.execute(
            select(TripRow, UserRow)
            .join(UserRow, UserRow.id == TripRow.user_id)
            .where(TripRow.organization_id == user.organization_id)
            .order_by(TripRow.start_date.desc(), TripRow.id.desc())
        ).all()
    return [
        {
            **_trip_fields(trip),
            "user_name": owner.display_name,
            "user_email": owner.email,
        }
        for trip, owner in rows
    ]


def _trip_fields(trip: TripRow) -> dict:
    return {column.key: getattr(trip, column.key) for column in TripRow.__table__.columns}


def _locate_city(
    geocoder: Geocoder, city: Optional[str], country: Optional[str]
) -> tuple[Optional[float], Optional[float]]:
    if not city:
        return None, None
    query = f"{city}, {country}" if country else city
    point = geocoder.geocode(query)
    if not point:
        logger.info("Could not geocode trip city %r", query)
        return None, None
    return point.latitude, point.longitude


def create_trip(
    db: Database, user: CurrentUser, payload: TripCreate, geocoder: Geocoder
) -> TripRow:
    if payload.end_date < payload.start_date:
        raise BadRequestError("End date must be on or after the start date")
    values = payload.model_dump()
    if values["city_latitude"] is None or values["city_longitude"] is None:
        values["city_latitude"], values["city_longitude"] = _locate_city(
            geocoder, payload.city, payload.country
        )
    trip = TripRow(user_id=user.id, organization_id=user.organization_id, **values)
    with db.session() as session:
        session.add(trip)
    logger.info("User %s created trip %s", user.id, trip.id)
    return trip


def get_trip(db: Database, user: CurrentUser, trip_id: int) -> TripRow:
    with db.session() as session:
        return load_trip(session, trip_id, user)


def update_trip(
    db: Database,
    user: CurrentUser,
    trip_id: int,
    payload: TripUpdate,
    geocoder: Geocoder,
) -> TripRow:
    changes = payload.model_dump(exclude_unset=True)
    with db.session() as session:
        trip = load_trip(session, trip_id, user, write=True)
        start = changes.get("start_date") or trip.start_date
        end = changes.get("end_date") or trip.end_date
        if end < start:
            raise BadRequestError("End date must be on or after the start date")
        city_changed = "city" in changes and changes["city"] != trip.city
        for key, value in changes.items():
            setattr(trip, key, value)
        if city_changed and "city_latitude" not in changes:
            trip.city_latitude, trip.city_longitude = _locate_city(
                geocoder, trip.city, trip.country
            )
        return trip


def delete_trip(db: Database, user: CurrentUser, trip_id: int) -> None:
    with db.session() as session:
        trip = load_trip(session, trip_id, user, write=True)
        for model in (ActivityRow, CollaboratorRow, ProposalRow):
            session.execute(delete(model).where(model.trip_id == trip.id))
        session.delete(trip)
    logger.info("User %s deleted trip %s", user.id, trip_id)


def get_itinerary(db: Database, user: CurrentUser, trip_id: int) -> list[ItineraryDay]:
    """Activities grouped per day with distances between consecutive stops."""
    with db.session() as session:
        trip = load_trip(session, trip_id, user)
        activities = trip_activities(session, trip.id)

    by_day: dict[date, list[ActivityRow]] = defaultdict(list)
    for activity in activities:
        by_day[activity.date].append(activity)
    days = list(iter_days(trip.start_date, trip.end_date))
    # Activities dated outside the trip range still show up.
    days += sorted(day for day in by_day if day not in days)

    itinerary = []
    for day in days:
        ordered = sorted(by_day.get(day, []), key=lambda a: (a.order, a.time or ""))
        entries = []
        total = 0.0
        previous = None
        for activity in ordered:
            distance = None
            if previous is not None:
                distance = distance_between(
                    previous.latitude,
                    previous.longitude,
                    activity.latitude,
                    activity.longitude,
                )
            if activity.latitude is not None and activity.longitude is not None:
                previous = activity
            total += distance or 0.0
            entries.append(
                ItineraryActivity(
                    **ActivityResponse.model_validate(activity).model_dump(),
                    distance_from_previous_km=distance,
                )
            )
        itinerary.append(
            ItineraryDay(date=day, activities=entries, total_distance_km=round(total, 2))
        )
    return itinerary


# Sharing


def get_share_settings(db: Database, user: CurrentUser, trip_id: int) -> TripRow:
    with db.session() as session:
        return load_trip(session, trip_id, user)


def update_share_settings(
    db: Database, user: CurrentUser, trip_id: int, payload: ShareSettingsUpdate
) -> TripRow:
    with db.session() as session:
        trip = load_trip(session, trip_id, user, write=True)
        trip.sharing_enabled = payload.sharing_enabled
        if payload.share_permission:
            trip.share_permission = payload.share_permission
        if payload.sharing_enabled and not trip.share_code:
            trip.share_code = _unused_share_code(session)
        return trip


def _unused_share_code(session: Session) -> str:
    while True:
        code = random_code(SHARE_CODE_LENGTH)
        taken = session.execute(
            select(TripRow.id).where(TripRow.share_code == code)
        ).first()
        if not taken:
            return code


def get_shared_trip(db: Database, share_code: str) -> tuple[TripRow, list[ActivityRow]]:
    with db.session() as session:
        trip = session.execute(
            select(TripRow).where(
                TripRow.share_code == share_code, TripRow.sharing_enabled.is_(True)
            )
        ).scalar_one_or_none()
        if not trip:
            raise NotFoundError("Shared trip not found")
        return trip, trip_activities(session, trip.id)


# Hotel


def set_hotel(
    db: Database, user: CurrentUser, trip_id: int, payload: HotelRequest
) -> tuple[TripRow, list[ActivityRow]]:
    """Stores the hotel and adds check-in and check-out activities."""
    with db.session() as session:
        trip = load_trip(session, trip_id, user, write=True)
        trip.hotel_name = payload.hotel_name
        trip.hotel_address = payload.hotel_address
        trip.hotel_latitude = payload.latitude
        trip.hotel_longitude = payload.longitude
        created = [
            ActivityRow(
                trip_id=trip.id,
                title=f"{label}: {payload.hotel_name}",
                date=day,
                time=clock,
                location_name=payload.hotel_address or payload.hotel_name,
                latitude=payload.latitude,
                longitude=payload.longitude,
                tag="accommodation",
                order=0,
            )
            for label, day, clock in (
                ("Check in", trip.start_date, CHECK_IN_TIME),
                ("Check out", trip.end_date, CHECK_OUT_TIME),
            )
        ]
        session.add_all(created)
        return trip, created


# Collaborators


def list_collaborators(
    db: Database, user: CurrentUser, trip_id: int
) -> list[CollaboratorRow]:
    with db.session() as session:
        trip = load_trip(session, trip_id, user)
        return list(
            session.execute(
                select(CollaboratorRow)
                .where(CollaboratorRow.trip_id == trip.id)
                .order_by(CollaboratorRow.id)
            ).scalars()
        )


def add_collaborator(
    db: Database, user: CurrentUser, trip_id: int, payload: CollaboratorCreate
) -> CollaboratorRow:
    email = payload.email.strip().lower()
    with db.session() as session:
        trip = load_trip(session, trip_id, user, write=True)
        duplicate = session.execute(
            select(CollaboratorRow.id).where(
                CollaboratorRow.trip_id == trip.id,
                func.lower(CollaboratorRow.email) == email,
            )
        ).first()
        if duplicate:
            raise BadRequestError("Collaborator already added to this trip")
        existing_user = session.execute(
            select(UserRow).where(func.lower(UserRow.email) == email)
        ).scalar_one_or_none()
        collaborator = CollaboratorRow(
            trip_id=trip.id,
            user_id=existing_user.id if existing_user else None,
            email=email,
            name=payload.name,
            role=payload.role,
            status="invited",
            invited_by=user.id,
        )
        session.add(collaborator)
        return collaborator


def _load_collaborator(
    session: Session, trip_id: int, collaborator_id: int
) -> CollaboratorRow:
    collaborator = session.get(CollaboratorRow, collaborator_id)
    if not collaborator or collaborator.trip_id != trip_id:
        raise NotFoundError("Collaborator not found")
    return collaborator


def update_collaborator(
    db: Database,
    user: CurrentUser,
    trip_id: int,
    collaborator_id: int,
    payload: CollaboratorUpdate,
) -> CollaboratorRow:
    with db.session() as session:
        load_trip(session, trip_id, user, write=True)
        collaborator = _load_collaborator(session, trip_id, collaborator_id)
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(collaborator, key, value)
        return collaborator


def remove_collaborator(
    db: Database, user: CurrentUser, trip_id: int, collaborator_id: int
) -> None:
    with db.session() as session:
        load_trip(session, trip_id, user, write=True)
        session.delete(_load_collaborator(session, trip_id, collaborator_id))


def accept_invitation(db: Database, user: CurrentUser, trip_id: int) -> CollaboratorRow:
    with db.session() as session:
        trip = session.get(TripRow, trip_id)
        if not trip:
            raise NotFoundError("Trip not found")
        collaborator = _collaborator_for(session, trip, user)
        if not collaborator:
            raise NotFoundError("No invitation for this trip")
        collaborator.status = "accepted"
        collaborator.user_id = user.id
        return collaborator
