"""
Routes for trip activities, including free-text entry.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from backend.auth import CurrentUser, get_current_user
from backend.db import Database
from backend.dependencies import get_db, get_geocoder
from backend.schemas import (
    ActivityCompleteUpdate,
    ActivityCreate,
    ActivityOrderUpdate,
    ActivityResponse,
    ActivityUpdate,
    NaturalActivityRequest,
    ParseActivityRequest,
    ParsedActivityResponse,
    StatusResponse,
)
from backend.services import activities
from itinerary.geocoding import Geocoder

router = APIRouter()


@router.get("/trip/{trip_id}", response_model=list[ActivityResponse])
def list_for_trip(
    trip_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return activities.list_for_trip(db, user, trip_id)


@router.post("", response_model=ActivityResponse, status_code=201)
def create_activity(
    payload: ActivityCreate,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    geocoder: Geocoder = Depends(get_geocoder),
):
    return activities.create_activity(db, user, payload, geocoder)


@router.post("/parse", response_model=ParsedActivityResponse)
def parse_activity(
    payload: ParseActivityRequest,
    user: CurrentUser = Depends(get_current_user),
):
    parsed = activities.parse_text(payload.text, payload.reference_date)
    return ParsedActivityResponse(
        title=parsed.title,
        location_name=parsed.location_name,
        time=parsed.time,
        date=parsed.date,
        time_is_flexible=parsed.time_is_flexible,
    )


@router.post("/natural", response_model=ActivityResponse, status_code=201)
def create_from_text(
    payload: NaturalActivityRequest,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    geocoder: Geocoder = Depends(get_geocoder),
):
    return activities.create_from_text(db, user, payload, geocoder)


@router.put("/{activity_id}", response_model=ActivityResponse)
def update_activity(
    activity_id: int,
    payload: ActivityUpdate,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    geocoder: Geocoder = Depends(get_geocoder),
):
    return activities.update_activity(db, user, activity_id, payload, geocoder)


@router.delete("/{activity_id}", response_model=StatusResponse)
def delete_activity(
    activity_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    activities.delete_activity(db, user, activity_id)
    return StatusResponse(message="Activity deleted")


@router.put("/{activity_id}/order", response_model=ActivityResponse)
def set_order(
    activity_id: int,
    payload: ActivityOrderUpdate,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return activities.set_order(db, user, activity_id, payload.order)


@router.patch("/{activity_id}/complete", response_model=ActivityResponse)
def set_completed(
    activity_id: int,
    payload: ActivityCompleteUpdate = ActivityCompleteUpdate(),
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return activities.set_completed(db, user, activity_id, payload.completed)
