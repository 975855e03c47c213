"""
Routes for trips, sharing, hotel, collaborators and proposals.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from backend.auth import CurrentUser, get_current_user, require_role
from backend.config import Settings, get_settings
from backend.db import Database
from backend.dependencies import get_db, get_geocoder, get_storage_client
from backend.schemas import (
    ActivityResponse,
    CollaboratorCreate,
    CollaboratorResponse,
    CollaboratorUpdate,
    CorporateTripResponse,
    HotelRequest,
    HotelResponse,
    ItineraryResponse,
    ProposalRequest,
    ProposalResponse,
    SharedTripResponse,
    ShareSettingsResponse,
    ShareSettingsUpdate,
    StatusResponse,
    TripCreate,
    TripResponse,
    TripUpdate,
)
from backend.services import proposals, trips
from backend.storage import StorageClient
from itinerary.geocoding import Geocoder
from shared.types import Role

router = APIRouter()


def _share_settings(trip) -> ShareSettingsResponse:
    return ShareSettingsResponse(
        trip_id=trip.id,
        sharing_enabled=trip.sharing_enabled,
        share_code=trip.share_code,
        share_permission=trip.share_permission,
    )


@router.get("", response_model=list[TripResponse])
def list_trips(
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return trips.list_trips(db, user)


@router.get("/corporate", response_model=list[CorporateTripResponse])
def list_corporate_trips(
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_role(Role.ADMIN)),
):
    return trips.list_corporate_trips(db, user)


@router.get("/shared/{share_code}", response_model=SharedTripResponse)
def get_shared_trip(share_code: str, db: Database = Depends(get_db)):
    """Public read-only view of a trip whose owner enabled sharing."""
    trip, activities = trips.get_shared_trip(db, share_code)
    return SharedTripResponse(
        trip=TripResponse.model_validate(trip),
        activities=[ActivityResponse.model_validate(a) for a in activities],
    )


@router.post("", response_model=TripResponse, status_code=201)
def create_trip(
    payload: TripCreate,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    geocoder: Geocoder = Depends(get_geocoder),
):
    return trips.create_trip(db, user, payload, geocoder)


@router.get("/{trip_id}", response_model=TripResponse)
def get_trip(
    trip_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return trips.get_trip(db, user, trip_id)


@router.put("/{trip_id}", response_model=TripResponse)
def update_trip(
    trip_id: int,
    payload: TripUpdate,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    geocoder: Geocoder = Depends(get_geocoder),
):
    return trips.update_trip(db, user, trip_id, payload, geocoder)


@router.delete("/{trip_id}", response_model=StatusResponse)
def delete_trip(
    trip_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    trips.delete_trip(db, user, trip_id)
    return StatusResponse(message="Trip deleted")


@router.get("/{trip_id}/itinerary", response_model=ItineraryResponse)
def get_itinerary(
    trip_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return ItineraryResponse(trip_id=trip_id, days=trips.get_itinerary(db, user, trip_id))


@router.get("/{trip_id}/share", response_model=ShareSettingsResponse)
def get_share_settings(
    trip_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return _share_settings(trips.get_share_settings(db, user, trip_id))


@router.put("/{trip_id}/share", response_model=ShareSettingsResponse)
def update_share_settings(
    trip_id: int,
    payload: ShareSettingsUpdate,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return _share_settings(trips.update_share_settings(db, user, trip_id, payload))


@router.post("/{trip_id}/hotel", response_model=HotelResponse)
def set_hotel(
    trip_id: int,
    payload: HotelRequest,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    trip, activities = trips.set_hotel(db, user, trip_id, payload)
    return HotelResponse(
        trip=TripResponse.model_validate(trip),
        activities=[ActivityResponse.model_validate(a) for a in activities],
    )


@router.get("/{trip_id}/collaborators", response_model=list[CollaboratorResponse])
def list_collaborators(
    trip_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return trips.list_collaborators(db, user, trip_id)


@router.post(
    "/{trip_id}/collaborators", response_model=CollaboratorResponse, status_code=201
)
def add_collaborator(
    trip_id: int,
    payload: CollaboratorCreate,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return trips.add_collaborator(db, user, trip_id, payload)


@router.post("/{trip_id}/collaborators/accept", response_model=CollaboratorResponse)
def accept_invitation(
    trip_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return trips.accept_invitation(db, user, trip_id)


@router.put(
    "/{trip_id}/collaborators/{collaborator_id}", response_model=CollaboratorResponse
)
def update_collaborator(
    trip_id: int,
    collaborator_id: int,
    payload: CollaboratorUpdate,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return trips.update_collaborator(db, user, trip_id, collaborator_id, payload)


@router.delete(
    "/{trip_id}/collaborators/{collaborator_id}", response_model=StatusResponse
)
def remove_collaborator(
    trip_id: int,
    collaborator_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    trips.remove_collaborator(db, user, trip_id, collaborator_id)
    return StatusResponse(message="Collaborator removed")


@router.post("/{trip_id}/proposal", response_model=ProposalResponse, status_code=201)
def create_proposal(
    trip_id: int,
    payload: ProposalRequest,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings),
):
    return proposals.create_proposal(
        db, user, trip_id, payload, storage=storage, settings=settings
    )


@router.get("/{trip_id}/proposals", response_model=list[ProposalResponse])
def list_proposals(
    trip_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    storage: StorageClient = Depends(get_storage_client),
):
    return proposals.list_proposals(db, user, trip_id, storage)
