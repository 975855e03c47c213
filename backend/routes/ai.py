"""
Routes for AI chat, location search, activity suggestions and itinerary
generation jobs.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from backend.auth import CurrentUser, get_current_user
from backend.config import Settings, get_settings
from backend.db import Database
from backend.dependencies import (
    get_db,
    get_geocoder,
    get_places_provider,
    get_queue_client,
)
from backend.queue import JobQueue
from backend.schemas import (
    ChatRequest,
    ChatResponse,
    FindLocationRequest,
    FindLocationResponse,
    ItineraryJobRequest,
    ItineraryJobResponse,
    SuggestActivitiesRequest,
    SuggestActivitiesResponse,
)
from backend.services import ai
from itinerary.geocoding import Geocoder
from itinerary.places import PlacesProvider

router = APIRouter()


@router.post("/chat", response_model=ChatResponse)
def chat(
    payload: ChatRequest,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    places: PlacesProvider = Depends(get_places_provider),
    geocoder: Geocoder = Depends(get_geocoder),
):
    return ai.chat(
        db, user, payload, settings=settings, places=places, geocoder=geocoder
    )


@router.post("/find-location", response_model=FindLocationResponse)
def find_location(
    payload: FindLocationRequest,
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    geocoder: Geocoder = Depends(get_geocoder),
):
    locations = ai.find_location(payload, settings=settings, geocoder=geocoder)
    return FindLocationResponse(
        success=True,
        search_query=payload.search_query,
        city_context=payload.city_context,
        locations=locations,
    )


@router.post("/suggest-activities", response_model=SuggestActivitiesResponse)
def suggest_activities(
    payload: SuggestActivitiesRequest,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    suggestions = ai.suggest_activities(db, user, payload, settings=settings)
    return SuggestActivitiesResponse(success=True, suggestions=suggestions)


@router.post("/itinerary-jobs", response_model=ItineraryJobResponse, status_code=202)
def start_itinerary_job(
    payload: ItineraryJobRequest,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    queue: JobQueue = Depends(get_queue_client),
):
    """Queues itinerary generation; poll the job for progress."""
    job = ai.start_itinerary_job(db, user, payload.trip_id, queue)
    return ItineraryJobResponse(**job.as_dict())


@router.get("/itinerary-jobs/{job_id}", response_model=ItineraryJobResponse)
def get_itinerary_job(
    job_id: str,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    job = ai.get_itinerary_job(db, user, job_id)
    return ItineraryJobResponse(**job.as_dict())
