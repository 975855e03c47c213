"""
AI assistance: trip-planning chat, location search, activity suggestions and
itinerary generation jobs.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from google.genai import errors as genai_errors

from backend.auth import CurrentUser
from backend.config import Settings
from backend.db import Database, JobRecord
from backend.errors import (
    AccessDeniedError,
    BadRequestError,
    NotFoundError,
    UpstreamUnavailableError,
)
from backend.queue import JobQueue
from backend.schemas import (
    ActivitySuggestion,
    ChatRequest,
    ChatResponse,
    FindLocationRequest,
    LocationResult,
    SuggestActivitiesRequest,
    TripSuggestionOut,
)
from backend.services.trips import load_trip, trip_activities
from itinerary.geocoding import Geocoder, geocode_in_city
from itinerary.places import PlacesLookupError, PlacesProvider
from itinerary.suggestions import (
    detect_city,
    detect_trip_intent,
    extract_trip_block,
    fill_coordinates,
    move_to_future,
    parse_trip_suggestion,
    suggestion_as_dict,
)
from models import gemini, prompts
from shared.types import CityPlaces

logger = logging.getLogger(__name__)

AI_UNAVAILABLE = "AI service is temporarily unavailable"
LOCATION_FIELDS = ("name", "address", "city", "region", "country", "description")
SUGGESTION_FIELDS = ("title", "time", "location_name", "notes", "tag")


def _describe_trip(trip, activities) -> str:
    lines = [
        f"Title: {trip.title}",
        f"Destination: {', '.join(part for part in (trip.city, trip.country) if part) or 'unknown'}",
        f"Dates: {trip.start_date.isoformat()} to {trip.end_date.isoformat()}",
    ]
    if activities:
        lines.append("Planned activities:")
        for activity in activities:
            where = f" ({activity.location_name})" if activity.location_name else ""
            lines.append(
                f"- {activity.date.isoformat()} {activity.time or ''} {activity.title}{where}"
            )
    return "\n".join(lines)


def _city_places(places: PlacesProvider, city: Optional[str]) -> Optional[CityPlaces]:
    if not city:
        return None
    try:
        return places.find_places(city)
    except PlacesLookupError as e:
        # The chat still works without verified places.
        logger.warning("Places lookup for %s failed: %s", city, e)
        return None


def chat(
    db: Database,
    user: CurrentUser,
    payload: ChatRequest,
    *,
    settings: Settings,
    places: PlacesProvider,
    geocoder: Geocoder,
    today: Optional[date] = None,
) -> ChatResponse:
    if not payload.messages:
        raise BadRequestError("Messages array is required")
    today = today or date.today()
    last_user_message = next(
        (m.content for m in reversed(payload.messages) if m.role == "user"), ""
    )
    trip_intent = detect_trip_intent(last_user_message)
    city = detect_city(last_user_message) if trip_intent else None

    trip_context = None
    if payload.trip_id is not None:
        with db.session() as session:
            trip = load_trip(session, payload.trip_id, user)
            trip_context = _describe_trip(trip, trip_activities(session, trip.id))

    system_prompt = prompts.make_chat_system_prompt(
        today,
        trip_intent=trip_intent,
        city=city,
        places=_city_places(places, city),
        trip_context=trip_context,
    )
    try:
        reply = gemini.call_chat(
            system_prompt,
            [m.model_dump() for m in payload.messages],
            model=settings.gemini_model,
            api_key=settings.gemini_api_key,
        )
    except (gemini.GeminiInvalidResponseException, genai_errors.APIError) as e:
        logger.exception("Chat completion failed")
        raise UpstreamUnavailableError(AI_UNAVAILABLE) from e

    message, block = extract_trip_block(reply)
    suggestion = parse_trip_suggestion(block) if block else None
    if suggestion is None:
        return ChatResponse(success=True, message=message)

    move_to_future(suggestion, today)
    filled = fill_coordinates(suggestion, geocoder)
    logger.info(
        "Trip suggestion for %s with %d activities (%d geocoded)",
        suggestion.city,
        len(suggestion.activities),
        filled,
    )
    return ChatResponse(
        success=True,
        message=message,
        trip_suggestion=TripSuggestionOut(**suggestion_as_dict(suggestion)),
    )


def _call_json(prompt: str, settings: Settings):
    try:
        return gemini.call_predict_json(
            prompt, model=settings.gemini_model, api_key=settings.gemini_api_key
        )
    except (gemini.GeminiInvalidResponseException, genai_errors.APIError) as e:
        logger.exception("JSON completion failed")
        raise UpstreamUnavailableError(AI_UNAVAILABLE) from e


def _items(result, key: str, required: str) -> list[dict]:
    """Entries of `result[key]` that are objects carrying `required`."""
    if isinstance(result, dict):
        result = result.get(key)
    if not isinstance(result, list):
        return []
    return [item for item in result if isinstance(item, dict) and item.get(required)]


def find_location(
    payload: FindLocationRequest, *, settings: Settings, geocoder: Geocoder
) -> list[LocationResult]:
    query = payload.search_query.strip()
    if not query:
        raise BadRequestError("Search query is required")
    result = _call_json(
        prompts.make_find_location_prompt(query, payload.city_context), settings
    )
    locations = []
    for item in _items(result, "locations", "name"):
        location = LocationResult(
            **{key: str(item[key]) for key in LOCATION_FIELDS if item.get(key)}
        )
        point = geocode_in_city(
            geocoder,
            location.address or location.name,
            location.city or payload.city_context,
        )
        if point:
            location.latitude = point.latitude
            location.longitude = point.longitude
        locations.append(location)
    return locations


def suggest_activities(
    db: Database,
    user: CurrentUser,
    payload: SuggestActivitiesRequest,
    *,
    settings: Settings,
) -> list[ActivitySuggestion]:
    with db.session() as session:
        trip = load_trip(session, payload.trip_id, user)
        existing = [a.title for a in trip_activities(session, trip.id)]
    destination = ", ".join(p for p in (trip.city, trip.country) if p) or trip.title
    result = _call_json(
        prompts.make_suggest_activities_prompt(
            destination=destination,
            start_date=trip.start_date,
            end_date=trip.end_date,
            existing=existing,
            interests=payload.interests,
            count=payload.count,
        ),
        settings,
    )
    suggestions = [
        ActivitySuggestion(
            **{key: str(item[key]) for key in SUGGESTION_FIELDS if item.get(key)}
        )
        for item in _items(result, "activities", "title")
    ]
    return suggestions[: payload.count]


# Itinerary generation jobs


def start_itinerary_job(
    db: Database, user: CurrentUser, trip_id: int, queue: JobQueue
) -> JobRecord:
    with db.session() as session:
        trip = load_trip(session, trip_id, user, write=True)
    job = db.create_itinerary_job(trip.id, user.id)
    if queue.enqueue(job.job_id):
        logger.info("Queued itinerary job %s for trip %s", job.job_id, trip.id)
    return job


def get_itinerary_job(db: Database, user: CurrentUser, job_id: str) -> JobRecord:
    job = db.get_job(job_id)
    if not job:
        raise NotFoundError("Job not found")
    if job.user_id != user.id and not user.is_superadmin:
        raise AccessDeniedError("Access denied")
    return job
