# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

from datetime import date
from typing import List, Optional

from shared.types import CityPlaces

TRIP_JSON_START = "<TRIP_JSON>"
TRIP_JSON_END = "</TRIP_JSON>"

CHAT_SYSTEM_PROMPT = """You are a friendly, practical travel planning assistant.
Today's date is {today}. Answer concisely and suggest concrete places, times and tips.
Never invent opening hours or prices you are unsure about."""

TRIP_CREATION_INSTRUCTIONS = """
The traveler wants a trip planned. After your normal reply, append exactly one
block of the form:
{start}{{"title": "...", "description": "...", "startDate": "YYYY-MM-DD",
"endDate": "YYYY-MM-DD", "city": "...", "country": "...",
"activities": [{{"title": "...", "date": "YYYY-MM-DD", "time": "HH:MM",
"locationName": "...", "notes": "...", "latitude": 0.0, "longitude": 0.0}}]}}{end}
Rules:
- Dates must be on or after {today}. If the traveler gave no dates, start on the
  next Friday and plan a weekend.
- Plan about five activities per day between 08:00 and 22:00, including meals.
- Use real, existing places. Prefer the places listed below when they fit.
- Leave latitude and longitude out when you do not know them precisely.
- Output valid JSON inside the block and nothing else inside it."""

FIND_LOCATION_PROMPT = """Find real places matching the search "{query}"{context}.
Return JSON of the form {{"locations": [{{"name": "...", "address": "...",
"city": "...", "region": "...", "country": "...", "description": "..."}}]}}
with at most 5 results ordered by relevance. Only include places that exist.
Return {{"locations": []}} if nothing matches."""

SUGGEST_ACTIVITIES_PROMPT = """Suggest {count} activities for a trip to {destination}
from {start_date} to {end_date}.{interests}
Already planned: {existing}.
Return JSON of the form {{"activities": [{{"title": "...", "time": "HH:MM",
"location_name": "...", "notes": "...", "tag": "food|sightseeing|culture|nature|nightlife|shopping"}}]}}.
Do not repeat already planned activities."""


def _format_places(places: CityPlaces, limit: int = 8) -> str:
    sections = []
    for label, items in (
        ("Restaurants", places.restaurants),
        ("Cafes", places.cafes),
        ("Attractions", places.attractions),
    ):
        if items:
            names = ", ".join(place.name for place in items[:limit])
            sections.append(f"{label}: {names}")
    return "\n".join(sections)


def make_chat_system_prompt(
    today: date,
    *,
    trip_intent: bool,
    city: Optional[str] = None,
    places: Optional[CityPlaces] = None,
    trip_context: Optional[str] = None,
) -> str:
    prompt = CHAT_SYSTEM_PROMPT.format(today=today.isoformat())
    if trip_context:
        prompt += "\n\nThe traveler is currently working on this trip:\n" + trip_context
    if trip_intent:
        prompt += "\n" + TRIP_CREATION_INSTRUCTIONS.format(
            start=TRIP_JSON_START, end=TRIP_JSON_END, today=today.isoformat()
        )
    if city and places and not places.is_empty():
        prompt += f"\n\nVerified places in {city}:\n" + _format_places(places)
    return prompt


def make_find_location_prompt(query: str, city_context: Optional[str]) -> str:
    context = f" in or near {city_context}" if city_context else ""
    return FIND_LOCATION_PROMPT.format(query=query, context=context)


def make_suggest_activities_prompt(
    *,
    destination: str,
    start_date: date,
    end_date: date,
    existing: List[str],
    interests: Optional[List[str]] = None,
    count: int = 5,
) -> str:
    return SUGGEST_ACTIVITIES_PROMPT.format(
        count=count,
        destination=destination,
        start_date=start_date.isoformat(),
        end_date=end_date.isoformat(),
        interests=f" The traveler enjoys: {', '.join(interests)}." if interests else "",
        existing=", ".join(existing) if existing else "nothing yet",
    )
