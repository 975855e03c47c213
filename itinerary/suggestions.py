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

"""Reading trip suggestions out of assistant chat replies."""

import json
import logging
import re
from dataclasses import asdict
from datetime import date, timedelta
from typing import Optional, Tuple

import dacite

from itinerary.geocoding import Geocoder, geocode_in_city
from models.prompts import TRIP_JSON_END, TRIP_JSON_START
from shared.geo import next_friday
from shared.json_utils import convert_keys
from shared.types import TripSuggestion

logger = logging.getLogger(__name__)

TRIP_KEYWORDS = (
    "create",
    "plan",
    "generate",
    "build",
    "itinerary",
    "weekend",
    "trip to",
    "going to",
    "visit",
)
MONTHS = (
    "january|february|march|april|may|june|july|august|september|october"
    "|november|december|jan|feb|mar|apr|jun|jul|aug|sep|sept|oct|nov|dec"
)
MONTH_DAY_PATTERN = re.compile(rf"\b(?:{MONTHS})\.?\s+\d{{1,2}}\b", re.IGNORECASE)
CITY_PATTERN = re.compile(
    r"\b(?:to|in|visit|visiting|around)\s+([A-Z][\w'-]+(?:\s+[A-Z][\w'-]+){0,2})"
)
TRIP_BLOCK_PATTERN = re.compile(
    re.escape(TRIP_JSON_START) + r"(.*?)" + re.escape(TRIP_JSON_END), re.DOTALL
)

_DACITE_CONFIG = dacite.Config(type_hooks={float: float})


def detect_trip_intent(text: str) -> bool:
    lowered = (text or "").lower()
    if any(keyword in lowered for keyword in TRIP_KEYWORDS):
        return True
    return bool(MONTH_DAY_PATTERN.search(text or ""))


def detect_city(text: str) -> Optional[str]:
    """Best-effort destination from a message like "plan a weekend in Lisbon"."""
    match = CITY_PATTERN.search(text or "")
    return match.group(1).strip() if match else None


def extract_trip_block(reply: str) -> Tuple[str, Optional[dict]]:
    """
    Splits an assistant reply into display text and the trip JSON payload.

    Returns the reply with every trip block removed, and the first block's
    decoded JSON (None when absent or malformed).
    """
    match = TRIP_BLOCK_PATTERN.search(reply or "")
    display = TRIP_BLOCK_PATTERN.sub("", reply or "").strip()
    if not match:
        return display, None
    raw = match.group(1).strip()
    # Models occasionally wrap the JSON in a markdown fence.
    raw = re.sub(r"^```(?:json)?\s*|\s*```$", "", raw)
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Discarding malformed trip block: %s", raw[:200])
        return display, None
    return display, payload if isinstance(payload, dict) else None


def parse_trip_suggestion(payload: dict) -> Optional[TripSuggestion]:
    try:
        suggestion = dacite.from_dict(TripSuggestion, payload, config=_DACITE_CONFIG)
        date.fromisoformat(suggestion.startDate)
        date.fromisoformat(suggestion.endDate)
    except (dacite.DaciteError, ValueError, TypeError) as e:
        logger.warning("Invalid trip suggestion: %s", e)
        return None
    return suggestion


def _shift(value: Optional[str], offset: timedelta) -> Optional[str]:
    if not value:
        return value
    try:
        return (date.fromisoformat(value) + offset).isoformat()
    except ValueError:
        return value


def move_to_future(suggestion: TripSuggestion, today: date) -> TripSuggestion:
    """Moves a trip starting in the past to the next Friday, keeping its length."""
    start = date.fromisoformat(suggestion.startDate)
    if start >= today:
        return suggestion
    offset = next_friday(today) - start
    suggestion.startDate = _shift(suggestion.startDate, offset)
    suggestion.endDate = _shift(suggestion.endDate, offset)
    for activity in suggestion.activities:
        activity.date = _shift(activity.date, offset)
    return suggestion


def fill_coordinates(suggestion: TripSuggestion, geocoder: Geocoder) -> int:
    """Geocodes activities that came back without coordinates. Returns the count filled."""
    filled = 0
    for activity in suggestion.activities:
        if activity.latitude is not None and activity.longitude is not None:
            continue
        point = geocode_in_city(
            geocoder, activity.locationName or "", suggestion.city
        )
        if point:
            activity.latitude = point.latitude
            activity.longitude = point.longitude
            filled += 1
    return filled


def suggestion_as_dict(suggestion: TripSuggestion) -> dict:
    return convert_keys(asdict(suggestion), "camel_to_snake")
