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

"""Fills the days of a trip with meals and sightseeing from real places."""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional

from shared.geo import iter_days, trip_day_count
from shared.types import CityPlaces, Place

MEAL_WORDS = ("breakfast", "brunch", "lunch", "dinner")
MEAL_TAGS = {"food", "dining"}

BREAKFAST_TIME = "08:30"
MORNING_TIME = "10:00"
LUNCH_TIME = "13:00"
AFTERNOON_TIME = "14:30"
DINNER_TIME = "19:00"


@dataclass
class ExistingActivity:
    date: date
    title: str
    tag: Optional[str] = None


@dataclass
class PlannedActivity:
    date: date
    time: str
    title: str
    location_name: str
    tag: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    notes: Optional[str] = None


def is_meal(activity: ExistingActivity) -> bool:
    title = (activity.title or "").lower()
    return any(word in title for word in MEAL_WORDS) or (
        (activity.tag or "").lower() in MEAL_TAGS
    )


def is_already_planned(
    start: date, end: date, existing: List[ExistingActivity]
) -> bool:
    """A trip with two or more activities per day is left untouched."""
    return len(existing) >= trip_day_count(start, end) * 2


class _Rotation:
    """Hands out places without repeats until the list runs out, then cycles."""

    def __init__(self, places: Iterable[Place]):
        self.places = list(places)
        self.used: set[str] = set()
        self.cursor = 0

    def next(self, exclude: Optional[str] = None) -> Optional[Place]:
        if not self.places:
            return None
        for place in self.places:
            if place.name not in self.used and place.name != exclude:
                self.used.add(place.name)
                return place
        for _ in range(len(self.places)):
            place = self.places[self.cursor % len(self.places)]
            self.cursor += 1
            if place.name != exclude:
                return place
        return None


def _meal(kind: str, day: date, time: str, place: Optional[Place]) -> List[PlannedActivity]:
    if place is None:
        return []
    return [
        PlannedActivity(
            date=day,
            time=time,
            title=f"{kind} at {place.name}",
            location_name=place.name,
            tag="food",
            latitude=place.latitude,
            longitude=place.longitude,
            notes=f"Cuisine: {place.cuisine}" if place.cuisine else None,
        )
    ]


def _sight(verb: str, day: date, time: str, place: Optional[Place]) -> List[PlannedActivity]:
    if place is None:
        return []
    return [
        PlannedActivity(
            date=day,
            time=time,
            title=f"{verb} {place.name}",
            location_name=place.name,
            tag="sightseeing",
            latitude=place.latitude,
            longitude=place.longitude,
        )
    ]


def plan_itinerary(
    start: date,
    end: date,
    existing: List[ExistingActivity],
    places: CityPlaces,
) -> List[PlannedActivity]:
    """
    Plans the missing activities of a trip.

    Empty days get breakfast, a morning sight, lunch and dinner. Days that
    already have meals get one or two sights. Days with plans but no meals
    get the three meals.
    """
    if is_already_planned(start, end, existing):
        return []

    by_day: Dict[date, List[ExistingActivity]] = defaultdict(list)
    for activity in existing:
        by_day[activity.date].append(activity)

    cafes = _Rotation(places.cafes)
    restaurants = _Rotation(places.restaurants)
    attractions = _Rotation(places.attractions)

    planned: List[PlannedActivity] = []
    for day in iter_days(start, end):
        day_activities = by_day.get(day, [])
        has_meals = any(is_meal(a) for a in day_activities)
        non_meal_count = sum(1 for a in day_activities if not is_meal(a))

        if not day_activities:
            planned += _meal("Breakfast", day, BREAKFAST_TIME, cafes.next())
            planned += _sight("Visit", day, MORNING_TIME, attractions.next())
            planned += _meal("Lunch", day, LUNCH_TIME, restaurants.next())
            planned += _meal("Dinner", day, DINNER_TIME, restaurants.next())
        elif has_meals:
            morning = None
            if non_meal_count < 2:
                morning = attractions.next()
                planned += _sight("Visit", day, MORNING_TIME, morning)
            if non_meal_count == 0:
                exclude = morning.name if morning else None
                planned += _sight(
                    "Explore", day, AFTERNOON_TIME, attractions.next(exclude=exclude)
                )
        else:
            planned += _meal("Breakfast", day, BREAKFAST_TIME, cafes.next())
            planned += _meal("Lunch", day, LUNCH_TIME, restaurants.next())
            planned += _meal("Dinner", day, DINNER_TIME, restaurants.next())
    return planned
