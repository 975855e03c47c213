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

"""Restaurant, cafe and attraction lookup from OpenStreetMap."""

import copy
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import requests

from shared.types import CityPlaces, Place, PlaceCategory

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30  # seconds

ATTRACTION_TOURISM_TAGS = {"attraction", "museum", "gallery", "viewpoint", "zoo"}

OVERPASS_QUERY = """[out:json][timeout:25];
area["name"="{city}"]["boundary"="administrative"]->.searchArea;
(
  nwr["amenity"="restaurant"]["name"](area.searchArea);
  nwr["amenity"="cafe"]["name"](area.searchArea);
  nwr["tourism"~"^(attraction|museum|gallery|viewpoint|zoo)$"]["name"](area.searchArea);
);
out center {limit};"""


class PlacesLookupError(Exception):
    pass


class PlacesProvider(Protocol):
    def find_places(self, city: str, country: Optional[str] = None) -> CityPlaces:
        ...


@dataclass
class InMemoryPlacesProvider:
    """Fixed catalog of places per city for tests and offline development."""

    catalog: Dict[str, CityPlaces] = field(default_factory=dict)

    def add_city(self, city: str, places: CityPlaces) -> None:
        self.catalog[city.strip().lower()] = places

    def reset(self) -> None:
        self.catalog.clear()

    def find_places(self, city: str, country: Optional[str] = None) -> CityPlaces:
        places = self.catalog.get((city or "").strip().lower())
        return copy.deepcopy(places) if places else CityPlaces()


@dataclass
class OverpassPlacesProvider:
    url: str
    limit: int = 150

    def find_places(self, city: str, country: Optional[str] = None) -> CityPlaces:
        if not city:
            return CityPlaces()
        query = OVERPASS_QUERY.format(city=city.replace('"', ""), limit=self.limit)
        try:
            response = requests.post(
                self.url, data={"data": query}, timeout=REQUEST_TIMEOUT
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            raise PlacesLookupError(f"Overpass lookup failed for {city}: {e}") from e
        places = parse_overpass_elements(payload)
        logger.info(
            "Found %d restaurants, %d cafes, %d attractions in %s",
            len(places.restaurants),
            len(places.cafes),
            len(places.attractions),
            city,
        )
        return places


def _categorize(tags: dict) -> Optional[PlaceCategory]:
    amenity = tags.get("amenity")
    if amenity == "cafe":
        return PlaceCategory.CAFE
    if amenity == "restaurant":
        return PlaceCategory.RESTAURANT
    if tags.get("tourism") in ATTRACTION_TOURISM_TAGS:
        return PlaceCategory.ATTRACTION
    return None


def parse_overpass_elements(payload: dict) -> CityPlaces:
    """Converts an Overpass JSON response into categorized places."""
    places = CityPlaces()
    buckets = {
        PlaceCategory.RESTAURANT: places.restaurants,
        PlaceCategory.CAFE: places.cafes,
        PlaceCategory.ATTRACTION: places.attractions,
    }
    seen: set[tuple[PlaceCategory, str]] = set()

    for element in payload.get("elements", []):
        tags = element.get("tags") or {}
        name = (tags.get("name") or "").strip()
        category = _categorize(tags)
        if not name or category is None or (category, name.lower()) in seen:
            continue
        seen.add((category, name.lower()))

        center = element.get("center") or {}
        street = " ".join(
            part
            for part in (tags.get("addr:housenumber"), tags.get("addr:street"))
            if part
        )
        buckets[category].append(
            Place(
                name=name,
                category=category,
                latitude=element.get("lat", center.get("lat")),
                longitude=element.get("lon", center.get("lon")),
                cuisine=tags.get("cuisine"),
                address=street or None,
            )
        )
    return places
