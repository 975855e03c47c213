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

"""Forward geocoding of place names to coordinates."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

from geopy.exc import GeocoderServiceError
from geopy.extra.rate_limiter import RateLimiter
from geopy.geocoders import Nominatim

from shared.types import GeoPoint

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    def geocode(self, query: str) -> Optional[GeoPoint]:
        ...


@dataclass
class InMemoryGeocoder:
    """Lookup table geocoder for tests and offline development."""

    known: Dict[str, GeoPoint] = field(default_factory=dict)

    def add(self, name: str, latitude: float, longitude: float) -> None:
        self.known[name.strip().lower()] = GeoPoint(latitude, longitude)

    def reset(self) -> None:
        self.known.clear()

    def geocode(self, query: str) -> Optional[GeoPoint]:
        if not query or not query.strip():
            return None
        key = query.strip().lower()
        if key in self.known:
            return self.known[key]
        # "Louvre, Paris" falls back to "Louvre".
        head = key.split(",")[0].strip()
        return self.known.get(head)


@dataclass
class NominatimGeocoder:
    """OpenStreetMap Nominatim geocoder, rate limited to the service policy."""

    user_agent: str
    timeout_seconds: float = 10.0
    min_delay_seconds: float = 1.0
    max_retries: int = 2

    _geocode_fn: Optional[Any] = field(default=None, repr=False)

    def _get_geocoder(self) -> Any:
        if self._geocode_fn is not None:
            return self._geocode_fn
        geolocator = Nominatim(
            user_agent=self.user_agent, timeout=self.timeout_seconds
        )
        self._geocode_fn = RateLimiter(
            geolocator.geocode,
            min_delay_seconds=self.min_delay_seconds,
            max_retries=self.max_retries,
            swallow_exceptions=False,
        )
        return self._geocode_fn

    def geocode(self, query: str) -> Optional[GeoPoint]:
        if not query or not query.strip():
            return None
        try:
            location = self._get_geocoder()(query.strip())
        except GeocoderServiceError as e:
            logger.warning("Geocoding failed for %r: %s", query, e)
            return None
        if location is None:
            logger.debug("Geocode returned no result for %r", query)
            return None
        return GeoPoint(float(location.latitude), float(location.longitude))


def geocode_in_city(
    geocoder: Geocoder, location_name: str, city: Optional[str]
) -> Optional[GeoPoint]:
    """Geocodes a place name, biased to a city when one is known."""
    if not location_name:
        return None
    if city and city.lower() not in location_name.lower():
        point = geocoder.geocode(f"{location_name}, {city}")
        if point:
            return point
    return geocoder.geocode(location_name)
