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

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class JobStatus(Enum):
    WAITING = "WAITING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class Role(str, Enum):
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Role":
        """Maps a token role string to a Role; unknown roles become USER."""
        if not value:
            return cls.USER
        normalized = value.strip().lower().replace("_", "")
        for role in cls:
            if role.value == normalized:
                return role
        return cls.USER

    @property
    def rank(self) -> int:
        return ROLE_RANKS[self]

    def includes(self, other: "Role") -> bool:
        return self.rank >= other.rank


ROLE_RANKS = {
    Role.USER: 0,
    Role.MODERATOR: 1,
    Role.ADMIN: 2,
    Role.SUPERADMIN: 3,
}


class Plan(str, Enum):
    FREE = "free"
    BASIC = "basic"
    PRO = "pro"
    BUSINESS = "business"
    ENTERPRISE = "enterprise"


WHITE_LABEL_PLANS = {Plan.PRO, Plan.BUSINESS, Plan.ENTERPRISE}


class PlaceCategory(str, Enum):
    RESTAURANT = "restaurant"
    CAFE = "cafe"
    ATTRACTION = "attraction"


@dataclass
class GeoPoint:
    latitude: float
    longitude: float


@dataclass
class Place:
    name: str
    category: PlaceCategory
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    cuisine: Optional[str] = None
    address: Optional[str] = None


@dataclass
class CityPlaces:
    restaurants: List[Place] = field(default_factory=list)
    cafes: List[Place] = field(default_factory=list)
    attractions: List[Place] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.restaurants or self.cafes or self.attractions)


@dataclass
class ParsedActivity:
    title: str
    location_name: str = ""
    time: str = "12:00"
    date: Optional[str] = None
    time_is_flexible: bool = True


@dataclass
class SuggestedActivity:
    title: str
    date: Optional[str] = None
    time: Optional[str] = None
    locationName: Optional[str] = None
    notes: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass
class TripSuggestion:
    title: str
    startDate: str
    endDate: str
    city: str
    description: Optional[str] = None
    country: Optional[str] = None
    activities: List[SuggestedActivity] = field(default_factory=list)
