"""
Flight search and booking providers.

`DuffelFlightProvider` talks to the Duffel API; `InMemoryFlightProvider`
returns deterministic offers in the same shape for tests and local runs.
Both return offers and orders normalized by the functions below.
"""

from __future__ import annotations

import itertools
import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Protocol

import requests

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 45  # seconds
DUFFEL_VERSION = "v2"

ISO_DURATION_PATTERN = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?)?$"
)

BASIC_AIRPORTS = [
    {"iata_code": "JFK", "name": "John F. Kennedy International Airport", "city": "New York", "country": "US"},
    {"iata_code": "LAX", "name": "Los Angeles International Airport", "city": "Los Angeles", "country": "US"},
    {"iata_code": "ORD", "name": "O'Hare International Airport", "city": "Chicago", "country": "US"},
    {"iata_code": "DFW", "name": "Dallas/Fort Worth International Airport", "city": "Dallas", "country": "US"},
    {"iata_code": "SFO", "name": "San Francisco International Airport", "city": "San Francisco", "country": "US"},
    {"iata_code": "MIA", "name": "Miami International Airport", "city": "Miami", "country": "US"},
    {"iata_code": "LAS", "name": "Harry Reid International Airport", "city": "Las Vegas", "country": "US"},
    {"iata_code": "SEA", "name": "Seattle-Tacoma International Airport", "city": "Seattle", "country": "US"},
    {"iata_code": "ATL", "name": "Hartsfield-Jackson Atlanta International Airport", "city": "Atlanta", "country": "US"},
    {"iata_code": "BOS", "name": "Logan International Airport", "city": "Boston", "country": "US"},
]


class FlightProviderError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class FlightSearch:
    origin: str
    destination: str
    departure_date: str
    return_date: Optional[str] = None
    adults: int = 1
    children: int = 0
    infants: int = 0
    cabin_class: str = "economy"

    def passenger_list(self) -> list[dict]:
        return (
            [{"type": "adult"}] * self.adults
            + [{"type": "child"}] * self.children
            + [{"type": "infant_without_seat"}] * self.infants
        )

    def slice_list(self) -> list[dict]:
        slices = [
            {
                "origin": self.origin,
                "destination": self.destination,
                "departure_date": self.departure_date,
            }
        ]
        if self.return_date:
            slices.append(
                {
                    "origin": self.destination,
                    "destination": self.origin,
                    "departure_date": self.return_date,
                }
            )
        return slices


class FlightProvider(Protocol):
    def search(self, search: FlightSearch) -> list[dict]:
        ...

    def get_offer(self, offer_id: str) -> dict:
        ...

    def create_order(self, offer_id: str, passengers: list[dict]) -> dict:
        ...

    def get_order(self, order_id: str) -> dict:
        ...

    def cancel_order(self, order_id: str) -> dict:
        ...

    def search_airports(self, query: str) -> list[dict]:
        ...


def parse_iso_duration(value: Optional[str]) -> Optional[int]:
    """'PT2H30M' -> 150 minutes. None when absent or unparseable."""
    if not value:
        return None
    match = ISO_DURATION_PATTERN.match(value)
    if not match:
        return None
    parts = {k: int(v) for k, v in match.groupdict().items() if v}
    return parts.get("days", 0) * 1440 + parts.get("hours", 0) * 60 + parts.get("minutes", 0)


def _place_code(place: Optional[dict]) -> Optional[str]:
    return (place or {}).get("iata_code")


def normalize_segment(raw: dict) -> dict:
    carrier = raw.get("marketing_carrier") or {}
    number = raw.get("marketing_carrier_flight_number") or ""
    return {
        "flight_number": f"{carrier.get('iata_code', '')}{number}",
        "airline": carrier.get("name"),
        "origin": _place_code(raw.get("origin")),
        "destination": _place_code(raw.get("destination")),
        "departure_datetime": raw.get("departing_at"),
        "arrival_datetime": raw.get("arriving_at"),
        "duration_minutes": parse_iso_duration(raw.get("duration")),
        "aircraft": (raw.get("aircraft") or {}).get("name"),
    }


def normalize_slice(raw: dict) -> dict:
    segments = [normalize_segment(s) for s in raw.get("segments") or []]
    return {
        "origin": _place_code(raw.get("origin")),
        "destination": _place_code(raw.get("destination")),
        "departure_datetime": segments[0]["departure_datetime"] if segments else None,
        "arrival_datetime": segments[-1]["arrival_datetime"] if segments else None,
        "duration_minutes": parse_iso_duration(raw.get("duration")),
        "segments": segments,
    }


def normalize_offer(raw: dict) -> dict:
    conditions = raw.get("conditions") or {}
    refund = conditions.get("refund_before_departure") or {}
    change = conditions.get("change_before_departure") or {}
    return {
        "id": raw["id"],
        "price": {
            "amount": float(raw.get("total_amount") or 0),
            "currency": raw.get("total_currency"),
        },
        "airline": (raw.get("owner") or {}).get("name"),
        "expires_at": raw.get("expires_at"),
        "slices": [normalize_slice(s) for s in raw.get("slices") or []],
        "passengers": [
            {"id": p.get("id"), "type": p.get("type")}
            for p in raw.get("passengers") or []
        ],
        "conditions": {
            "refundable": bool(refund.get("allowed")),
            "changeable": bool(change.get("allowed")),
        },
    }


def normalize_order(raw: dict) -> dict:
    return {
        "id": raw["id"],
        "booking_reference": raw.get("booking_reference"),
        "status": "cancelled" if raw.get("cancelled_at") else "confirmed",
        "total_amount": float(raw.get("total_amount") or 0),
        "currency": raw.get("total_currency"),
        "slices": [normalize_slice(s) for s in raw.get("slices") or []],
        "passengers": [
            {
                "given_name": p.get("given_name"),
                "family_name": p.get("family_name"),
                "type": p.get("type"),
            }
            for p in raw.get("passengers") or []
        ],
    }


def _booking_passengers(offer: dict, passengers: list[dict]) -> list[dict]:
    offer_passengers = offer.get("passengers") or []
    if len(offer_passengers) != len(passengers):
        raise FlightProviderError(
            f"Offer is for {len(offer_passengers)} passengers, got {len(passengers)}",
            status_code=400,
        )
    return [
        {**details, "id": offer_passenger["id"], "gender": details["gender"].lower()}
        for offer_passenger, details in zip(offer_passengers, passengers)
    ]


@dataclass
class DuffelFlightProvider:
    api_key: str
    base_url: str = "https://api.duffel.com"

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        payload: Optional[dict] = None,
    ):
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Duffel-Version": DUFFEL_VERSION,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        try:
            resp = requests.request(
                method,
                self.base_url + path,
                headers=headers,
                params=params,
                json={"data": payload} if payload is not None else None,
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            raise FlightProviderError(f"Duffel request failed: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = {}

        if resp.status_code >= 400:
            errors = body.get("errors") or [{}]
            message = errors[0].get("message") or f"Duffel returned {resp.status_code}"
            logger.warning(
                "Duffel %s %s status=%s request_id=%s: %s",
                method,
                path,
                resp.status_code,
                resp.headers.get("x-request-id"),
                message,
            )
            raise FlightProviderError(message, status_code=resp.status_code)
        return body.get("data", body)

    def search(self, search: FlightSearch) -> list[dict]:
        data = self._request(
            "POST",
            "/air/offer_requests",
            params={"return_offers": "true"},
            payload={
                "slices": search.slice_list(),
                "passengers": search.passenger_list(),
                "cabin_class": search.cabin_class,
            },
        )
        return [normalize_offer(o) for o in data.get("offers") or []]

    def get_offer(self, offer_id: str) -> dict:
        return normalize_offer(self._request("GET", f"/air/offers/{offer_id}"))

    def create_order(self, offer_id: str, passengers: list[dict]) -> dict:
        offer = self._request("GET", f"/air/offers/{offer_id}")
        order = self._request(
            "POST",
            "/air/orders",
            payload={
                "type": "instant",
                "selected_offers": [offer_id],
                "passengers": _booking_passengers(offer, passengers),
                "payments": [
                    {
                        "type": "balance",
                        "amount": offer["total_amount"],
                        "currency": offer["total_currency"],
                    }
                ],
            },
        )
        return normalize_order(order)

    def get_order(self, order_id: str) -> dict:
        return normalize_order(self._request("GET", f"/air/orders/{order_id}"))

    def cancel_order(self, order_id: str) -> dict:
        cancellation = self._request(
            "POST", "/air/order_cancellations", payload={"order_id": order_id}
        )
        confirmed = self._request(
            "POST", f"/air/order_cancellations/{cancellation['id']}/actions/confirm"
        )
        return {
            "status": "cancelled",
            "refund_amount": float(confirmed.get("refund_amount") or 0),
            "refund_currency": confirmed.get("refund_currency"),
        }

    def search_airports(self, query: str) -> list[dict]:
        data = self._request("GET", "/places/suggestions", params={"query": query})
        return [
            {
                "iata_code": place.get("iata_code"),
                "name": place.get("name"),
                "city": place.get("city_name"),
                "country": place.get("iata_country_code"),
            }
            for place in data or []
            if place.get("type") == "airport"
        ]


def search_basic_airports(query: str) -> list[dict]:
    needle = query.strip().lower()
    return [
        airport
        for airport in BASIC_AIRPORTS
        if needle in airport["iata_code"].lower()
        or needle in airport["name"].lower()
        or needle in airport["city"].lower()
    ]


@dataclass
class InMemoryFlightProvider:
    """Deterministic offers shaped like Duffel responses."""

    offers: dict = field(default_factory=dict)
    orders: dict = field(default_factory=dict)
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1))

    def reset(self) -> None:
        self.offers.clear()
        self.orders.clear()
        self._ids = itertools.count(1)

    def _raw_slice(self, origin: str, destination: str, day: str, departs: str, number: int) -> dict:
        return {
            "origin": {"iata_code": origin},
            "destination": {"iata_code": destination},
            "duration": "PT3H15M",
            "segments": [
                {
                    "origin": {"iata_code": origin},
                    "destination": {"iata_code": destination},
                    "departing_at": f"{day}T{departs}:00",
                    "arriving_at": _add_minutes(day, departs, 195),
                    "duration": "PT3H15M",
                    "marketing_carrier": {"iata_code": "RV", "name": "Remvana Air"},
                    "marketing_carrier_flight_number": str(number),
                    "aircraft": {"name": "Airbus A320"},
                }
            ],
        }

    def search(self, search: FlightSearch) -> list[dict]:
        results = []
        for index, (departs, base_price) in enumerate((("09:00", 189.0), ("15:30", 149.0))):
            offer_id = f"off_{next(self._ids):04d}"
            slices = [
                self._raw_slice(s["origin"], s["destination"], s["departure_date"], departs, 100 + index)
                for s in search.slice_list()
            ]
            passengers = [
                {"id": f"pas_{offer_id}_{i}", "type": p["type"]}
                for i, p in enumerate(search.passenger_list())
            ]
            raw = {
                "id": offer_id,
                "total_amount": f"{base_price * len(passengers) * len(slices):.2f}",
                "total_currency": "USD",
                "owner": {"name": "Remvana Air"},
                "slices": slices,
                "passengers": passengers,
                "conditions": {
                    "refund_before_departure": {"allowed": index == 0},
                    "change_before_departure": {"allowed": True},
                },
            }
            self.offers[offer_id] = raw
            results.append(normalize_offer(raw))
        return results

    def get_offer(self, offer_id: str) -> dict:
        raw = self.offers.get(offer_id)
        if not raw:
            raise FlightProviderError("Offer not found", status_code=404)
        return normalize_offer(raw)

    def create_order(self, offer_id: str, passengers: list[dict]) -> dict:
        offer = self.offers.get(offer_id)
        if not offer:
            raise FlightProviderError("Offer not found", status_code=404)
        booked = _booking_passengers(offer, passengers)
        order_id = f"ord_{next(self._ids):04d}"
        raw = {
            "id": order_id,
            "booking_reference": f"RV{order_id[-4:]}",
            "total_amount": offer["total_amount"],
            "total_currency": offer["total_currency"],
            "slices": offer["slices"],
            "passengers": [{**p, "type": "adult"} for p in booked],
        }
        self.orders[order_id] = raw
        return normalize_order(raw)

    def get_order(self, order_id: str) -> dict:
        raw = self.orders.get(order_id)
        if not raw:
            raise FlightProviderError("Order not found", status_code=404)
        return normalize_order(raw)

    def cancel_order(self, order_id: str) -> dict:
        raw = self.orders.get(order_id)
        if not raw:
            raise FlightProviderError("Order not found", status_code=404)
        raw["cancelled_at"] = "cancelled"
        return {
            "status": "cancelled",
            "refund_amount": float(raw["total_amount"]),
            "refund_currency": raw["total_currency"],
        }

    def search_airports(self, query: str) -> list[dict]:
        return search_basic_airports(query)


def _add_minutes(day: str, clock: str, minutes: int) -> str:
    hours, mins = (int(part) for part in clock.split(":"))
    total = hours * 60 + mins + minutes
    # In-memory flights never cross midnight.
    return f"{day}T{total // 60:02d}:{total % 60:02d}:00"
