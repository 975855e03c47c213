"""
Client proposals: a cost estimate for a trip rendered as branded HTML and
stored in object storage.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from datetime import date, timedelta
from typing import NamedTuple, Optional

from jinja2 import Environment, PackageLoader, select_autoescape
from sqlalchemy import select

from backend.auth import CurrentUser
from backend.config import Settings
from backend.db import ActivityRow, Database, ProposalRow, TripRow
from backend.errors import UpstreamUnavailableError
from backend.schemas import ProposalRequest, ProposalResponse
from backend.services import white_label
from backend.services.trips import load_trip, trip_activities
from backend.storage import StorageClient, StorageError

logger = logging.getLogger(__name__)

VALIDITY_DAYS = 30
URL_EXPIRES_SECONDS = 7 * 24 * 3600
ACTIVITY_COST = 75
MEALS_PER_DAY = 60
TRANSPORT_PER_DAY = 40
MISC_RATE = 0.10
DOMESTIC_COUNTRIES = {"usa", "united states", "united states of america", "us"}


class RateTier(NamedTuple):
    daily: int
    flights: int
    hotels: int


RATE_TIERS = {
    "domestic": RateTier(daily=200, flights=400, hotels=120),
    "international": RateTier(daily=350, flights=800, hotels=180),
    "luxury": RateTier(daily=500, flights=1200, hotels=300),
    "budget": RateTier(daily=100, flights=250, hotels=60),
}

BUDGET_SPLIT = {
    "flights": 0.40,
    "hotels": 0.30,
    "activities": 0.15,
    "meals": 0.10,
    "transportation": 0.03,
    "miscellaneous": 0.02,
}

BREAKDOWN_LABELS = {
    "flights": "Flights",
    "hotels": "Accommodation",
    "activities": "Activities and tours",
    "meals": "Meals",
    "transportation": "Local transportation",
    "miscellaneous": "Miscellaneous",
}

_environment = Environment(
    loader=PackageLoader("backend", "templates"),
    autoescape=select_autoescape(["html"]),
)


def _mentions(activities: list[ActivityRow], word: str) -> bool:
    return any(
        (a.tag or "").lower() == word or word in (a.notes or "").lower()
        for a in activities
    )


def rate_tier(trip: TripRow, activities: list[ActivityRow]) -> str:
    if _mentions(activities, "luxury"):
        return "luxury"
    if _mentions(activities, "budget"):
        return "budget"
    if trip.country and trip.country.strip().lower() not in DOMESTIC_COUNTRIES:
        return "international"
    return "domestic"


def estimate_cost(
    trip: TripRow, activities: list[ActivityRow]
) -> tuple[float, dict[str, float]]:
    """Total and per-category estimate; a trip budget is split instead when set."""
    if trip.budget:
        breakdown = {
            key: round(trip.budget * share, 2) for key, share in BUDGET_SPLIT.items()
        }
        return round(trip.budget, 2), breakdown

    rates = RATE_TIERS[rate_tier(trip, activities)]
    nights = max(1, (trip.end_date - trip.start_date).days)
    breakdown = {
        "flights": float(rates.flights),
        "hotels": float(rates.hotels * nights),
        "activities": float(len(activities) * ACTIVITY_COST),
        "meals": float(nights * MEALS_PER_DAY),
        "transportation": float(nights * TRANSPORT_PER_DAY),
    }
    breakdown["miscellaneous"] = float(round(sum(breakdown.values()) * MISC_RATE))
    return round(sum(breakdown.values()), 2), breakdown


def render_proposal(
    *,
    trip: TripRow,
    activities: list[ActivityRow],
    payload: ProposalRequest,
    brand,
    agent_name: Optional[str],
    estimated_cost: float,
    breakdown: dict[str, float],
    valid_until: date,
) -> str:
    by_day: dict[date, list[ActivityRow]] = defaultdict(list)
    for activity in activities:
        by_day[activity.date].append(activity)
    tier = rate_tier(trip, activities)
    return _environment.get_template("proposal.html").render(
        brand=brand,
        trip=trip,
        destination=", ".join(p for p in (trip.city, trip.country) if p) or trip.title,
        client_name=payload.client_name,
        agent_name=agent_name,
        message=payload.message,
        contact={
            "email": payload.contact_email,
            "phone": payload.contact_phone,
            "website": payload.contact_website,
        },
        estimated_cost=estimated_cost,
        tier="your budget" if trip.budget else tier,
        daily_rate=RATE_TIERS[tier].daily,
        breakdown=[(BREAKDOWN_LABELS[key], amount) for key, amount in breakdown.items()],
        days=sorted(by_day.items()),
        valid_until=valid_until,
    )


def _response(row: ProposalRow, storage: StorageClient) -> ProposalResponse:
    try:
        url = storage.presign_get(row.storage_path, expires_in=URL_EXPIRES_SECONDS)
    except StorageError as e:
        raise UpstreamUnavailableError("Proposal storage is unavailable") from e
    return ProposalResponse(
        proposal_id=row.id,
        trip_id=row.trip_id,
        client_name=row.client_name,
        url=url,
        estimated_cost=row.estimated_cost,
        cost_breakdown=row.cost_breakdown,
        valid_until=row.valid_until,
        created_at=row.created_at,
    )


def create_proposal(
    db: Database,
    user: CurrentUser,
    trip_id: int,
    payload: ProposalRequest,
    *,
    storage: StorageClient,
    settings: Settings,
    today: Optional[date] = None,
) -> ProposalResponse:
    today = today or date.today()
    with db.session() as session:
        trip = load_trip(session, trip_id, user)
        activities = trip_activities(session, trip.id)

    estimated_cost, breakdown = estimate_cost(trip, activities)
    valid_until = today + timedelta(days=VALIDITY_DAYS)
    brand = white_label.get_config(db, user, settings).config
    html = render_proposal(
        trip=trip,
        activities=activities,
        payload=payload,
        brand=brand,
        agent_name=user.display_name or user.email,
        estimated_cost=estimated_cost,
        breakdown=breakdown,
        valid_until=valid_until,
    )
    path = f"proposals/{trip.id}/{uuid.uuid4().hex}.html"
    try:
        storage.upload_text(path, html, content_type="text/html; charset=utf-8")
    except StorageError as e:
        raise UpstreamUnavailableError("Proposal storage is unavailable") from e

    with db.session() as session:
        row = ProposalRow(
            trip_id=trip.id,
            created_by=user.id,
            client_name=payload.client_name,
            contact_email=payload.contact_email,
            storage_path=path,
            estimated_cost=estimated_cost,
            cost_breakdown=breakdown,
            valid_until=valid_until,
        )
        session.add(row)
    logger.info("Created proposal %s for trip %s", row.id, trip.id)
    return _response(row, storage)


def list_proposals(
    db: Database, user: CurrentUser, trip_id: int, storage: StorageClient
) -> list[ProposalResponse]:
    with db.session() as session:
        trip = load_trip(session, trip_id, user)
        rows = list(
            session.execute(
                select(ProposalRow)
                .where(ProposalRow.trip_id == trip.id)
                .order_by(ProposalRow.created_at.desc())
            ).scalars()
        )
    return [_response(row, storage) for row in rows]
