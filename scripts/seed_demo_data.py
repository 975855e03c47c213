"""
Seed a database with a demo organization, travelers, a trip and a published
template so the console and marketplace have something to show.

Uses DATABASE_URL from the environment (or .env).
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date, timedelta
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.auth import CurrentUser, ensure_user
from backend.dependencies import get_db, get_geocoder
from backend.schemas import (
    ActivityCreate,
    OrganizationCreate,
    TemplateActivity,
    TemplateCreate,
    TripCreate,
)
from backend.services import activities, admin, templates, trips
from shared.types import Plan, Role

logger = logging.getLogger(__name__)

DEMO_ACTIVITIES = (
    (0, "09:00", "Louvre Museum", "Louvre Museum", "sightseeing"),
    (0, "13:00", "Lunch at Le Comptoir", "Le Comptoir du Relais", "food"),
    (1, "10:00", "Musee d'Orsay", "Musee d'Orsay", "sightseeing"),
    (1, "19:30", "Seine dinner cruise", "Port de la Bourdonnais", "food"),
)


def seed(start: date) -> dict:
    db = get_db()
    geocoder = get_geocoder()

    organization = admin.create_organization(
        db,
        OrganizationCreate(name="Demo Travel Co", domain="demo.remvana.test", plan=Plan.PRO),
    )
    agent = CurrentUser(
        id=1,
        email="agent@demo.remvana.test",
        role=Role.ADMIN,
        organization_id=organization.id,
        display_name="Demo Agent",
    )
    traveler = CurrentUser(
        id=2,
        email="traveler@demo.remvana.test",
        role=Role.USER,
        organization_id=organization.id,
        display_name="Demo Traveler",
    )
    for user in (agent, traveler):
        ensure_user(db, user)

    trip = trips.create_trip(
        db,
        traveler,
        TripCreate(
            title="Paris long weekend",
            start_date=start,
            end_date=start + timedelta(days=2),
            city="Paris",
            country="France",
        ),
        geocoder,
    )
    for offset, time, title, place, tag in DEMO_ACTIVITIES:
        activities.create_activity(
            db,
            traveler,
            ActivityCreate(
                trip_id=trip.id,
                title=title,
                date=start + timedelta(days=offset),
                time=time,
                location_name=place,
                tag=tag,
            ),
            geocoder,
        )

    template = templates.create_template(
        db,
        agent,
        TemplateCreate(
            title="Paris in three days",
            description="Museums, bistros and the Seine at night.",
            price=29.0,
            destinations=["Paris", "France"],
            duration=3,
            tags=["culture", "food"],
            activities=[
                TemplateActivity(
                    day=offset + 1, title=title, time=time, location_name=place, tag=tag
                )
                for offset, time, title, place, tag in DEMO_ACTIVITIES
            ],
        ),
    )
    templates.publish_template(db, agent, template.id)
    admin.approve_template(db, template.id)

    return {
        "organization_id": organization.id,
        "trip_id": trip.id,
        "template_slug": template.slug,
    }


def main() -> int:
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser(description="Seed demo data")
    parser.add_argument(
        "--start",
        type=date.fromisoformat,
        default=date.today() + timedelta(days=30),
        help="First day of the demo trip (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop and recreate all tables first",
    )
    args = parser.parse_args()

    if args.reset:
        logger.warning("Resetting every table")
        get_db().reset()

    created = seed(args.start)
    for key, value in created.items():
        logger.info("%s: %s", key, value)
    return 0


if __name__ == "__main__":
    sys.exit(main())
