"""
Shared setup for API tests: in-memory backends and bearer tokens.
"""

import os
import unittest

os.environ.setdefault("USE_IN_MEMORY_BACKENDS", "true")

from fastapi.testclient import TestClient  # noqa: E402

from backend.app import create_app  # noqa: E402
from backend.auth import create_access_token  # noqa: E402
from backend.db import OrganizationRow  # noqa: E402
from backend.dependencies import (  # noqa: E402
    get_card_issuer,
    get_db,
    get_flight_provider,
    get_geocoder,
    get_places_provider,
    get_queue_client,
    get_storage_client,
)


def auth_headers(
    user_id: int = 1,
    email: str | None = None,
    role: str = "user",
    organization_id: int | None = None,
    name: str | None = None,
) -> dict:
    token = create_access_token(
        user_id,
        email or f"user{user_id}@example.com",
        role,
        organization_id,
        name=name,
    )
    return {"Authorization": f"Bearer {token}"}


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(create_app())
        self.db = get_db()
        self.db.reset()
        self.storage = get_storage_client()
        self.queue = get_queue_client()
        self.flights = get_flight_provider()
        self.card_issuer = get_card_issuer()
        self.geocoder = get_geocoder()
        self.places = get_places_provider()
        for backend in (
            self.storage,
            self.queue,
            self.flights,
            self.card_issuer,
            self.geocoder,
            self.places,
        ):
            backend.reset()

    def create_organization(self, name: str = "Acme Travel", plan: str = "free") -> int:
        with self.db.session() as session:
            organization = OrganizationRow(
                name=name,
                plan=plan,
                white_label_enabled=plan in ("pro", "business", "enterprise"),
            )
            session.add(organization)
        return organization.id

    def create_trip(self, headers: dict, **overrides) -> dict:
        payload = {
            "title": "Paris getaway",
            "start_date": "2026-06-01",
            "end_date": "2026-06-03",
            "city": "Paris",
            "country": "France",
        }
        payload.update(overrides)
        response = self.client.post("/api/trips", json=payload, headers=headers)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()
