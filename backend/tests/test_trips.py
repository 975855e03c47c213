import unittest

from backend.tests.support import ApiTestCase, auth_headers


class TripTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.owner = auth_headers(1, "owner@example.com")
        self.other = auth_headers(2, "other@example.com")

    def test_create_geocodes_city(self):
        self.geocoder.add("Paris, France", 48.8566, 2.3522)
        trip = self.create_trip(self.owner)
        self.assertEqual(trip["user_id"], 1)
        self.assertEqual(trip["city_latitude"], 48.8566)
        self.assertEqual(trip["trip_type"], "personal")
        self.assertFalse(trip["sharing_enabled"])

    def test_end_before_start_is_rejected(self):
        response = self.client.post(
            "/api/trips",
            json={"title": "Backwards", "start_date": "2026-06-05", "end_date": "2026-06-01"},
            headers=self.owner,
        )
        self.assertEqual(response.status_code, 400)

    def test_list_newest_start_first(self):
        self.create_trip(self.owner, title="Early", start_date="2026-01-01", end_date="2026-01-02")
        self.create_trip(self.owner, title="Late", start_date="2026-09-01", end_date="2026-09-02")
        self.create_trip(self.other, title="Not mine")
        titles = [t["title"] for t in self.client.get("/api/trips", headers=self.owner).json()]
        self.assertEqual(titles, ["Late", "Early"])

    def test_other_users_cannot_read_or_update(self):
        trip = self.create_trip(self.owner)
        self.assertEqual(
            self.client.get(f"/api/trips/{trip['id']}", headers=self.other).status_code, 403
        )
        response = self.client.put(
            f"/api/trips/{trip['id']}", json={"title": "Mine now"}, headers=self.other
        )
        self.assertEqual(response.status_code, 403)

    def test_update_and_delete(self):
        trip = self.create_trip(self.owner)
        response = self.client.put(
            f"/api/trips/{trip['id']}", json={"title": "Paris in June"}, headers=self.owner
        )
        self.assertEqual(response.json()["title"], "Paris in June")

        self.client.post(
            "/api/activities",
            json={"trip_id": trip["id"], "title": "Louvre", "date": "2026-06-02"},
            headers=self.owner,
        )
        response = self.client.delete(f"/api/trips/{trip['id']}", headers=self.owner)
        self.assertEqual(response.json()["status"], "ok")
        self.assertEqual(
            self.client.get(f"/api/trips/{trip['id']}", headers=self.owner).status_code, 404
        )

    def test_update_rejects_inverted_dates(self):
        trip = self.create_trip(self.owner)
        response = self.client.put(
            f"/api/trips/{trip['id']}", json={"end_date": "2026-05-01"}, headers=self.owner
        )
        self.assertEqual(response.status_code, 400)

    def test_update_rejects_null_for_required_fields(self):
        trip = self.create_trip(self.owner)
        for field in ("title", "start_date", "completed"):
            response = self.client.put(
                f"/api/trips/{trip['id']}", json={field: None}, headers=self.owner
            )
            self.assertEqual(response.status_code, 422, field)
        response = self.client.put(
            f"/api/trips/{trip['id']}",
            json={"description": None, "budget": None},
            headers=self.owner,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["title"], "Paris getaway")

    def test_itinerary_covers_every_day_with_distances(self):
        trip = self.create_trip(self.owner)
        for title, lat, lon in (("Louvre", 48.8606, 2.3376), ("Eiffel Tower", 48.8584, 2.2945)):
            self.client.post(
                "/api/activities",
                json={
                    "trip_id": trip["id"],
                    "title": title,
                    "date": "2026-06-02",
                    "latitude": lat,
                    "longitude": lon,
                },
                headers=self.owner,
            )
        response = self.client.get(f"/api/trips/{trip['id']}/itinerary", headers=self.owner)
        days = response.json()["days"]
        self.assertEqual([d["date"] for d in days], ["2026-06-01", "2026-06-02", "2026-06-03"])
        self.assertEqual(days[0]["activities"], [])
        second = days[1]["activities"]
        self.assertIsNone(second[0]["distance_from_previous_km"])
        self.assertGreater(second[1]["distance_from_previous_km"], 3.0)
        self.assertEqual(days[1]["total_distance_km"], second[1]["distance_from_previous_km"])

    def test_sharing(self):
        trip = self.create_trip(self.owner)
        response = self.client.put(
            f"/api/trips/{trip['id']}/share",
            json={"sharing_enabled": True},
            headers=self.owner,
        )
        settings = response.json()
        self.assertTrue(settings["sharing_enabled"])
        self.assertEqual(len(settings["share_code"]), 12)

        shared = self.client.get(f"/api/trips/shared/{settings['share_code']}")
        self.assertEqual(shared.status_code, 200)
        self.assertEqual(shared.json()["trip"]["id"], trip["id"])

        self.client.put(
            f"/api/trips/{trip['id']}/share",
            json={"sharing_enabled": False},
            headers=self.owner,
        )
        self.assertEqual(
            self.client.get(f"/api/trips/shared/{settings['share_code']}").status_code, 404
        )

    def test_hotel_adds_check_in_and_out(self):
        trip = self.create_trip(self.owner)
        response = self.client.post(
            f"/api/trips/{trip['id']}/hotel",
            json={"hotel_name": "Hotel Lutetia", "hotel_address": "45 Bd Raspail"},
            headers=self.owner,
        )
        payload = response.json()
        self.assertEqual(payload["trip"]["hotel_name"], "Hotel Lutetia")
        check_in, check_out = payload["activities"]
        self.assertEqual((check_in["date"], check_in["time"]), ("2026-06-01", "15:00"))
        self.assertEqual((check_out["date"], check_out["time"]), ("2026-06-03", "11:00"))
        self.assertEqual(check_in["tag"], "accommodation")

    def test_collaborator_invitation_flow(self):
        trip = self.create_trip(self.owner)
        response = self.client.post(
            f"/api/trips/{trip['id']}/collaborators",
            json={"email": "Other@Example.com", "role": "editor"},
            headers=self.owner,
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["status"], "invited")

        duplicate = self.client.post(
            f"/api/trips/{trip['id']}/collaborators",
            json={"email": "other@example.com"},
            headers=self.owner,
        )
        self.assertEqual(duplicate.status_code, 400)

        # Invited but not accepted: no access yet.
        self.assertEqual(
            self.client.get(f"/api/trips/{trip['id']}", headers=self.other).status_code, 403
        )
        accepted = self.client.post(
            f"/api/trips/{trip['id']}/collaborators/accept", headers=self.other
        )
        self.assertEqual(accepted.json()["status"], "accepted")
        response = self.client.put(
            f"/api/trips/{trip['id']}", json={"title": "Shared plans"}, headers=self.other
        )
        self.assertEqual(response.status_code, 200)

    def test_viewer_cannot_edit(self):
        trip = self.create_trip(self.owner)
        self.client.post(
            f"/api/trips/{trip['id']}/collaborators",
            json={"email": "other@example.com", "role": "viewer"},
            headers=self.owner,
        )
        self.client.post(f"/api/trips/{trip['id']}/collaborators/accept", headers=self.other)
        self.assertEqual(
            self.client.get(f"/api/trips/{trip['id']}", headers=self.other).status_code, 200
        )
        response = self.client.put(
            f"/api/trips/{trip['id']}", json={"title": "Nope"}, headers=self.other
        )
        self.assertEqual(response.status_code, 403)

    def test_corporate_trips_include_owner(self):
        organization_id = self.create_organization()
        member = auth_headers(3, "member@acme.test", organization_id=organization_id, name="Mia")
        admin = auth_headers(4, "admin@acme.test", role="admin", organization_id=organization_id)
        self.create_trip(member, title="Client visit", trip_type="business")

        response = self.client.get("/api/trips/corporate", headers=admin)
        trips = response.json()
        self.assertEqual(len(trips), 1)
        self.assertEqual(trips[0]["user_name"], "Mia")
        self.assertEqual(trips[0]["user_email"], "member@acme.test")

        self.assertEqual(
            self.client.get("/api/trips/corporate", headers=member).status_code, 403
        )


if __name__ == "__main__":
    unittest.main()
