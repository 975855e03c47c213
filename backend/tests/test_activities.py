import unittest

from backend.tests.support import ApiTestCase, auth_headers


class ActivityTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.owner = auth_headers(1, "owner@example.com")
        self.trip = self.create_trip(self.owner)

    def _create(self, **overrides):
        payload = {"trip_id": self.trip["id"], "title": "Louvre", "date": "2026-06-02"}
        payload.update(overrides)
        return self.client.post("/api/activities", json=payload, headers=self.owner)

    def test_create_assigns_next_order_and_geocodes(self):
        self.geocoder.add("Musee d'Orsay, Paris", 48.86, 2.3266)
        first = self._create().json()
        second = self._create(title="Orsay", location_name="Musee d'Orsay").json()
        self.assertEqual(first["order"], 0)
        self.assertEqual(second["order"], 1)
        self.assertEqual(second["latitude"], 48.86)
        self.assertFalse(second["completed"])

    def test_date_outside_trip_is_rejected(self):
        response = self._create(date="2026-07-01")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json()["detail"], "Activity date must be within the trip dates"
        )

    def test_bad_clock_is_rejected(self):
        self.assertEqual(self._create(time="25:00").status_code, 422)

    def test_list_is_ordered(self):
        self._create(title="Dinner", date="2026-06-02", time="19:00")
        self._create(title="Breakfast", date="2026-06-01", time="08:00")
        response = self.client.get(
            f"/api/activities/trip/{self.trip['id']}", headers=self.owner
        )
        self.assertEqual([a["title"] for a in response.json()], ["Breakfast", "Dinner"])

    def test_update_order_and_complete(self):
        activity = self._create().json()
        updated = self.client.put(
            f"/api/activities/{activity['id']}",
            json={"notes": "Book tickets"},
            headers=self.owner,
        ).json()
        self.assertEqual(updated["notes"], "Book tickets")

        reordered = self.client.put(
            f"/api/activities/{activity['id']}/order", json={"order": 5}, headers=self.owner
        ).json()
        self.assertEqual(reordered["order"], 5)

        toggled = self.client.patch(
            f"/api/activities/{activity['id']}/complete", headers=self.owner
        ).json()
        self.assertTrue(toggled["completed"])
        toggled = self.client.patch(
            f"/api/activities/{activity['id']}/complete", headers=self.owner
        ).json()
        self.assertFalse(toggled["completed"])
        explicit = self.client.patch(
            f"/api/activities/{activity['id']}/complete",
            json={"completed": True},
            headers=self.owner,
        ).json()
        self.assertTrue(explicit["completed"])

    def test_update_rejects_null_for_required_fields(self):
        activity = self._create().json()
        for field in ("title", "date", "order", "completed"):
            response = self.client.put(
                f"/api/activities/{activity['id']}", json={field: None}, headers=self.owner
            )
            self.assertEqual(response.status_code, 422, field)
        cleared = self.client.put(
            f"/api/activities/{activity['id']}", json={"notes": None}, headers=self.owner
        )
        self.assertEqual(cleared.status_code, 200)
        self.assertEqual(cleared.json()["title"], "Louvre")

    def test_delete(self):
        activity = self._create().json()
        response = self.client.delete(f"/api/activities/{activity['id']}", headers=self.owner)
        self.assertEqual(response.status_code, 200)
        listed = self.client.get(f"/api/activities/trip/{self.trip['id']}", headers=self.owner)
        self.assertEqual(listed.json(), [])

    def test_other_user_cannot_add(self):
        response = self._create()
        self.assertEqual(response.status_code, 201)
        response = self.client.post(
            "/api/activities",
            json={"trip_id": self.trip["id"], "title": "Sneaky", "date": "2026-06-02"},
            headers=auth_headers(2),
        )
        self.assertEqual(response.status_code, 403)

    def test_parse(self):
        response = self.client.post(
            "/api/activities/parse",
            json={"text": "Dinner at Le Marais tomorrow at 8pm", "reference_date": "2026-03-02"},
            headers=self.owner,
        )
        self.assertEqual(
            response.json(),
            {
                "title": "Dinner",
                "location_name": "Le Marais",
                "time": "20:00",
                "date": "2026-03-03",
                "time_is_flexible": False,
            },
        )

    def test_parse_blank_text(self):
        response = self.client.post(
            "/api/activities/parse", json={"text": "   "}, headers=self.owner
        )
        self.assertEqual(response.status_code, 400)

    def test_natural_creates_activity(self):
        response = self.client.post(
            "/api/activities/natural",
            json={"trip_id": self.trip["id"], "text": "Boat tour on 2026-06-02 at 3pm"},
            headers=self.owner,
        )
        self.assertEqual(response.status_code, 201)
        activity = response.json()
        self.assertEqual(activity["title"], "Boat tour")
        self.assertEqual(activity["date"], "2026-06-02")
        self.assertEqual(activity["time"], "15:00")

    def test_natural_date_outside_trip_uses_start(self):
        response = self.client.post(
            "/api/activities/natural",
            json={"trip_id": self.trip["id"], "text": "Boat tour on 2027-01-10 at 3pm"},
            headers=self.owner,
        )
        self.assertEqual(response.json()["date"], "2026-06-01")


if __name__ == "__main__":
    unittest.main()
