import unittest

from backend.tests.support import ApiTestCase, auth_headers


class AnalyticsTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.user = auth_headers(1)
        paris = self.create_trip(self.user)
        self.create_trip(
            self.user,
            title="Rome week",
            city="Rome",
            country="Italy",
            start_date="2026-08-01",
            end_date="2026-08-07",
        )
        for title, tag in (("Louvre", "sightseeing"), ("Bistro", "food"), ("Orsay", "sightseeing")):
            self.client.post(
                "/api/activities",
                json={"trip_id": paris["id"], "title": title, "date": "2026-06-02", "tag": tag},
                headers=self.user,
            )

    def test_personal_scope(self):
        response = self.client.get("/api/analytics", headers=self.user)
        payload = response.json()
        self.assertEqual(payload["scope"], "personal")
        overview = payload["overview"]
        self.assertEqual(overview["total_trips"], 2)
        self.assertEqual(overview["total_users"], 1)
        self.assertEqual(overview["total_activities"], 3)
        self.assertEqual(overview["average_trip_length"], 5.0)
        self.assertEqual(overview["average_activities_per_trip"], 1.5)

        self.assertEqual(
            {d["city"]: d["percentage"] for d in payload["destinations"]},
            {"Paris": 50.0, "Rome": 50.0},
        )
        durations = {d["duration"]: d["count"] for d in payload["trip_durations"]}
        self.assertEqual(durations["Short Trip (3-5 days)"], 1)
        self.assertEqual(durations["Long Trip (6-10 days)"], 1)
        self.assertEqual(payload["activity_tags"][0], {"tag": "sightseeing", "count": 2, "percentage": 66.7})
        self.assertEqual(len(payload["growth_metrics"]), 8)
        self.assertEqual(payload["recent_activity"]["new_trips_last_7_days"], 2)
        self.assertEqual(payload["user_funnel"]["users_with_activities"], 1)

    def test_other_users_are_excluded(self):
        response = self.client.get("/api/analytics", headers=auth_headers(2))
        self.assertEqual(response.json()["overview"]["total_trips"], 0)
        self.assertEqual(response.json()["overview"]["average_trip_length"], 0.0)

    def test_unknown_scope(self):
        response = self.client.get("/api/analytics?scope=galaxy", headers=self.user)
        self.assertEqual(response.status_code, 400)

    def test_global_requires_superadmin(self):
        response = self.client.get("/api/analytics?scope=global", headers=self.user)
        self.assertEqual(response.status_code, 403)
        response = self.client.get(
            "/api/analytics?scope=global", headers=auth_headers(9, role="superadmin")
        )
        self.assertEqual(response.json()["overview"]["total_trips"], 2)

    def test_organization_scope(self):
        self.assertEqual(
            self.client.get("/api/analytics?scope=organization", headers=self.user).status_code,
            403,
        )
        org_id = self.create_organization()
        admin = auth_headers(5, role="admin", organization_id=org_id)
        member = auth_headers(6, organization_id=org_id)
        self.create_trip(member, city="Berlin", country="Germany")
        response = self.client.get("/api/analytics?scope=organization", headers=admin)
        payload = response.json()
        self.assertEqual(payload["overview"]["total_trips"], 1)
        self.assertEqual(payload["destinations"][0]["city"], "Berlin")

    def test_export_csv(self):
        response = self.client.get("/api/analytics/export", headers=self.user)
        self.assertTrue(response.headers["content-type"].startswith("text/csv"))
        self.assertIn(
            'filename="remvana-analytics-personal.csv"',
            response.headers["content-disposition"],
        )
        lines = response.text.splitlines()
        self.assertEqual(lines[0], "OVERVIEW")
        self.assertIn("Total Trips,2", lines)
        self.assertIn("TOP DESTINATIONS", lines)
        self.assertIn("Paris,France,1,50.0%", lines)
        self.assertIn("ACTIVITY TAGS", lines)


class YearInTravelTests(ApiTestCase):
    def test_year_recap(self):
        user = auth_headers(1)
        self.create_trip(user)
        self.create_trip(
            user,
            title="Rome week",
            city="Rome",
            country="Italy",
            start_date="2026-08-01",
            end_date="2026-08-07",
        )
        self.create_trip(user, title="Old trip", start_date="2025-01-01", end_date="2025-01-02")
        payload = self.client.get("/api/analytics/year/2026", headers=user).json()
        self.assertEqual(payload["total_trips"], 2)
        self.assertEqual(payload["total_days"], 10)
        self.assertEqual(payload["countries"], ["France", "Italy"])
        self.assertEqual(payload["longest_trip"], "Rome week")
        self.assertEqual(payload["longest_trip_days"], 7)
        self.assertEqual(payload["travel_style"], "relaxer")

    def test_empty_year(self):
        payload = self.client.get("/api/analytics/year/2030", headers=auth_headers(1)).json()
        self.assertEqual(payload["total_trips"], 0)
        self.assertIsNone(payload["favorite_destination"])

    def test_year_out_of_range(self):
        response = self.client.get("/api/analytics/year/1200", headers=auth_headers(1))
        self.assertEqual(response.status_code, 422)


if __name__ == "__main__":
    unittest.main()
