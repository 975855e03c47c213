import unittest
from unittest.mock import patch

from backend.tests.support import ApiTestCase, auth_headers
from backend.worker import process_next
from itinerary.places import PlacesLookupError
from shared.types import CityPlaces, JobStatus, Place, PlaceCategory

PARIS = CityPlaces(
    restaurants=[
        Place("Le Comptoir", PlaceCategory.RESTAURANT, 48.8521, 2.3387, cuisine="french"),
        Place("Chez Janou", PlaceCategory.RESTAURANT, 48.8574, 2.3668),
    ],
    cafes=[Place("Cafe Kitsune", PlaceCategory.CAFE, 48.8638, 2.3370)],
    attractions=[
        Place("Louvre", PlaceCategory.ATTRACTION, 48.8606, 2.3376),
        Place("Sainte-Chapelle", PlaceCategory.ATTRACTION, 48.8554, 2.3450),
    ],
)


class WorkerTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = auth_headers(1)
        self.trip = self.create_trip(self.headers)

    def start_job(self) -> str:
        response = self.client.post(
            "/api/ai/itinerary-jobs", json={"trip_id": self.trip["id"]}, headers=self.headers
        )
        return response.json()["job_id"]

    def run_once(self) -> bool:
        return process_next(db=self.db, queue=self.queue, places=self.places, block=False)

    def activities(self):
        return self.client.get(
            f"/api/activities/trip/{self.trip['id']}", headers=self.headers
        ).json()

    def test_process_fills_trip(self):
        self.places.add_city("Paris", PARIS)
        job_id = self.start_job()
        self.assertTrue(self.run_once())

        job = self.db.get_job(job_id)
        self.assertEqual(job.status, JobStatus.SUCCESS)
        self.assertEqual(job.stage, "SUCCESS")
        self.assertEqual(job.progress_percent, 1.0)
        self.assertEqual(job.activities_created, 12)
        self.assertEqual(job.message, "Added 12 activities")

        first_day = [a for a in self.activities() if a["date"] == "2026-06-01"]
        self.assertEqual(
            [(a["time"], a["title"], a["order"]) for a in first_day],
            [
                ("08:30", "Breakfast at Cafe Kitsune", 0),
                ("10:00", "Visit Louvre", 1),
                ("13:00", "Lunch at Le Comptoir", 2),
                ("19:00", "Dinner at Chez Janou", 3),
            ],
        )
        self.assertEqual(first_day[2]["notes"], "Cuisine: french")

    def test_no_jobs(self):
        self.assertFalse(self.run_once())

    def test_unqueued_job_is_picked_up(self):
        self.places.add_city("Paris", PARIS)
        job_id = self.start_job()
        self.queue.reset()
        self.assertTrue(self.run_once())
        self.assertEqual(self.db.get_job(job_id).status, JobStatus.SUCCESS)

    def test_already_claimed(self):
        job_id = self.start_job()
        self.db.claim_job(job_id)
        self.assertFalse(self.run_once())

    def test_no_places(self):
        job_id = self.start_job()
        self.run_once()
        job = self.db.get_job(job_id)
        self.assertEqual(job.status, JobStatus.ERROR)
        self.assertEqual(job.stage, "NO_PLACES")
        self.assertEqual(job.message, "No places found for Paris")

    def test_places_unavailable(self):
        job_id = self.start_job()
        with patch.object(self.places, "find_places", side_effect=PlacesLookupError("timeout")):
            self.run_once()
        self.assertEqual(self.db.get_job(job_id).stage, "PLACES_UNAVAILABLE")

    def test_trip_deleted(self):
        job_id = self.start_job()
        self.client.delete(f"/api/trips/{self.trip['id']}", headers=self.headers)
        self.run_once()
        job = self.db.get_job(job_id)
        self.assertEqual(job.status, JobStatus.ERROR)
        self.assertEqual(job.stage, "TRIP_NOT_FOUND")

    def test_full_trip_is_skipped(self):
        for day in ("2026-06-01", "2026-06-02", "2026-06-03"):
            for title in ("Museum", "Walk"):
                self.client.post(
                    "/api/activities",
                    json={"trip_id": self.trip["id"], "title": title, "date": day},
                    headers=self.headers,
                )
        self.places.add_city("Paris", PARIS)
        job_id = self.start_job()
        self.run_once()
        job = self.db.get_job(job_id)
        self.assertEqual(job.status, JobStatus.SUCCESS)
        self.assertEqual(job.stage, "SKIPPED")
        self.assertEqual(len(self.activities()), 6)

    def test_unexpected_failure_is_recorded(self):
        self.places.add_city("Paris", PARIS)
        job_id = self.start_job()
        with patch("backend.worker.plan_itinerary", side_effect=RuntimeError("boom")):
            with self.assertRaises(RuntimeError):
                self.run_once()
        job = self.db.get_job(job_id)
        self.assertEqual(job.status, JobStatus.ERROR)
        self.assertEqual(job.message, "Itinerary generation failed")


if __name__ == "__main__":
    unittest.main()
