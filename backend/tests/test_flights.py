import unittest
from unittest.mock import patch

from backend.flights_client import FlightProviderError
from backend.tests.support import ApiTestCase, auth_headers

PASSENGER = {
    "title": "ms",
    "given_name": "Ada",
    "family_name": "Lovelace",
    "born_on": "1990-12-10",
    "email": "ada@example.com",
    "phone_number": "+442080160509",
    "gender": "F",
}


class FlightTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = auth_headers(1)

    def search(self, **overrides):
        payload = {
            "origin": "jfk",
            "destination": "CDG",
            "departure_date": "2026-06-01",
            "return_date": "2026-06-03",
        }
        payload.update(overrides)
        return self.client.post("/api/flights/search", json=payload, headers=self.headers)

    def test_search(self):
        offers = self.search().json()["offers"]
        self.assertEqual([o["id"] for o in offers], ["off_0001", "off_0002"])
        first = offers[0]
        self.assertEqual(first["price"], {"amount": 378.0, "currency": "USD"})
        self.assertEqual(len(first["slices"]), 2)
        segment = first["slices"][0]["segments"][0]
        self.assertEqual(segment["flight_number"], "RV100")
        self.assertEqual(segment["origin"], "JFK")
        self.assertEqual(segment["duration_minutes"], 195)
        self.assertTrue(first["conditions"]["refundable"])
        self.assertFalse(offers[1]["conditions"]["refundable"])

    def test_return_before_departure(self):
        response = self.search(return_date="2026-05-01")
        self.assertEqual(response.status_code, 400)

    def test_bad_airport_code(self):
        self.assertEqual(self.search(origin="JFKX").status_code, 422)

    def test_offer_lookup(self):
        self.search()
        offer = self.client.get("/api/flights/offers/off_0002", headers=self.headers).json()
        self.assertEqual(offer["price"]["amount"], 298.0)
        missing = self.client.get("/api/flights/offers/off_9999", headers=self.headers)
        self.assertEqual(missing.status_code, 404)

    def test_booking_adds_flights_to_trip(self):
        trip = self.create_trip(self.headers)
        self.search()
        response = self.client.post(
            "/api/flights/bookings",
            json={"offer_id": "off_0001", "trip_id": trip["id"], "passengers": [PASSENGER]},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 201, response.text)
        booking = response.json()
        self.assertEqual(booking["provider_order_id"], "ord_0003")
        self.assertEqual(booking["booking_reference"], "RV0003")
        self.assertEqual(booking["status"], "confirmed")
        self.assertEqual(booking["total_amount"], 378.0)

        activities = self.client.get(
            f"/api/activities/trip/{trip['id']}", headers=self.headers
        ).json()
        self.assertEqual(
            [(a["title"], a["date"], a["time"], a["tag"]) for a in activities],
            [
                ("Flight JFK to CDG", "2026-06-01", "09:00", "flight"),
                ("Flight CDG to JFK", "2026-06-03", "09:00", "flight"),
            ],
        )
        self.assertEqual(activities[0]["notes"], "Booking reference RV0003. Flights: RV100")

    def test_passenger_count_must_match(self):
        self.search()
        response = self.client.post(
            "/api/flights/bookings",
            json={"offer_id": "off_0001", "passengers": [PASSENGER, PASSENGER]},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 400)

    def test_booking_into_foreign_trip(self):
        trip = self.create_trip(auth_headers(2))
        self.search()
        response = self.client.post(
            "/api/flights/bookings",
            json={"offer_id": "off_0001", "trip_id": trip["id"], "passengers": [PASSENGER]},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.flights.orders, {})

    def test_list_get_and_cancel(self):
        self.search()
        booking = self.client.post(
            "/api/flights/bookings",
            json={"offer_id": "off_0002", "passengers": [PASSENGER]},
            headers=self.headers,
        ).json()
        listed = self.client.get("/api/flights/bookings", headers=self.headers).json()
        self.assertEqual([b["id"] for b in listed["bookings"]], [booking["id"]])

        other = self.client.get(f"/api/flights/bookings/{booking['id']}", headers=auth_headers(2))
        self.assertEqual(other.status_code, 403)

        cancelled = self.client.delete(
            f"/api/flights/bookings/{booking['id']}", headers=self.headers
        ).json()
        self.assertEqual(cancelled["booking"]["status"], "cancelled")
        self.assertEqual(cancelled["refund_amount"], 298.0)
        self.assertEqual(cancelled["refund_currency"], "USD")

        again = self.client.delete(f"/api/flights/bookings/{booking['id']}", headers=self.headers)
        self.assertEqual(again.status_code, 400)
        self.assertEqual(again.json()["detail"], "Booking is already cancelled")

    def test_cancel_provider_failure_keeps_booking(self):
        self.search()
        booking = self.client.post(
            "/api/flights/bookings",
            json={"offer_id": "off_0002", "passengers": [PASSENGER]},
            headers=self.headers,
        ).json()
        with patch.object(
            self.flights,
            "cancel_order",
            side_effect=FlightProviderError("timeout", status_code=503),
        ) as cancel_order:
            response = self.client.delete(
                f"/api/flights/bookings/{booking['id']}", headers=self.headers
            )
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["detail"], "Flight provider is unavailable")
        cancel_order.assert_called_once_with(booking["provider_order_id"])
        current = self.client.get(
            f"/api/flights/bookings/{booking['id']}", headers=self.headers
        ).json()
        self.assertEqual(current["status"], booking["status"])


class AirportSearchTests(ApiTestCase):
    def test_short_query(self):
        response = self.client.get("/api/flights/airports/search?q=J", headers=auth_headers(1))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Query must be at least 2 characters")

    def test_search(self):
        payload = self.client.get(
            "/api/flights/airports/search?q=new york", headers=auth_headers(1)
        ).json()
        self.assertIn("JFK", [a["iata_code"] for a in payload["airports"]])
        self.assertFalse(payload["fallback"])

    def test_falls_back_to_built_in_list(self):
        with patch.object(
            self.flights, "search_airports", side_effect=FlightProviderError("down", status_code=503)
        ):
            payload = self.client.get(
                "/api/flights/airports/search?q=jfk", headers=auth_headers(1)
            ).json()
        self.assertTrue(payload["fallback"])
        self.assertEqual(payload["airports"][0]["iata_code"], "JFK")


if __name__ == "__main__":
    unittest.main()
