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

import unittest
from datetime import date

from itinerary.planner import ExistingActivity, is_meal, plan_itinerary
from shared.types import CityPlaces, Place, PlaceCategory


def _places(category, *names):
    return [Place(name=n, category=category, latitude=1.0, longitude=2.0) for n in names]


PLACES = CityPlaces(
    restaurants=_places(PlaceCategory.RESTAURANT, "Trattoria", "Bistro", "Diner"),
    cafes=_places(PlaceCategory.CAFE, "Corner Cafe"),
    attractions=_places(PlaceCategory.ATTRACTION, "Castle", "Museum"),
)

DAY1 = date(2026, 6, 5)
DAY2 = date(2026, 6, 6)


class PlannerTest(unittest.TestCase):

    def test_empty_day_gets_four_activities(self):
        planned = plan_itinerary(DAY1, DAY1, [], PLACES)
        self.assertEqual(
            [(a.time, a.title, a.tag) for a in planned],
            [
                ("08:30", "Breakfast at Corner Cafe", "food"),
                ("10:00", "Visit Castle", "sightseeing"),
                ("13:00", "Lunch at Trattoria", "food"),
                ("19:00", "Dinner at Bistro", "food"),
            ],
        )

    def test_places_are_not_repeated_until_exhausted(self):
        planned = plan_itinerary(DAY1, DAY2, [], PLACES)
        day2 = [a for a in planned if a.date == DAY2]
        titles = [a.title for a in day2]
        self.assertIn("Visit Museum", titles)
        self.assertIn("Lunch at Diner", titles)
        # Only one cafe: reused on the second day.
        self.assertIn("Breakfast at Corner Cafe", titles)

    def test_day_with_meals_only_gets_two_sights(self):
        existing = [ExistingActivity(DAY1, "Lunch with friends", None)]
        planned = plan_itinerary(DAY1, DAY1, existing, PLACES)
        self.assertEqual(
            [(a.time, a.title) for a in planned],
            [("10:00", "Visit Castle"), ("14:30", "Explore Museum")],
        )

    def test_day_with_meal_and_one_sight_gets_morning_sight(self):
        existing = [
            ExistingActivity(DAY1, "Dinner", "food"),
            ExistingActivity(DAY1, "Opera", "culture"),
        ]
        planned = plan_itinerary(DAY1, DAY2, existing, PLACES)
        day1 = [a.title for a in planned if a.date == DAY1]
        self.assertEqual(day1, ["Visit Castle"])

    def test_day_without_meals_gets_meals(self):
        existing = [ExistingActivity(DAY1, "Boat tour", "sightseeing")]
        planned = plan_itinerary(DAY1, DAY1, existing, PLACES)
        self.assertEqual(
            [a.time for a in planned], ["08:30", "13:00", "19:00"]
        )

    def test_fully_planned_trip_is_skipped(self):
        existing = [ExistingActivity(DAY1, f"Thing {i}", None) for i in range(4)]
        self.assertEqual(plan_itinerary(DAY1, DAY2, existing, PLACES), [])

    def test_missing_categories_skip_slots(self):
        places = CityPlaces(attractions=_places(PlaceCategory.ATTRACTION, "Park"))
        planned = plan_itinerary(DAY1, DAY1, [], places)
        self.assertEqual([a.title for a in planned], ["Visit Park"])

    def test_single_attraction_is_not_used_twice_in_a_day(self):
        places = CityPlaces(attractions=_places(PlaceCategory.ATTRACTION, "Park"))
        existing = [ExistingActivity(DAY1, "Brunch", None)]
        planned = plan_itinerary(DAY1, DAY1, existing, places)
        self.assertEqual([a.title for a in planned], ["Visit Park"])

    def test_is_meal(self):
        self.assertTrue(is_meal(ExistingActivity(DAY1, "Team Dinner")))
        self.assertTrue(is_meal(ExistingActivity(DAY1, "Tapas", "Dining")))
        self.assertFalse(is_meal(ExistingActivity(DAY1, "Museum", "culture")))


if __name__ == "__main__":
    unittest.main()
