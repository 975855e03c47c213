import unittest

from backend.tests.support import ApiTestCase, auth_headers


class AdminTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.admin = auth_headers(1, "admin@remvana.test", role="admin", name="Ada Admin")
        self.superadmin = auth_headers(9, "root@remvana.test", role="superadmin")
        self.creator = auth_headers(2, "creator@example.com", name="Casey Creator")
        self.buyer = auth_headers(3, "buyer@example.com")
        for headers in (self.admin, self.creator, self.buyer):
            self.client.get("/api/trips", headers=headers)

    def make_template(self, title="Kyoto", price=40.0, publish=True):
        template = self.client.post(
            "/api/templates",
            json={"title": title, "price": price, "destinations": ["Kyoto"]},
            headers=self.creator,
        ).json()
        if publish:
            template = self.client.post(
                f"/api/templates/{template['id']}/publish", headers=self.creator
            ).json()
        return template

    def test_stats(self):
        sold = self.make_template()
        self.make_template(title="Draft", publish=False)
        self.client.post(f"/api/templates/{sold['id']}/purchase", json={}, headers=self.buyer)
        self.client.post("/api/admin/users/2/verify", headers=self.admin)

        stats = self.client.get("/api/admin/stats", headers=self.admin).json()
        self.assertEqual(stats["templates"], {"total": 2, "published": 1, "pending": 2})
        self.assertEqual(stats["users"], {"total": 3, "creators": 1, "verified": 1})
        self.assertEqual(
            stats["sales"],
            {"total_sales": 1, "total_revenue": 40.0, "total_platform_fees": 12.0},
        )

    def test_stats_require_admin(self):
        self.assertEqual(self.client.get("/api/admin/stats", headers=self.buyer).status_code, 403)

    def test_user_search(self):
        payload = self.client.get("/api/admin/users?search=CREATOR", headers=self.admin).json()
        self.assertEqual(payload["total"], 1)
        self.assertEqual(payload["users"][0]["email"], "creator@example.com")

        admins = self.client.get("/api/admin/users?role=admin", headers=self.admin).json()
        self.assertEqual([u["id"] for u in admins["users"]], [1])

        page = self.client.get("/api/admin/users?limit=1&offset=1", headers=self.admin).json()
        self.assertEqual(page["total"], 3)
        self.assertEqual([u["id"] for u in page["users"]], [2])

    def test_suspend(self):
        response = self.client.post("/api/admin/users/3/suspend", headers=self.admin)
        self.assertTrue(response.json()["suspended"])
        blocked = self.client.get("/api/trips", headers=self.buyer)
        self.assertEqual(blocked.status_code, 403)

        restored = self.client.post(
            "/api/admin/users/3/suspend", json={"suspended": False}, headers=self.admin
        )
        self.assertFalse(restored.json()["suspended"])
        self.assertEqual(self.client.get("/api/trips", headers=self.buyer).status_code, 200)

    def test_cannot_suspend_self_or_superior(self):
        response = self.client.post("/api/admin/users/1/suspend", headers=self.admin)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "You cannot suspend your own account")

        self.client.get("/api/trips", headers=self.superadmin)
        response = self.client.post("/api/admin/users/9/suspend", headers=self.admin)
        self.assertEqual(response.status_code, 403)

    def test_missing_user(self):
        response = self.client.post("/api/admin/users/404/verify", headers=self.admin)
        self.assertEqual(response.status_code, 404)

    def test_set_role(self):
        response = self.client.post(
            "/api/admin/users/2/role", json={"role": "moderator"}, headers=self.admin
        )
        self.assertEqual(response.status_code, 403)
        updated = self.client.post(
            "/api/admin/users/2/role", json={"role": "moderator"}, headers=self.superadmin
        ).json()
        self.assertEqual(updated["role"], "moderator")

    def test_moderation(self):
        first = self.make_template()
        second = self.make_template(title="Osaka")
        pending = self.client.get("/api/admin/templates/pending", headers=self.admin).json()
        self.assertEqual([t["id"] for t in pending], [first["id"], second["id"]])

        approved = self.client.post(
            f"/api/admin/templates/{first['id']}/approve", headers=self.admin
        ).json()
        self.assertEqual(approved["moderation_status"], "approved")

        rejected = self.client.post(
            f"/api/admin/templates/{second['id']}/reject",
            json={"reason": "Missing itinerary"},
            headers=self.admin,
        ).json()
        self.assertEqual(rejected["moderation_status"], "rejected")
        self.assertEqual(rejected["rejection_reason"], "Missing itinerary")

        listed = self.client.get("/api/templates").json()
        self.assertEqual([t["id"] for t in listed], [first["id"]])


class SuperadminTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.superadmin = auth_headers(9, "root@remvana.test", role="super_admin")

    def test_organization_lifecycle(self):
        response = self.client.post(
            "/api/admin/organizations",
            json={"name": "Initech", "domain": "initech.test", "plan": "pro"},
            headers=self.superadmin,
        )
        self.assertEqual(response.status_code, 201)
        organization = response.json()
        self.assertTrue(organization["white_label_enabled"])

        url = f"/api/admin/organizations/{organization['id']}"
        renamed = self.client.put(url, json={"name": "Initrode"}, headers=self.superadmin).json()
        self.assertEqual(renamed["name"], "Initrode")
        self.assertEqual(renamed["domain"], "initech.test")

        downgraded = self.client.put(
            f"{url}/plan", json={"plan": "free"}, headers=self.superadmin
        ).json()
        self.assertEqual(downgraded["plan"], "free")
        self.assertFalse(downgraded["white_label_enabled"])

        listed = self.client.get("/api/admin/organizations", headers=self.superadmin).json()
        self.assertEqual([o["name"] for o in listed], ["Initrode"])

        deleted = self.client.delete(url, headers=self.superadmin)
        self.assertEqual(deleted.json()["message"], "Organization deleted")
        self.assertEqual(self.client.get(url, headers=self.superadmin).status_code, 404)

    def test_delete_with_members(self):
        org_id = self.create_organization()
        self.client.get("/api/trips", headers=auth_headers(4, organization_id=org_id))
        response = self.client.delete(
            f"/api/admin/organizations/{org_id}", headers=self.superadmin
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json()["detail"],
            "Organization still has 1 users; move or remove them first",
        )

    def test_admin_is_not_superadmin(self):
        response = self.client.get(
            "/api/admin/organizations", headers=auth_headers(1, role="admin")
        )
        self.assertEqual(response.status_code, 403)

    def test_dashboard(self):
        self.create_organization(plan="pro")
        self.create_organization(name="Globex", plan="free")
        user = auth_headers(5)
        trip = self.create_trip(user)
        self.client.post(
            "/api/activities",
            json={"trip_id": trip["id"], "title": "Louvre", "date": "2026-06-02"},
            headers=user,
        )
        dashboard = self.client.get("/api/admin/dashboard", headers=self.superadmin).json()
        self.assertEqual(dashboard["organizations"], 2)
        self.assertEqual(dashboard["users"], 2)
        self.assertEqual(dashboard["trips"], 1)
        self.assertEqual(dashboard["activities"], 1)
        self.assertEqual(dashboard["active_cards"], 0)
        self.assertEqual(
            dashboard["plans"],
            {"free": 1, "basic": 0, "pro": 1, "business": 0, "enterprise": 0},
        )


if __name__ == "__main__":
    unittest.main()
