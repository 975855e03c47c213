import unittest
from unittest.mock import patch

from backend.storage import StorageError
from backend.tests.support import ApiTestCase, auth_headers


class WhiteLabelTests(ApiTestCase):
    def organization_admin(self, plan: str):
        org_id = self.create_organization(plan=plan)
        return org_id, auth_headers(1, "admin@acme.com", role="admin", organization_id=org_id)

    def test_default_brand_without_organization(self):
        payload = self.client.get("/api/white-label/config", headers=auth_headers(1)).json()
        self.assertFalse(payload["is_white_label_active"])
        self.assertEqual(payload["config"]["company_name"], "Remvana")
        self.assertEqual(payload["config"]["primary_color"], "#6D5DFB")

    def test_free_plan_requires_upgrade(self):
        _, admin = self.organization_admin("free")
        permissions = self.client.get("/api/white-label/permissions", headers=admin).json()
        self.assertFalse(permissions["can_access_white_label"])
        self.assertTrue(permissions["upgrade_required"])
        self.assertEqual(len(permissions["limitations"]), 2)

        response = self.client.post(
            "/api/white-label/configure", json={"company_name": "Acme"}, headers=admin
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(
            response.json()["detail"], "White label branding requires a Pro plan or higher"
        )

    def test_configure_on_pro(self):
        org_id, admin = self.organization_admin("pro")
        response = self.client.post(
            "/api/white-label/configure",
            json={"company_name": "Acme Journeys", "primary_color": "f00", "logo_url": "https://acme.test/logo.png"},
            headers=admin,
        )
        self.assertEqual(response.status_code, 200, response.text)
        settings = response.json()["settings"]
        self.assertEqual(settings["organization_id"], org_id)
        self.assertEqual(settings["primary_color"], "#FF0000")
        self.assertEqual(settings["secondary_color"], "#6D5DFB")
        self.assertEqual(settings["status"], "approved")

        member = auth_headers(2, organization_id=org_id)
        config = self.client.get("/api/white-label/config", headers=member).json()
        self.assertTrue(config["is_white_label_active"])
        self.assertEqual(config["config"]["company_name"], "Acme Journeys")

        theme = self.client.get("/api/white-label/theme", headers=member).json()
        self.assertEqual(theme["variables"]["--primary"], "0 100% 50%")
        self.assertEqual(theme["variables"]["--primary-foreground"], "210 40% 98%")
        self.assertTrue(theme["css"].startswith(":root {\n"))
        self.assertIn("  --primary: 0 100% 50%;\n", theme["css"])

    def test_invalid_color(self):
        _, admin = self.organization_admin("business")
        response = self.client.post(
            "/api/white-label/configure", json={"primary_color": "blue"}, headers=admin
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Invalid color: blue")

    def test_configure_requires_admin(self):
        org_id = self.create_organization(plan="pro")
        response = self.client.post(
            "/api/white-label/configure",
            json={"company_name": "Acme"},
            headers=auth_headers(2, organization_id=org_id),
        )
        self.assertEqual(response.status_code, 403)

    def test_auto_enable_follows_plan(self):
        org_id, admin = self.organization_admin("free")
        enabled = self.client.post(
            "/api/white-label/auto-enable", json={"plan": "enterprise"}, headers=admin
        ).json()
        self.assertEqual(
            enabled, {"organization_id": org_id, "plan": "enterprise", "white_label_enabled": True}
        )
        downgraded = self.client.post(
            "/api/white-label/auto-enable", json={"plan": "basic"}, headers=admin
        ).json()
        self.assertFalse(downgraded["white_label_enabled"])
        plan = self.client.get("/api/organization/plan", headers=admin).json()
        self.assertEqual(plan["plan"], "basic")

    def test_unknown_plan(self):
        _, admin = self.organization_admin("free")
        response = self.client.post(
            "/api/white-label/auto-enable", json={"plan": "platinum"}, headers=admin
        )
        self.assertEqual(response.status_code, 422)

    def test_onboarding(self):
        _, admin = self.organization_admin("pro")
        status = self.client.get("/api/white-label/onboarding-status", headers=admin).json()
        self.assertTrue(status["plan_eligible"])
        self.assertEqual(status["completed_steps"], 1)
        self.assertEqual(status["total_steps"], 4)

        self.client.post(
            "/api/white-label/configure",
            json={"logo_url": "https://acme.test/logo.png", "custom_domain": "trips.acme.test"},
            headers=admin,
        )
        status = self.client.get("/api/white-label/onboarding-status", headers=admin).json()
        self.assertTrue(status["is_complete"])

    def test_organization_required(self):
        response = self.client.get("/api/organization/plan", headers=auth_headers(1))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "No organization found")


class ProposalTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = auth_headers(1, "agent@example.com", name="Alex Agent")
        self.trip = self.create_trip(self.headers)

    def create(self, **overrides):
        payload = {"client_name": "Jordan Client", "contact_email": "jordan@example.com"}
        payload.update(overrides)
        return self.client.post(
            f"/api/trips/{self.trip['id']}/proposal", json=payload, headers=self.headers
        )

    def test_estimate_and_storage(self):
        response = self.create(message="Looking forward to it")
        self.assertEqual(response.status_code, 201, response.text)
        proposal = response.json()
        self.assertEqual(
            proposal["cost_breakdown"],
            {
                "flights": 800.0,
                "hotels": 360.0,
                "activities": 0.0,
                "meals": 120.0,
                "transportation": 80.0,
                "miscellaneous": 136.0,
            },
        )
        self.assertEqual(proposal["estimated_cost"], 1496.0)

        [(path, body)] = self.storage.stored_objects.items()
        self.assertTrue(path.startswith(f"proposals/{self.trip['id']}/"))
        self.assertEqual(self.storage.content_types[path], "text/html; charset=utf-8")
        self.assertTrue(proposal["url"].startswith(f"https://example.test/storage/{path}"))
        html = body.decode("utf-8")
        self.assertIn("Jordan Client", html)
        self.assertIn("Remvana", html)

        listed = self.client.get(
            f"/api/trips/{self.trip['id']}/proposals", headers=self.headers
        ).json()
        self.assertEqual([p["proposal_id"] for p in listed], [proposal["proposal_id"]])

    def test_budget_is_split(self):
        self.client.put(
            f"/api/trips/{self.trip['id']}", json={"budget": 1000}, headers=self.headers
        )
        proposal = self.create().json()
        self.assertEqual(proposal["estimated_cost"], 1000.0)
        self.assertEqual(proposal["cost_breakdown"]["flights"], 400.0)
        self.assertEqual(proposal["cost_breakdown"]["miscellaneous"], 20.0)

    def test_client_input_is_escaped(self):
        self.create(client_name="<script>alert(1)</script>")
        [body] = self.storage.stored_objects.values()
        self.assertNotIn(b"<script>alert(1)</script>", body)

    def test_other_users_cannot_propose(self):
        response = self.client.post(
            f"/api/trips/{self.trip['id']}/proposal",
            json={"client_name": "Jordan"},
            headers=auth_headers(2),
        )
        self.assertEqual(response.status_code, 403)

    def test_storage_outage_returns_503(self):
        with patch.object(
            self.storage, "upload_text", side_effect=StorageError("bucket down")
        ):
            response = self.create()
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["detail"], "Proposal storage is unavailable")
        listed = self.client.get(
            f"/api/trips/{self.trip['id']}/proposals", headers=self.headers
        ).json()
        self.assertEqual(listed, [])


if __name__ == "__main__":
    unittest.main()
