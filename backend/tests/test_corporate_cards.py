import hashlib
import hmac
import json
import time
import unittest

from backend.config import Settings, get_settings
from backend.tests.support import ApiTestCase, auth_headers

WEBHOOK_SECRET = "whsec_test_secret"


class CorporateCardTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.org_id = self.create_organization(plan="business")
        self.admin = auth_headers(1, "admin@acme.com", role="admin", organization_id=self.org_id)
        self.member = auth_headers(2, "traveler@acme.com", organization_id=self.org_id)
        # Users are recorded the first time their token is seen.
        self.client.get("/api/trips", headers=self.admin)
        self.client.get("/api/trips", headers=self.member)

    def issue(self, **overrides):
        payload = {
            "user_email": "traveler@acme.com",
            "spend_limit": 2500,
            "cardholder_name": "Tess Traveler",
            "department": "Sales",
        }
        payload.update(overrides)
        return self.client.post("/api/corporate-card/issue", json=payload, headers=self.admin)


class CardTests(CorporateCardTestCase):
    def test_issue(self):
        response = self.issue()
        self.assertEqual(response.status_code, 201, response.text)
        card = response.json()
        self.assertEqual(card["last4"], "4241")
        self.assertEqual(card["status"], "active")
        self.assertEqual(card["user_id"], 2)
        self.assertEqual(card["current_spend"], 0.0)
        issued = self.card_issuer.cards["ic_test_1"]
        self.assertEqual(
            issued["controls"]["spending_limits"], [{"amount": 250000, "interval": "monthly"}]
        )
        self.assertEqual(issued["metadata"]["organization_id"], str(self.org_id))

    def test_issue_requires_admin(self):
        self.assertEqual(
            self.client.post(
                "/api/corporate-card/issue",
                json={"user_email": "traveler@acme.com", "spend_limit": 50, "cardholder_name": "T"},
                headers=self.member,
            ).status_code,
            403,
        )

    def test_issue_unknown_user(self):
        response = self.issue(user_email="nobody@acme.com")
        self.assertEqual(response.status_code, 404)

    def test_issue_outside_organization(self):
        self.client.get("/api/trips", headers=auth_headers(3, "stranger@example.com"))
        response = self.issue(user_email="stranger@example.com")
        self.assertEqual(response.status_code, 403)

    def test_list_and_user_cards(self):
        card = self.issue().json()
        cards = self.client.get("/api/corporate-card/cards", headers=self.admin).json()
        self.assertEqual([c["id"] for c in cards["cards"]], [card["id"]])
        own = self.client.get("/api/corporate-card/user/2", headers=self.member).json()
        self.assertEqual(len(own["cards"]), 1)
        response = self.client.get("/api/corporate-card/user/1", headers=self.member)
        self.assertEqual(response.status_code, 403)

    def test_freeze_and_cancel(self):
        card = self.issue().json()
        frozen = self.client.post(
            f"/api/corporate-card/{card['id']}/freeze", json={"freeze": True}, headers=self.admin
        ).json()
        self.assertEqual(frozen["status"], "frozen")
        self.assertEqual(self.card_issuer.cards["ic_test_1"]["card"].status, "inactive")

        thawed = self.client.post(
            f"/api/corporate-card/{card['id']}/freeze", json={"freeze": False}, headers=self.admin
        ).json()
        self.assertEqual(thawed["status"], "active")

        canceled = self.client.delete(f"/api/corporate-card/{card['id']}", headers=self.admin)
        self.assertEqual(canceled.json()["status"], "canceled")
        response = self.client.post(
            f"/api/corporate-card/{card['id']}/freeze", json={"freeze": True}, headers=self.admin
        )
        self.assertEqual(response.status_code, 400)

    def test_update_limit(self):
        card = self.issue().json()
        updated = self.client.put(
            f"/api/corporate-card/{card['id']}",
            json={"spend_limit": 500, "interval": "weekly"},
            headers=self.admin,
        ).json()
        self.assertEqual(updated["spend_limit"], 500.0)
        self.assertEqual(updated["interval"], "weekly")
        self.assertEqual(
            self.card_issuer.cards["ic_test_1"]["controls"]["spending_limits"],
            [{"amount": 50000, "interval": "weekly"}],
        )

    def test_other_organization_cannot_see_card(self):
        card = self.issue().json()
        other_org = self.create_organization(name="Globex")
        outsider = auth_headers(7, role="admin", organization_id=other_org)
        response = self.client.get(
            f"/api/corporate-card/{card['id']}/transactions", headers=outsider
        )
        self.assertEqual(response.status_code, 403)


class ExpenseTests(CorporateCardTestCase):
    def expense(self, headers=None, **overrides):
        payload = {
            "merchant_name": "Cafe de Flore",
            "amount": 42.5,
            "transaction_date": "2026-06-02",
            "expense_category": "meals",
        }
        payload.update(overrides)
        return self.client.post("/api/expenses", json=payload, headers=headers or self.member)

    def test_small_expenses_are_auto_approved(self):
        response = self.expense()
        self.assertEqual(response.status_code, 201)
        expense = response.json()
        self.assertEqual(expense["status"], "pending")
        self.assertEqual(expense["approval_status"], "auto_approved")
        self.assertEqual(expense["organization_id"], self.org_id)

    def test_approval(self):
        expense = self.expense(amount=15000, expense_category="lodging").json()
        self.assertEqual(expense["approval_status"], "pending")

        response = self.client.post(
            "/api/expenses/approve",
            json={"expense_id": expense["id"], "status": "approved", "approved_amount": 14000},
            headers=self.member,
        )
        self.assertEqual(response.status_code, 403)

        approved = self.client.post(
            "/api/expenses/approve",
            json={"expense_id": expense["id"], "status": "approved", "approved_amount": 14000},
            headers=self.admin,
        ).json()
        self.assertEqual(approved["status"], "approved")
        self.assertEqual(approved["approved_amount"], 14000.0)
        self.assertEqual(approved["approved_by"], 1)

    def test_rejection_reason(self):
        expense = self.expense(amount=20000).json()
        rejected = self.client.post(
            "/api/expenses/approve",
            json={"expense_id": expense["id"], "status": "rejected"},
            headers=self.admin,
        ).json()
        self.assertEqual(rejected["rejection_reason"], "Rejected")
        self.assertIsNone(rejected["approved_amount"])

    def test_listing(self):
        self.expense()
        self.expense(amount=20000, expense_category="lodging")
        self.expense(headers=self.admin, merchant_name="Taxi", expense_category="transport")

        own = self.client.get("/api/expenses", headers=self.member).json()
        self.assertEqual(own["total"], 2)
        everyone = self.client.get("/api/expenses", headers=self.admin).json()
        self.assertEqual(everyone["total"], 3)
        pending = self.client.get("/api/expenses?status=pending", headers=self.admin).json()
        self.assertEqual(pending["total"], 3)
        auto = self.client.get("/api/expenses?status=auto_approved", headers=self.admin).json()
        self.assertEqual(auto["total"], 2)
        lodging = self.client.get("/api/expenses?category=lodging", headers=self.admin).json()
        self.assertEqual(lodging["total"], 1)

    def test_card_of_another_user(self):
        card = self.issue().json()
        other = auth_headers(3, "colleague@acme.com", organization_id=self.org_id)
        response = self.expense(headers=other, card_id=card["id"])
        self.assertEqual(response.status_code, 403)

    def test_spend_analytics(self):
        card = self.issue().json()
        self.expense(card_id=card["id"], amount=100)
        self.expense(card_id=card["id"], amount=50, expense_category="transport")
        rejected = self.expense(amount=20000).json()
        self.client.post(
            "/api/expenses/approve",
            json={"expense_id": rejected["id"], "status": "rejected"},
            headers=self.admin,
        )
        self.expense(amount=30000, transaction_date="2026-01-15")

        report = self.client.get(
            "/api/corporate-card/analytics?start_date=2026-06-01&end_date=2026-06-30",
            headers=self.admin,
        ).json()
        self.assertEqual(report["total_spend"], 150.0)
        self.assertEqual(report["expense_count"], 2)
        self.assertEqual(report["average_expense"], 75.0)
        self.assertEqual(report["by_category"][0]["key"], "meals")
        self.assertEqual(report["by_card"][0]["label"], "**** 4241")
        self.assertEqual(report["by_user"][0]["label"], "traveler@acme.com")
        self.assertEqual(report["pending_approvals"], 0)


class WebhookTests(CorporateCardTestCase):
    def setUp(self):
        super().setUp()
        self.client.app.dependency_overrides[get_settings] = lambda: Settings(
            stripe_issuing_webhook_secret=WEBHOOK_SECRET
        )
        self.addCleanup(self.client.app.dependency_overrides.clear)
        self.card = self.issue().json()

    def send(self, event: dict, secret: str = WEBHOOK_SECRET):
        body = json.dumps(event)
        timestamp = int(time.time())
        digest = hmac.new(
            secret.encode("utf-8"), f"{timestamp}.{body}".encode("utf-8"), hashlib.sha256
        ).hexdigest()
        return self.client.post(
            "/api/webhooks/card-issuing",
            content=body,
            headers={
                "Content-Type": "application/json",
                "Stripe-Signature": f"t={timestamp},v1={digest}",
            },
        )

    def transaction_event(self, transaction_id="ipi_1", amount=-1250):
        return {
            "type": "issuing_transaction.created",
            "data": {
                "object": {
                    "id": transaction_id,
                    "card": "ic_test_1",
                    "amount": amount,
                    "currency": "eur",
                    "merchant_data": {"name": "SNCF", "category": "railroads"},
                }
            },
        }

    def test_transaction_is_recorded_once(self):
        self.assertEqual(self.send(self.transaction_event()).json()["message"], "received")
        self.send(self.transaction_event())
        transactions = self.client.get(
            f"/api/corporate-card/{self.card['id']}/transactions", headers=self.member
        ).json()
        self.assertEqual(transactions["total"], 1)
        transaction = transactions["transactions"][0]
        self.assertEqual(transaction["amount"], 12.5)
        self.assertEqual(transaction["currency"], "EUR")
        self.assertEqual(transaction["merchant_name"], "SNCF")
        cards = self.client.get("/api/corporate-card/cards", headers=self.admin).json()
        self.assertEqual(cards["cards"][0]["current_spend"], 12.5)

    def test_card_status_sync(self):
        self.client.post(
            f"/api/corporate-card/{self.card['id']}/freeze", json={"freeze": True}, headers=self.admin
        )
        event = {"type": "issuing_card.updated", "data": {"object": {"id": "ic_test_1", "status": "inactive"}}}
        self.send(event)
        cards = self.client.get("/api/corporate-card/cards", headers=self.admin).json()
        self.assertEqual(cards["cards"][0]["status"], "frozen")

        event["data"]["object"]["status"] = "canceled"
        self.send(event)
        cards = self.client.get("/api/corporate-card/cards", headers=self.admin).json()
        self.assertEqual(cards["cards"][0]["status"], "canceled")

    def test_bad_signature(self):
        response = self.send(self.transaction_event(), secret="whsec_wrong")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Invalid webhook signature")

    def test_missing_signature(self):
        response = self.client.post("/api/webhooks/card-issuing", content=b"{}")
        self.assertEqual(response.json()["detail"], "Missing signature")

    def test_unconfigured_secret(self):
        self.client.app.dependency_overrides[get_settings] = lambda: Settings(
            stripe_issuing_webhook_secret=None
        )
        response = self.send(self.transaction_event())
        self.assertEqual(response.json()["detail"], "Webhook secret is not configured")


if __name__ == "__main__":
    unittest.main()
