import unittest

from backend.auth import create_access_token
from backend.db import UserRow
from backend.tests.support import ApiTestCase, auth_headers


class AuthenticationTests(ApiTestCase):
    def test_missing_token_is_rejected(self):
        response = self.client.get("/api/trips")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["detail"], "Authentication required")

    def test_invalid_token_is_rejected(self):
        response = self.client.get(
            "/api/trips", headers={"Authorization": "Bearer not-a-token"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["detail"], "Invalid or expired token")

    def test_expired_token_is_rejected(self):
        token = create_access_token(1, "old@example.com", expires_in=-10)
        response = self.client.get(
            "/api/trips", headers={"Authorization": f"Bearer {token}"}
        )
        self.assertEqual(response.status_code, 401)

    def test_first_request_creates_user(self):
        response = self.client.get(
            "/api/trips", headers=auth_headers(5, "new@example.com", name="New User")
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), [])
        with self.db.session() as session:
            user = session.get(UserRow, 5)
        self.assertEqual(user.email, "new@example.com")
        self.assertEqual(user.display_name, "New User")
        self.assertEqual(user.role, "user")

    def test_suspended_user_is_rejected(self):
        headers = auth_headers(9)
        self.client.get("/api/trips", headers=headers)
        with self.db.session() as session:
            session.get(UserRow, 9).suspended = True
        response = self.client.get("/api/trips", headers=headers)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["detail"], "Account suspended")

    def test_role_check(self):
        response = self.client.get("/api/admin/stats", headers=auth_headers(1))
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["detail"], "Insufficient permissions")

    def test_super_admin_alias_is_accepted(self):
        response = self.client.get(
            "/api/admin/dashboard", headers=auth_headers(1, role="super_admin")
        )
        self.assertEqual(response.status_code, 200)


class ErrorHandlingTests(ApiTestCase):
    def test_service_errors_map_to_status_codes(self):
        response = self.client.get("/api/trips/999", headers=auth_headers(1))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"detail": "Trip not found"})

    def test_validation_errors_are_422(self):
        response = self.client.post(
            "/api/trips", json={"title": ""}, headers=auth_headers(1)
        )
        self.assertEqual(response.status_code, 422)


if __name__ == "__main__":
    unittest.main()
