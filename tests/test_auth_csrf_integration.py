import unittest

from portal_case import ORIGIN, PortalTestCase


class AuthCsrfIntegrationTests(PortalTestCase):
    def test_api_requires_auth(self):
        client = self.new_client()
        resp = client.get("/api/goals")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"error": "unauthorized"})

    def test_pages_redirect_to_login_without_session(self):
        resp = self.new_client().get("/dashboard", follow_redirects=False)
        self.assertEqual(resp.status_code, 303)
        self.assertEqual(resp.headers["location"], "/login")

    def test_api_post_requires_csrf_header(self):
        client = self.patient()
        payload = {"goal": "Sleep eight hours", "target_date": "2030-01-01", "category": "Sleep Quality"}

        without_csrf = client.post("/api/goals", headers=ORIGIN, json=payload)
        self.assertEqual(without_csrf.status_code, 403)
        self.assertEqual(without_csrf.json(), {"error": "forbidden"})

        self.assertTrue(client.cookies.get("csrf_token"))
        with_csrf = self.api_post(client, "/api/goals", payload)
        self.assertEqual(with_csrf.status_code, 200)
        self.assertTrue(with_csrf.json()["ok"])

    def test_cross_origin_form_post_is_rejected(self):
        client = self.new_client()
        resp = client.post(
            "/signup",
            headers={"origin": "http://evil.example"},
            data={"name": "Mallory", "email": "m@example.com", "new_password": "password123",
                  "confirm_password": "password123", "user_type": "patient"},
            follow_redirects=False,
        )
        self.assertEqual(resp.status_code, 303)
        self.assertIn("Forbidden", resp.headers["location"])
        self.assertEqual(self.count("SELECT COUNT(*) FROM users"), 0)

    def test_signup_lands_on_role_home(self):
        patient = self.new_client()
        resp = patient.post(
            "/signup",
            headers=ORIGIN,
            data={"name": "Pat", "email": "Pat@Example.com", "new_password": "password123",
                  "confirm_password": "password123", "user_type": "patient"},
            follow_redirects=False,
        )
        self.assertEqual(resp.headers["location"], "/dashboard")
        self.assertEqual(self.count("SELECT COUNT(*) FROM users WHERE email = 'pat@example.com'"), 1)

        doctor = self.new_client()
        resp = doctor.post(
            "/signup",
            headers=ORIGIN,
            data={"name": "Dana", "email": "dana@example.com", "new_password": "password123",
                  "confirm_password": "password123", "user_type": "doctor",
                  "specialization": "Oncology", "medical_license": "MD1"},
            follow_redirects=False,
        )
        self.assertEqual(resp.headers["location"], "/doctor")

    def test_signup_validation(self):
        client = self.new_client()
        cases = [
            ({"new_password": "short", "confirm_password": "short"}, "at+least+8"),
            ({"confirm_password": "different123"}, "Passwords+do+not+match"),
            ({"email": ""}, "fill+in+all+fields"),
        ]
        for override, expected in cases:
            data = {"name": "Pat", "email": "pat@example.com", "new_password": "password123",
                    "confirm_password": "password123", "user_type": "patient"}
            data.update(override)
            resp = client.post("/signup", headers=ORIGIN, data=data, follow_redirects=False)
            self.assertIn(expected, resp.headers["location"])
        self.assertEqual(self.count("SELECT COUNT(*) FROM users"), 0)

    def test_duplicate_email_rejected(self):
        self.patient(email="pat@example.com")
        resp = self.new_client().post(
            "/signup",
            headers=ORIGIN,
            data={"name": "Other", "email": "pat@example.com", "new_password": "password123",
                  "confirm_password": "password123", "user_type": "doctor"},
            follow_redirects=False,
        )
        self.assertIn("User+with+this+email+already+exists", resp.headers["location"])
        self.assertEqual(self.count("SELECT COUNT(*) FROM users"), 1)

    def test_login_checks_password_and_user_type(self):
        self.patient(email="pat@example.com")
        client = self.new_client()

        wrong_pw = client.post(
            "/login", headers=ORIGIN, follow_redirects=False,
            data={"email": "pat@example.com", "password": "nope12345", "user_type": "patient"},
        )
        self.assertIn("Invalid+credentials", wrong_pw.headers["location"])

        wrong_type = client.post(
            "/login", headers=ORIGIN, follow_redirects=False,
            data={"email": "pat@example.com", "password": "password123", "user_type": "doctor"},
        )
        self.assertIn("Invalid+credentials", wrong_type.headers["location"])

        ok = client.post(
            "/login", headers=ORIGIN, follow_redirects=False,
            data={"email": "pat@example.com", "password": "password123", "user_type": "patient"},
        )
        self.assertEqual(ok.headers["location"], "/dashboard")
        self.assertEqual(client.get("/api/dashboard").status_code, 200)

    def test_logout_clears_session(self):
        client = self.patient()
        client.post("/logout", headers=ORIGIN, follow_redirects=False)
        self.assertEqual(client.get("/api/dashboard").status_code, 401)

    def test_role_guard(self):
        patient = self.patient()
        doctor = self.doctor()

        self.assertEqual(patient.get("/api/doctor/patients").status_code, 403)
        self.assertEqual(doctor.get("/api/goals").status_code, 403)
        # /api/doctors lists doctors for booking and is not a doctor-only path
        self.assertEqual(patient.get("/api/doctors").status_code, 200)

        resp = doctor.get("/dashboard", follow_redirects=False)
        self.assertEqual(resp.headers["location"], "/doctor")
        resp = patient.get("/doctor", follow_redirects=False)
        self.assertEqual(resp.headers["location"], "/dashboard")

        self.assertEqual(patient.get("/api/notifications").status_code, 200)
        self.assertEqual(doctor.get("/api/notifications").status_code, 200)

    def test_password_reset_flow(self):
        self.patient(email="pat@example.com")
        client = self.new_client()
        resp = client.post(
            "/forgot-password", headers=ORIGIN, data={"email": "pat@example.com"}, follow_redirects=False
        )
        self.assertEqual(resp.headers["location"], "/forgot-password?sent=1")
        unknown = client.post(
            "/forgot-password", headers=ORIGIN, data={"email": "who@example.com"}, follow_redirects=False
        )
        self.assertEqual(unknown.headers["location"], "/forgot-password?sent=1")

        with self._db.get_db() as conn:
            token = conn.execute("SELECT token FROM password_reset_tokens").fetchone()["token"]
        resp = client.post(
            "/reset-password", headers=ORIGIN, follow_redirects=False,
            data={"token": token, "new_password": "newpassword1", "confirm_password": "newpassword1"},
        )
        self.assertIn("/login?success=", resp.headers["location"])
        self.assertEqual(self.count("SELECT COUNT(*) FROM password_reset_tokens"), 0)

        ok = client.post(
            "/login", headers=ORIGIN, follow_redirects=False,
            data={"email": "pat@example.com", "password": "newpassword1", "user_type": "patient"},
        )
        self.assertEqual(ok.headers["location"], "/dashboard")


if __name__ == "__main__":
    unittest.main()
