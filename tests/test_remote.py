import unittest
from unittest import mock

import remote
from portal_case import ORIGIN, PortalTestCase
from security import _hash_password


class FakeAPIError(Exception):
    def __init__(self, code, message="remote error"):
        super().__init__(message)
        self.code = code


def _client_returning(rows=None, lookup_error=None, insert_error=None):
    client = mock.MagicMock()
    query = client.table.return_value.select.return_value.eq.return_value.eq.return_value.limit.return_value
    if lookup_error:
        query.execute.side_effect = lookup_error
    else:
        query.execute.return_value = mock.MagicMock(data=rows or [])
    if insert_error:
        client.table.return_value.insert.return_value.execute.side_effect = insert_error
    return client


class RowMappingTests(unittest.TestCase):
    def test_to_remote_row_stores_hash_not_plaintext(self):
        row = remote.to_remote_row({
            "name": "Dana", "email": "dana@example.com", "password_hash": "salt:dk",
            "user_type": "doctor", "specialization": "", "medical_license": "MD1", "is_verified": 1,
        })
        self.assertEqual(row["password"], "salt:dk")
        self.assertIsNone(row["specialization"])
        self.assertIs(row["is_verified"], True)

    def test_from_remote_row_accepts_camel_case_user_type(self):
        user = remote.from_remote_row({"name": "Pat", "email": " Pat@Example.com ", "password": "h",
                                       "userType": "patient"})
        self.assertEqual(user["email"], "pat@example.com")
        self.assertEqual(user["user_type"], "patient")
        self.assertEqual(user["password_hash"], "h")
        self.assertEqual(user["is_verified"], 0)

    def test_find_user_swallows_remote_errors(self):
        client = _client_returning(lookup_error=RuntimeError("network down"))
        with mock.patch("remote.get_client", return_value=client):
            self.assertIsNone(remote.find_user("pat@example.com", "patient"))

    def test_insert_user_duplicate(self):
        client = _client_returning(insert_error=FakeAPIError("23505"))
        with mock.patch("remote.get_client", return_value=client):
            with self.assertRaises(remote.RemoteDuplicateError):
                remote.insert_user({"email": "pat@example.com"})

    def test_unconfigured_client_is_none(self):
        with mock.patch("config.SUPABASE_URL", ""), mock.patch("config.SUPABASE_KEY", ""):
            self.assertIsNone(remote.get_client())


class RemoteAuthIntegrationTests(PortalTestCase):
    def _signup_data(self, email="pat@example.com"):
        return {"name": "Pat", "email": email, "new_password": "password123",
                "confirm_password": "password123", "user_type": "patient"}

    def test_signup_inserts_remote_row(self):
        client = _client_returning()
        with mock.patch("remote.get_client", return_value=client):
            resp = self.new_client().post("/signup", headers=ORIGIN, data=self._signup_data(),
                                          follow_redirects=False)
        self.assertEqual(resp.headers["location"], "/dashboard")
        inserted = client.table.return_value.insert.call_args[0][0]
        self.assertEqual(inserted["email"], "pat@example.com")
        self.assertNotEqual(inserted["password"], "password123")
        self.assertEqual(self.count("SELECT COUNT(*) FROM users"), 1)

    def test_remote_duplicate_blocks_signup(self):
        client = _client_returning(insert_error=FakeAPIError("23505"))
        with mock.patch("remote.get_client", return_value=client):
            resp = self.new_client().post("/signup", headers=ORIGIN, data=self._signup_data(),
                                          follow_redirects=False)
        self.assertIn("User+with+this+email+already+exists", resp.headers["location"])
        self.assertEqual(self.count("SELECT COUNT(*) FROM users"), 0)

    def test_other_remote_errors_fall_back_to_local(self):
        client = _client_returning(insert_error=FakeAPIError("PGRST301"))
        with mock.patch("remote.get_client", return_value=client):
            resp = self.new_client().post("/signup", headers=ORIGIN, data=self._signup_data(),
                                          follow_redirects=False)
        self.assertEqual(resp.headers["location"], "/dashboard")
        self.assertEqual(self.count("SELECT COUNT(*) FROM users"), 1)

    def test_login_mirrors_remote_user(self):
        row = {"name": "Remote Rita", "email": "rita@example.com", "password": _hash_password("password123"),
               "user_type": "patient", "specialization": None, "medical_license": None,
               "is_verified": False}
        client = _client_returning(rows=[row])
        browser = self.new_client()
        with mock.patch("remote.get_client", return_value=client):
            resp = browser.post(
                "/login", headers=ORIGIN, follow_redirects=False,
                data={"email": "rita@example.com", "password": "password123", "user_type": "patient"},
            )
            self.assertEqual(resp.headers["location"], "/dashboard")
        self.assertEqual(self.count("SELECT COUNT(*) FROM users WHERE email = 'rita@example.com'"), 1)
        self.assertEqual(browser.get("/api/dashboard").json()["name"], "Remote Rita")

        with mock.patch("remote.get_client", return_value=client):
            bad = self.new_client().post(
                "/login", headers=ORIGIN, follow_redirects=False,
                data={"email": "rita@example.com", "password": "wrong-pass", "user_type": "patient"},
            )
        self.assertIn("Invalid+credentials", bad.headers["location"])

    def _login(self, email, password):
        return self.new_client().post(
            "/login", headers=ORIGIN, follow_redirects=False,
            data={"email": email, "password": password, "user_type": "patient"},
        )

    def test_password_reset_updates_remote_row(self):
        row = {"name": "Remote Rita", "email": "rita@example.com", "password": _hash_password("password123"),
               "user_type": "patient", "is_verified": False}
        client = _client_returning(rows=[row])

        def apply_update(values):
            row.update(values)
            return mock.DEFAULT

        client.table.return_value.update.side_effect = apply_update
        with mock.patch("remote.get_client", return_value=client):
            self.assertEqual(self._login("rita@example.com", "password123").headers["location"], "/dashboard")
            browser = self.new_client()
            browser.post("/forgot-password", headers=ORIGIN, data={"email": "rita@example.com"},
                         follow_redirects=False)
            with self._db.get_db() as conn:
                token = conn.execute("SELECT token FROM password_reset_tokens").fetchone()["token"]
            resp = browser.post(
                "/reset-password", headers=ORIGIN, follow_redirects=False,
                data={"token": token, "new_password": "brandnew99", "confirm_password": "brandnew99"},
            )
            self.assertIn("/login?success=", resp.headers["location"])

            self.assertEqual(self._login("rita@example.com", "brandnew99").headers["location"], "/dashboard")
            self.assertIn("Invalid+credentials", self._login("rita@example.com", "password123").headers["location"])

        self.assertNotEqual(row["password"], "brandnew99")
        eq = client.table.return_value.update.return_value.eq
        eq.assert_called_with("email", "rita@example.com")

    def test_remote_password_update_failure_is_not_raised(self):
        client = _client_returning()
        client.table.return_value.update.return_value.eq.return_value.eq.return_value.execute.side_effect = (
            RuntimeError("timeout")
        )
        with mock.patch("remote.get_client", return_value=client):
            self.assertFalse(remote.update_password("pat@example.com", "patient", "salt:dk"))

    def test_login_falls_back_to_local_when_remote_fails(self):
        self.patient(email="pat@example.com")
        client = _client_returning(lookup_error=RuntimeError("timeout"))
        with mock.patch("remote.get_client", return_value=client):
            resp = self.new_client().post(
                "/login", headers=ORIGIN, follow_redirects=False,
                data={"email": "pat@example.com", "password": "password123", "user_type": "patient"},
            )
        self.assertEqual(resp.headers["location"], "/dashboard")


if __name__ == "__main__":
    unittest.main()
