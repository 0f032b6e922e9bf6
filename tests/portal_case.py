import importlib
import sys
import tempfile
import unittest
from datetime import date, timedelta
from unittest import mock

from fastapi.testclient import TestClient

ORIGIN = {"origin": "http://testserver"}


def future_date(days: int = 7) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


class PortalTestCase(unittest.TestCase):
    """Fresh app on a temporary database; remote auth disabled unless a test patches it."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.db_path = f"{self.tmp.name}/test.db"

        import config
        import db
        import security

        self._config = config
        self._db = db
        self._old_config_db_path = config.DB_PATH
        self._old_db_db_path = db.DB_PATH

        config.DB_PATH = self.db_path
        db.DB_PATH = self.db_path
        security._reset_rate_limits()

        self._remote_patch = mock.patch("remote.get_client", return_value=None)
        self._remote_patch.start()

        sys.modules.pop("main", None)
        self.main = importlib.import_module("main")
        self._clients = []

    def tearDown(self):
        for client in self._clients:
            client.close()
        self._remote_patch.stop()
        self._config.DB_PATH = self._old_config_db_path
        self._db.DB_PATH = self._old_db_db_path
        sys.modules.pop("main", None)
        self.tmp.cleanup()

    def new_client(self) -> TestClient:
        client = TestClient(self.main.app)
        self._clients.append(client)
        return client

    def signup(self, name, email, user_type="patient", client=None, **extra):
        client = client or self.new_client()
        data = {
            "name": name,
            "email": email,
            "new_password": "password123",
            "confirm_password": "password123",
            "user_type": user_type,
        }
        data.update(extra)
        resp = client.post("/signup", headers=ORIGIN, data=data, follow_redirects=False)
        self.assertEqual(resp.status_code, 303)
        return client

    def patient(self, name="Pat Patient", email="pat@example.com"):
        return self.signup(name, email)

    def doctor(self, name="Dana Doctor", email="dana@example.com", specialization="Oncology"):
        return self.signup(
            name, email, user_type="doctor", specialization=specialization, medical_license="MD999"
        )

    def api_post(self, client, path, json=None):
        headers = dict(ORIGIN)
        headers["x-csrf-token"] = client.cookies.get("csrf_token") or ""
        return client.post(path, headers=headers, json=json if json is not None else {})

    def user_id(self, email):
        with self._db.get_db() as conn:
            return conn.execute("SELECT id FROM users WHERE email = ?", (email,)).fetchone()["id"]

    def count(self, sql, params=()):
        with self._db.get_db() as conn:
            return conn.execute(sql, params).fetchone()[0]
