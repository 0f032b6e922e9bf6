import unittest
from datetime import date, timedelta
from unittest import mock

import workflow
from portal_case import ORIGIN, PortalTestCase, future_date


class AppointmentFlowTests(PortalTestCase):
    def setUp(self):
        super().setUp()
        self.pat = self.patient(name="Pat Patient", email="pat@example.com")
        self.doc = self.doctor(name="Dana Doctor", email="dana@example.com")
        self.doctor_id = self.user_id("dana@example.com")
        self.patient_id = self.user_id("pat@example.com")

    def _book(self, client=None, **overrides):
        payload = {
            "doctor_id": self.doctor_id,
            "date": future_date(),
            "time": "10:30",
            "reason": "Discuss my assessment",
        }
        payload.update(overrides)
        return self.api_post(client or self.pat, "/api/appointments", payload)

    def test_doctor_list_defaults_specialization(self):
        self.signup("Gene General", "gene@example.com", user_type="doctor")
        doctors = self.pat.get("/api/doctors").json()["doctors"]
        by_email = {d["email"]: d for d in doctors}
        self.assertEqual(by_email["dana@example.com"]["specialization"], "Oncology")
        self.assertEqual(by_email["gene@example.com"]["specialization"], "General Medicine")

    def test_booking_creates_one_appointment_and_one_doctor_notification(self):
        resp = self._book()
        self.assertEqual(resp.status_code, 200)
        appt = resp.json()["appointment"]
        self.assertEqual(appt["status"], "scheduled")
        self.assertEqual(appt["doctor_name"], "Dana Doctor")
        self.assertEqual(appt["doctor_specialization"], "Oncology")

        self.assertEqual(self.count("SELECT COUNT(*) FROM appointments"), 1)
        notes = self.doc.get("/api/notifications").json()
        self.assertEqual(notes["unread"], 1)
        self.assertEqual(notes["notifications"][0]["type"], "appointment_request")
        self.assertEqual(notes["notifications"][0]["related_id"], str(appt["id"]))
        self.assertIn("Pat Patient", notes["notifications"][0]["message"])
        self.assertEqual(self.pat.get("/api/notifications").json()["unread"], 0)

    def test_booking_validation(self):
        cases = [
            ({"reason": ""}, "Please fill in all fields"),
            ({"doctor_id": 9999}, "Selected doctor not found"),
            ({"doctor_id": self.patient_id}, "Selected doctor not found"),
            ({"date": "01/02/2030"}, "Invalid date format"),
            ({"time": "half past ten"}, "Invalid time format"),
            ({"date": (date.today() - timedelta(days=1)).isoformat()}, "Appointment date cannot be in the past"),
        ]
        for override, expected in cases:
            resp = self._book(**override)
            self.assertEqual(resp.status_code, 400, override)
            self.assertEqual(resp.json()["error"], expected)
        self.assertEqual(self.count("SELECT COUNT(*) FROM appointments"), 0)
        self.assertEqual(self.count("SELECT COUNT(*) FROM notifications"), 0)

    def test_accept_notifies_patient(self):
        appt_id = self._book().json()["appointment"]["id"]
        resp = self.api_post(self.doc, f"/api/doctor/appointments/{appt_id}/accept")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["appointment"]["status"], "accepted")

        notes = self.pat.get("/api/notifications").json()["notifications"]
        self.assertEqual(len(notes), 1)
        self.assertEqual(notes[0]["type"], "appointment_accepted")
        self.assertEqual(notes[0]["title"], "Appointment Confirmed")
        self.assertIn("10:30", notes[0]["message"])

        again = self.api_post(self.doc, f"/api/doctor/appointments/{appt_id}/reject")
        self.assertEqual(again.status_code, 400)
        self.assertEqual(again.json()["error"], "Appointment is already accepted")
        self.assertEqual(len(self.pat.get("/api/notifications").json()["notifications"]), 1)

    def test_reject_notifies_patient(self):
        appt_id = self._book().json()["appointment"]["id"]
        resp = self.api_post(self.doc, f"/api/doctor/appointments/{appt_id}/reject")
        self.assertEqual(resp.json()["appointment"]["status"], "cancelled")
        notes = self.pat.get("/api/notifications").json()["notifications"]
        self.assertEqual([n["type"] for n in notes], ["appointment_rejected"])
        self.assertEqual(notes[0]["title"], "Appointment Declined")

    def test_only_own_doctor_may_respond(self):
        other = self.doctor(name="Olga Other", email="olga@example.com")
        appt_id = self._book().json()["appointment"]["id"]
        resp = self.api_post(other, f"/api/doctor/appointments/{appt_id}/accept")
        self.assertEqual(resp.status_code, 404)
        unknown = self.api_post(self.doc, f"/api/doctor/appointments/{appt_id}/approve")
        self.assertEqual(unknown.status_code, 400)
        self.assertEqual(self.pat.get("/api/appointments").json()["appointments"][0]["status"], "scheduled")

    def _respond_with_stale_read(self, conn, stale, action):
        real_get = workflow.get_appointment
        reads = iter([stale])

        def get_appointment(c, appointment_id):
            return next(reads, None) or real_get(c, appointment_id)

        with mock.patch("workflow.get_appointment", side_effect=get_appointment):
            return workflow.respond_to_appointment(conn, self._doctor_row(), stale["id"], action)

    def _doctor_row(self):
        with self._db.get_db() as conn:
            return conn.execute("SELECT * FROM users WHERE id = ?", (self.doctor_id,)).fetchone()

    def test_concurrent_responses_transition_once(self):
        appt_id = self._book().json()["appointment"]["id"]
        with self._db.get_db() as first, self._db.get_db() as second:
            stale = workflow.get_appointment(second, appt_id)
            error, _ = workflow.respond_to_appointment(first, self._doctor_row(), appt_id, "accept")
            self.assertIsNone(error)

            error, appointment = self._respond_with_stale_read(second, stale, "reject")
            self.assertEqual(error, "Appointment is already accepted")
            self.assertIsNone(appointment)

        self.assertEqual(self.count("SELECT COUNT(*) FROM notifications WHERE user_id = ?", (self.patient_id,)), 1)
        self.assertEqual(self.pat.get("/api/appointments").json()["appointments"][0]["status"], "accepted")

    def test_accept_after_concurrent_cancel_is_refused(self):
        appt_id = self._book().json()["appointment"]["id"]
        with self._db.get_db() as conn:
            stale = workflow.get_appointment(conn, appt_id)
        self.api_post(self.pat, f"/api/appointments/{appt_id}/cancel")

        with self._db.get_db() as conn:
            error, _ = self._respond_with_stale_read(conn, stale, "accept")
        self.assertEqual(error, "Appointment is already cancelled")
        self.assertEqual(self.count("SELECT COUNT(*) FROM notifications WHERE user_id = ?", (self.patient_id,)), 0)
        self.assertEqual(self.pat.get("/api/appointments").json()["appointments"][0]["status"], "cancelled")

    def test_patient_cancel(self):
        appt_id = self._book().json()["appointment"]["id"]
        resp = self.api_post(self.pat, f"/api/appointments/{appt_id}/cancel")
        self.assertEqual(resp.json()["appointment"]["status"], "cancelled")
        self.assertEqual(self.pat.get("/api/notifications").json()["unread"], 0)
        again = self.api_post(self.pat, f"/api/appointments/{appt_id}/cancel")
        self.assertEqual(again.status_code, 400)

        intruder = self.patient(name="Ivy", email="ivy@example.com")
        appt_id = self._book().json()["appointment"]["id"]
        self.assertEqual(self.api_post(intruder, f"/api/appointments/{appt_id}/cancel").status_code, 404)

    def test_html_booking_and_doctor_dashboard(self):
        resp = self.pat.post(
            "/appointments",
            headers=ORIGIN,
            data={"doctor_id": str(self.doctor_id), "date": future_date(3), "time": "09:00",
                  "reason": "Check-up"},
            follow_redirects=False,
        )
        self.assertEqual(resp.headers["location"], "/appointments?success=Appointment+requested")
        page = self.pat.get("/appointments")
        self.assertIn("Dr. Dana Doctor", page.text)

        dashboard = self.doc.get("/doctor")
        self.assertEqual(dashboard.status_code, 200)
        self.assertIn("Pat Patient", dashboard.text)
        self.assertIn("Check-up", dashboard.text)

        appt_id = self.pat.get("/api/appointments").json()["appointments"][0]["id"]
        resp = self.doc.post(f"/doctor/appointments/{appt_id}/accept", headers=ORIGIN, follow_redirects=False)
        self.assertEqual(resp.headers["location"], "/doctor?success=Appointment+accepted")

        data = self.doc.get("/api/doctor/appointments").json()
        self.assertEqual((data["pending"], data["accepted"]), (0, 1))
        patients = self.doc.get("/api/doctor/patients").json()["patients"]
        self.assertEqual([p["email"] for p in patients], ["pat@example.com"])


if __name__ == "__main__":
    unittest.main()
